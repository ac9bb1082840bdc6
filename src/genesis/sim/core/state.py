from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple

from pygame.math import Vector3

from .agent import Agent, ResourceLevels
from ..types.metrics import SimulationStatistics


class ResourceKind(str, Enum):
    FOOD = "food"
    WATER = "water"
    LIGHT = "light"


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    RAIN = "rain"
    STORM = "storm"
    DROUGHT = "drought"


class TimelineCategory(str, Enum):
    LANGUAGE = "language"
    SOCIAL = "social"
    TECHNOLOGICAL = "technological"
    EXTINCTION = "extinction"
    POPULATION = "population"
    MUTATION = "mutation"


@dataclass(slots=True)
class Resource:
    id: str
    kind: ResourceKind
    position: Vector3
    amount: float
    regeneration_rate: float = 0.0
    last_regeneration: float = 0.0

    def copy(self) -> "Resource":
        return replace(self, position=Vector3(self.position))


@dataclass(slots=True)
class Cell:
    position: Vector3
    resources: ResourceLevels = field(default_factory=ResourceLevels)
    elevation: float = 0.0
    temperature: float = 0.5
    occupied: bool = False
    occupants: List[str] = field(default_factory=list)

    def copy(self) -> "Cell":
        return replace(
            self,
            position=Vector3(self.position),
            resources=replace(self.resources),
            occupants=list(self.occupants),
        )


CellGrid = List[List[Cell]]


def copy_grid(grid: CellGrid) -> CellGrid:
    return [[cell.copy() for cell in column] for column in grid]


@dataclass(slots=True)
class EnvironmentalParameters:
    temperature: float = 0.5
    light_level: float = 0.7
    resource_abundance: float = 0.8
    resource_distribution: float = 0.5
    food_growth_rate: float = 0.005
    water_availability: float = 0.7
    weather_condition: WeatherCondition = WeatherCondition.CLEAR
    catastrophe_chance: float = 0.001


# Numeric parameters and the range each is clamped to at the setter boundary.
PARAMETER_RANGES = {
    "temperature": (0.0, 1.0),
    "light_level": (0.0, 1.0),
    "resource_abundance": (0.0, 2.0),
    "resource_distribution": (0.0, 1.0),
    "food_growth_rate": (0.0, 1.0),
    "water_availability": (0.0, 1.0),
    "catastrophe_chance": (0.0, 1.0),
}


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    id: str
    timestamp: float
    title: str
    description: str
    category: TimelineCategory
    significance: float


@dataclass(frozen=True, slots=True)
class WorldEvent:
    id: str
    type: str
    timestamp: float
    description: str
    duration: float = 0.0
    affected_agents: Tuple[str, ...] = ()


@dataclass(slots=True)
class WorldState:
    time: float = 0.0
    time_scale: float = 1.0
    resources: List[Resource] = field(default_factory=list)
    agents: List[Agent] = field(default_factory=list)
    environment: EnvironmentalParameters = field(default_factory=EnvironmentalParameters)
    events: List[WorldEvent] = field(default_factory=list)
    statistics: SimulationStatistics = field(default_factory=SimulationStatistics)
    cell_grid: CellGrid = field(default_factory=list)
    time_elapsed: float = 0.0
    day_night_cycle: float = 0.0
    timeline: List[TimelineEvent] = field(default_factory=list)
    year_length: float = 365.0

    @property
    def elapsed_years(self) -> float:
        if self.year_length <= 0:
            return 0.0
        return self.time_elapsed / self.year_length

    def copy(self) -> "WorldState":
        return replace(
            self,
            resources=[resource.copy() for resource in self.resources],
            agents=[agent.copy() for agent in self.agents],
            environment=replace(self.environment),
            events=list(self.events),
            cell_grid=copy_grid(self.cell_grid),
            timeline=list(self.timeline),
        )

    def find_agent(self, agent_id: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None
