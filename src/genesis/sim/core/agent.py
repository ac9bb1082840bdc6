from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from pygame.math import Vector3

from .memory import Memory

TRAIT_NAMES = ("curiosity", "social_affinity", "resource_affinity", "exploration", "adaptability")


class AgentAction(str, Enum):
    MOVE = "move"
    EXPLORE = "explore"
    APPROACH = "approach"
    AVOID = "avoid"
    CONSUME = "consume"
    REPRODUCE = "reproduce"
    COMMUNICATE = "communicate"
    IDLE = "idle"


class EntityKind(str, Enum):
    AGENT = "agent"
    RESOURCE = "resource"
    OBSTACLE = "obstacle"


@dataclass(slots=True)
class AgentTraits:
    curiosity: float = 0.5
    social_affinity: float = 0.5
    resource_affinity: float = 0.5
    exploration: float = 0.5
    adaptability: float = 0.5

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in TRAIT_NAMES}


@dataclass(slots=True)
class ResourceLevels:
    food: float = 0.0
    water: float = 0.0
    light: float = 0.0

    def mean(self) -> float:
        return (self.food + self.water + self.light) / 3.0


@dataclass(frozen=True, slots=True)
class ProximityEntry:
    kind: EntityKind
    distance: float
    direction: Vector3
    id: str
    resource_kind: Optional[str] = None


@dataclass(slots=True)
class SensorValues:
    visual_input: List[Any] = field(default_factory=list)
    auditory_input: List[Any] = field(default_factory=list)
    tactile_input: List[Any] = field(default_factory=list)
    proximity: List[ProximityEntry] = field(default_factory=list)
    resource_levels: ResourceLevels = field(default_factory=ResourceLevels)

    def active_channels(self) -> int:
        channels = (self.visual_input, self.auditory_input, self.tactile_input, self.proximity)
        return sum(1 for channel in channels if channel)

    def nearby_agent_count(self) -> int:
        return sum(1 for entry in self.proximity if entry.kind is EntityKind.AGENT)

    def copy(self) -> "SensorValues":
        return SensorValues(
            visual_input=list(self.visual_input),
            auditory_input=list(self.auditory_input),
            tactile_input=list(self.tactile_input),
            proximity=list(self.proximity),
            resource_levels=replace(self.resource_levels),
        )


@dataclass(slots=True)
class Agent:
    id: str
    position: Vector3
    energy: float
    age: float
    lifespan: float
    generation: int
    rotation: Vector3 = field(default_factory=Vector3)
    velocity: Vector3 = field(default_factory=Vector3)
    scale: float = 1.0
    color: str = "#ffffff"
    perception_radius: float = 10.0
    movement_speed: float = 0.05
    mutation_rate: float = 0.1
    reproduction_threshold: float = 70.0
    reproduction_cooldown: float = 100.0
    last_reproduction_time: float = 0.0
    last_action: AgentAction = AgentAction.IDLE
    consciousness: float = 0.0
    traits: AgentTraits = field(default_factory=AgentTraits)
    sensors: SensorValues = field(default_factory=SensorValues)
    memory: List[Memory] = field(default_factory=list)

    def copy(self) -> "Agent":
        return replace(
            self,
            position=Vector3(self.position),
            rotation=Vector3(self.rotation),
            velocity=Vector3(self.velocity),
            traits=replace(self.traits),
            sensors=self.sensors.copy(),
            memory=list(self.memory),
        )
