from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

import yaml

from .errors import ConfigurationError


@dataclass
class TraitsConfig:
    curiosity: float = 0.5
    social_affinity: float = 0.5
    resource_affinity: float = 0.5
    exploration: float = 0.5
    adaptability: float = 0.5


def _adam_traits() -> TraitsConfig:
    return TraitsConfig(curiosity=0.7, social_affinity=0.6, resource_affinity=0.5, exploration=0.8, adaptability=0.6)


def _eve_traits() -> TraitsConfig:
    return TraitsConfig(curiosity=0.6, social_affinity=0.8, resource_affinity=0.7, exploration=0.5, adaptability=0.7)


@dataclass
class AgentConfig:
    energy: float = 100.0
    lifespan: float = 1000.0
    generation: int = 1
    perception_radius: float = 10.0
    movement_speed: float = 0.05
    reproduction_threshold: float = 70.0
    reproduction_cooldown: float = 100.0
    mutation_rate: float = 0.1
    adam_position: tuple[float, float, float] = (-2.0, 0.0, 0.0)
    eve_position: tuple[float, float, float] = (2.0, 0.0, 0.0)
    adam_color: str = "#4285F4"
    eve_color: str = "#EA4335"
    adam_traits: TraitsConfig = field(default_factory=_adam_traits)
    eve_traits: TraitsConfig = field(default_factory=_eve_traits)


@dataclass
class WorldConfig:
    size: float = 100.0
    grid_size: int = 10
    food_count: int = 25
    water_count: int = 15
    light_count: int = 10
    max_agents: int = 100
    influence_radius: float = 2.0
    base_food: float = 0.1
    base_water: float = 0.1
    base_light: float = 0.5
    cell_temperature: float = 0.5
    light_height: float = 10.0

    @property
    def half_size(self) -> float:
        return self.size / 2.0

    @property
    def cell_size(self) -> float:
        return self.size / self.grid_size


@dataclass
class BehaviorConfig:
    low_energy_threshold: float = 30.0
    metabolism_per_time: float = 0.1
    trait_roll_scale: float = 0.3
    explore_probability: float = 0.7
    # hungry agents only approach food unless this is switched on
    consume_when_adjacent: bool = False
    consume_radius: float = 1.5
    consume_max_amount: float = 10.0
    energy_per_unit: float = 5.0
    memory_capacity: int = 50
    max_energy: float = 100.0


@dataclass
class ReproductionConfig:
    pairing_distance: float = 2.0
    energy_cost: float = 20.0
    energy_floor: float = 10.0
    offspring_energy: float = 50.0
    offspring_scale: float = 0.7
    lifespan_bonus: float = 1.1


@dataclass
class EvolutionConfig:
    mutation_factor: float = 0.2
    lifespan_mutation_factor: float = 0.1
    mutation_rate_drift: float = 0.05
    species_threshold: float = 0.3
    color_jitter: float = 10.0
    color_mutation_scale: float = 50.0
    perception_scale: float = 10.0
    speed_scale: float = 0.05


@dataclass
class EnvironmentConfig:
    temperature: float = 0.5
    light_level: float = 0.7
    resource_abundance: float = 0.8
    resource_distribution: float = 0.5
    food_growth_rate: float = 0.005
    water_availability: float = 0.7
    weather_condition: str = "clear"
    catastrophe_chance: float = 0.001


@dataclass
class SimulationConfig:
    time_step: float = 0.1
    time_scale: float = 1.0
    min_time_scale: float = 0.1
    max_time_scale: float = 100.0
    year_length: float = 365.0
    seed: int = 42
    strict_invariants: bool = False
    config_version: str = "v1"
    world: WorldConfig = field(default_factory=WorldConfig)
    agents: AgentConfig = field(default_factory=AgentConfig)
    behavior: BehaviorConfig = field(default_factory=BehaviorConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)
    environment: EnvironmentConfig = field(default_factory=EnvironmentConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    try:
        return _build_config(raw)
    except TypeError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def _build_config(raw: dict) -> SimulationConfig:
    def _triple(value: object, default: tuple[float, float, float]) -> tuple[float, float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 3:
            return (float(value[0]), float(value[1]), float(value[2]))
        return default

    def _traits(value: Dict[str, float] | None, default: TraitsConfig) -> TraitsConfig:
        if not value:
            return default
        return TraitsConfig(**value)

    agents_raw = dict(raw.get("agents", {}))
    default_agents = AgentConfig()
    agents = AgentConfig(
        adam_position=_triple(agents_raw.pop("adam_position", None), default_agents.adam_position),
        eve_position=_triple(agents_raw.pop("eve_position", None), default_agents.eve_position),
        adam_traits=_traits(agents_raw.pop("adam_traits", None), default_agents.adam_traits),
        eve_traits=_traits(agents_raw.pop("eve_traits", None), default_agents.eve_traits),
        **agents_raw,
    )
    world = WorldConfig(**raw.get("world", {}))
    behavior = BehaviorConfig(**raw.get("behavior", {}))
    reproduction = ReproductionConfig(**raw.get("reproduction", {}))
    evolution = EvolutionConfig(**raw.get("evolution", {}))
    environment = EnvironmentConfig(**raw.get("environment", {}))
    sim_values = {
        k: v
        for k, v in raw.items()
        if k not in {"world", "agents", "behavior", "reproduction", "evolution", "environment"}
    }
    return SimulationConfig(
        world=world,
        agents=agents,
        behavior=behavior,
        reproduction=reproduction,
        evolution=evolution,
        environment=environment,
        **sim_values,
    )
