from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SimulationStatistics:
    population_size: int = 0
    average_consciousness: float = 0.0
    max_consciousness: float = 0.0
    average_lifespan: float = 0.0
    total_generations: int = 0
    language_complexity: float = 0.0
    social_complexity: float = 0.0
    resource_consumption: float = 0.0
    species_count: int = 0


@dataclass(slots=True)
class TickMetrics:
    tick: int
    time: float
    population: int
    births: int
    deaths: int
    average_energy: float
    average_consciousness: float
    max_consciousness: float
    max_generation: int
    species_count: int
    timeline_events: int
    tick_duration_ms: float = 0.0
