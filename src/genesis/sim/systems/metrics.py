from __future__ import annotations

from typing import Sequence

from ..core.agent import Agent
from ..types.metrics import SimulationStatistics, TickMetrics
from .evolution import count_species

RESOURCE_USE_PER_AGENT = 0.5


def calculate_statistics(agents: Sequence[Agent]) -> SimulationStatistics:
    if not agents:
        return SimulationStatistics()

    population = len(agents)
    max_consciousness = max(agent.consciousness for agent in agents)
    max_generation = max(agent.generation for agent in agents)
    return SimulationStatistics(
        population_size=population,
        average_consciousness=sum(agent.consciousness for agent in agents) / population,
        max_consciousness=max_consciousness,
        average_lifespan=sum(agent.lifespan for agent in agents) / population,
        total_generations=max_generation,
        language_complexity=min(1.0, (max_generation / 10.0) * (max_consciousness / 100.0)),
        social_complexity=min(1.0, (population / 20.0) * (max_consciousness / 100.0)),
        resource_consumption=population * RESOURCE_USE_PER_AGENT,
        species_count=count_species(agents),
    )


def create_metrics(
    tick: int,
    time: float,
    agents: Sequence[Agent],
    statistics: SimulationStatistics,
    births: int,
    deaths: int,
    timeline_events: int,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    average_energy = 0.0 if population == 0 else sum(agent.energy for agent in agents) / population
    return TickMetrics(
        tick=tick,
        time=time,
        population=population,
        births=births,
        deaths=deaths,
        average_energy=average_energy,
        average_consciousness=statistics.average_consciousness,
        max_consciousness=statistics.max_consciousness,
        max_generation=statistics.total_generations,
        species_count=statistics.species_count,
        timeline_events=timeline_events,
        tick_duration_ms=duration_ms,
    )
