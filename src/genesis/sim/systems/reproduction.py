from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Set

from pygame.math import Vector3

from ..core.agent import TRAIT_NAMES, Agent, AgentAction, AgentTraits
from ..core.config import SimulationConfig
from ..core.memory import ActionMemory, ObservationMemory, add_memory
from ..core.rng import DeterministicRng
from ..core.state import WorldEvent
from ..utils.math3d import _midpoint, distance
from .behavior import is_ready_to_reproduce
from .consciousness import calculate_consciousness
from .evolution import blend_colors, is_new_species, mutate_agent

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReproductionResult:
    agents: List[Agent] = field(default_factory=list)
    offspring: List[Agent] = field(default_factory=list)
    events: List[WorldEvent] = field(default_factory=list)


def _mean(a: float, b: float) -> float:
    return (a + b) / 2.0


def create_offspring(parent_a: Agent, parent_b: Agent, now: float, rng: DeterministicRng, config: SimulationConfig) -> Agent:
    settings = config.reproduction
    child = Agent(
        id=rng.next_uuid(),
        position=_midpoint(parent_a.position, parent_b.position),
        rotation=Vector3(),
        velocity=Vector3(),
        scale=settings.offspring_scale,
        color=blend_colors(parent_a.color, parent_b.color, rng, config.evolution.color_jitter),
        energy=settings.offspring_energy,
        age=0.0,
        lifespan=_mean(parent_a.lifespan, parent_b.lifespan) * settings.lifespan_bonus,
        generation=max(parent_a.generation, parent_b.generation) + 1,
        perception_radius=_mean(parent_a.perception_radius, parent_b.perception_radius),
        movement_speed=_mean(parent_a.movement_speed, parent_b.movement_speed),
        mutation_rate=_mean(parent_a.mutation_rate, parent_b.mutation_rate),
        reproduction_threshold=_mean(parent_a.reproduction_threshold, parent_b.reproduction_threshold),
        reproduction_cooldown=_mean(parent_a.reproduction_cooldown, parent_b.reproduction_cooldown),
        last_reproduction_time=0.0,
        last_action=AgentAction.IDLE,
        traits=AgentTraits(
            **{name: _mean(getattr(parent_a.traits, name), getattr(parent_b.traits, name)) for name in TRAIT_NAMES}
        ),
    )
    child = mutate_agent(child, rng, config.evolution)
    child.consciousness = calculate_consciousness(child)
    add_memory(
        child.memory,
        ObservationMemory(timestamp=now, intensity=1.0, event="birth", subject_ids=(parent_a.id, parent_b.id)),
        config.behavior.memory_capacity,
    )
    return child


def _is_pairable(agent: Agent) -> bool:
    return agent.last_action is AgentAction.REPRODUCE and is_ready_to_reproduce(agent)


def reproduce_agents(
    agents: List[Agent],
    now: float,
    rng: DeterministicRng,
    config: SimulationConfig,
) -> ReproductionResult:
    """Greedily pair ready agents and create one offspring per pair.

    Candidates are visited in id order and each agent pairs at most once per
    tick. Parents are updated in place; ``agents`` itself is not extended.
    """
    settings = config.reproduction
    result = ReproductionResult(agents=agents)
    ready = sorted((agent for agent in agents if _is_pairable(agent)), key=lambda agent: agent.id)
    paired: Set[str] = set()
    capacity = config.world.max_agents - len(agents)

    for i, first in enumerate(ready):
        if capacity <= 0:
            logger.debug("population cap %d reached, skipping reproduction", config.world.max_agents)
            break
        if first.id in paired:
            continue
        for second in ready[i + 1 :]:
            if second.id in paired:
                continue
            if distance(first.position, second.position) > settings.pairing_distance:
                continue

            child = create_offspring(first, second, now, rng, config)
            for parent, partner in ((first, second), (second, first)):
                parent.last_reproduction_time = now
                parent.energy = max(settings.energy_floor, parent.energy - settings.energy_cost)
                add_memory(
                    parent.memory,
                    ActionMemory(
                        timestamp=now,
                        intensity=0.9,
                        action=AgentAction.REPRODUCE.value,
                        partner_id=partner.id,
                        offspring_id=child.id,
                    ),
                    config.behavior.memory_capacity,
                )
            paired.update((first.id, second.id))
            capacity -= 1

            logger.info("agents %s and %s produced %s (generation %d)", first.id, second.id, child.id, child.generation)
            result.events.append(
                WorldEvent(
                    id=rng.next_uuid(),
                    type="birth",
                    timestamp=now,
                    description=f"Agent {child.id} born to {first.id} and {second.id}",
                    affected_agents=(first.id, second.id, child.id),
                )
            )
            if is_new_species(child, agents + result.offspring, config.evolution.species_threshold):
                result.events.append(
                    WorldEvent(
                        id=rng.next_uuid(),
                        type="speciation",
                        timestamp=now,
                        description=f"Agent {child.id} diverged from every living trait profile",
                        affected_agents=(child.id,),
                    )
                )
            result.offspring.append(child)
            break
    return result
