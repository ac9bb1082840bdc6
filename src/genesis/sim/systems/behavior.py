from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from pygame.math import Vector3

from ..core.agent import TRAIT_NAMES, Agent, AgentAction, EntityKind, ProximityEntry, ResourceLevels
from ..core.config import SimulationConfig
from ..core.errors import enforce_range
from ..core.grid import cell_at
from ..core.memory import ActionMemory, add_memory
from ..core.rng import DeterministicRng
from ..core.state import CellGrid, Resource, ResourceKind, WorldEvent
from ..utils.math3d import _clamp_value, _heading_from_velocity, _safe_normalize, direction, distance
from .consciousness import calculate_consciousness, meets_consciousness_threshold

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Decision:
    action: AgentAction
    target_id: Optional[str] = None


@dataclass(slots=True)
class AgentUpdate:
    survivors: List[Agent] = field(default_factory=list)
    events: List[WorldEvent] = field(default_factory=list)


def is_ready_to_reproduce(agent: Agent) -> bool:
    cooled_down = agent.age - agent.last_reproduction_time > agent.reproduction_cooldown
    return meets_consciousness_threshold(agent) and cooled_down


def _nearest(
    entries: Sequence[ProximityEntry], predicate: Callable[[ProximityEntry], bool] = lambda _: True
) -> Optional[ProximityEntry]:
    # ties on distance resolve by id so runs are reproducible
    candidates = [entry for entry in entries if predicate(entry)]
    if not candidates:
        return None
    return min(candidates, key=lambda entry: (entry.distance, entry.id))


def _is_agent(entry: ProximityEntry) -> bool:
    return entry.kind is EntityKind.AGENT


def _is_resource(entry: ProximityEntry) -> bool:
    return entry.kind is EntityKind.RESOURCE


def _is_food(entry: ProximityEntry) -> bool:
    return entry.kind is EntityKind.RESOURCE and entry.resource_kind == ResourceKind.FOOD.value


def _is_consumable(entry: ProximityEntry) -> bool:
    return entry.kind is EntityKind.RESOURCE and entry.resource_kind != ResourceKind.LIGHT.value


def sense(
    agent: Agent,
    others: Sequence[Agent],
    resources: Sequence[Resource],
    grid: CellGrid,
    config: SimulationConfig,
) -> None:
    proximity: List[ProximityEntry] = []
    radius = agent.perception_radius
    for other in others:
        if other.id == agent.id:
            continue
        dist = distance(agent.position, other.position)
        if dist <= radius:
            proximity.append(
                ProximityEntry(
                    kind=EntityKind.AGENT,
                    distance=dist,
                    direction=direction(agent.position, other.position),
                    id=other.id,
                )
            )
    for resource in resources:
        dist = distance(agent.position, resource.position)
        if dist <= radius:
            proximity.append(
                ProximityEntry(
                    kind=EntityKind.RESOURCE,
                    distance=dist,
                    direction=direction(agent.position, resource.position),
                    id=resource.id,
                    resource_kind=ResourceKind(resource.kind).value,
                )
            )
    agent.sensors.proximity = proximity

    cell = cell_at(agent.position, grid, config.world)
    if cell is not None:
        levels = cell.resources
        agent.sensors.resource_levels = ResourceLevels(food=levels.food, water=levels.water, light=levels.light)


def decide(
    agent: Agent,
    partners: Dict[str, Agent],
    rng: DeterministicRng,
    config: SimulationConfig,
) -> Decision:
    behavior = config.behavior
    proximity = agent.sensors.proximity

    if agent.energy < behavior.low_energy_threshold:
        food = _nearest(proximity, _is_food)
        if food is None:
            return Decision(AgentAction.EXPLORE)
        if behavior.consume_when_adjacent and food.distance <= behavior.consume_radius:
            return Decision(AgentAction.CONSUME, food.id)
        return Decision(AgentAction.APPROACH)

    if is_ready_to_reproduce(agent):
        nearby = _nearest(proximity, _is_agent)
        if nearby is None:
            return Decision(AgentAction.EXPLORE)
        partner = partners.get(nearby.id)
        if partner is not None and is_ready_to_reproduce(partner):
            return Decision(AgentAction.REPRODUCE, nearby.id)
        return Decision(AgentAction.APPROACH)

    scale = behavior.trait_roll_scale
    traits = agent.traits
    if rng.next_float() < traits.curiosity * scale:
        return Decision(AgentAction.EXPLORE)
    if rng.next_float() < traits.social_affinity * scale:
        if _nearest(proximity, _is_agent) is not None:
            return Decision(AgentAction.APPROACH)
    if rng.next_float() < traits.resource_affinity * scale:
        if _nearest(proximity, _is_resource) is not None:
            return Decision(AgentAction.APPROACH)

    if rng.next_float() < behavior.explore_probability:
        return Decision(AgentAction.EXPLORE)
    return Decision(AgentAction.IDLE)


def _steer(agent: Agent, sign: float) -> None:
    # approach and avoid always key off the nearest sensed entity of any kind
    target = _nearest(agent.sensors.proximity)
    if target is None:
        return
    heading = _safe_normalize(target.direction)
    speed = sign * agent.movement_speed
    agent.velocity = Vector3(heading.x * speed, 0.0, heading.z * speed)


def _consume(
    agent: Agent,
    target_id: Optional[str],
    resources_by_id: Dict[str, Resource],
    config: SimulationConfig,
    now: float,
) -> None:
    behavior = config.behavior
    entry = None
    if target_id is not None:
        entry = next((e for e in agent.sensors.proximity if e.id == target_id and _is_consumable(e)), None)
    if entry is None:
        entry = _nearest(agent.sensors.proximity, _is_consumable)
    if entry is None:
        return
    resource = resources_by_id.get(entry.id)
    if resource is None:
        return
    consumed = min(resource.amount, behavior.consume_max_amount)
    resource.amount -= consumed
    agent.energy = min(behavior.max_energy, agent.energy + consumed * behavior.energy_per_unit)
    add_memory(
        agent.memory,
        ActionMemory(
            timestamp=now,
            intensity=0.7,
            action=AgentAction.CONSUME.value,
            target_id=resource.id,
            resource_kind=ResourceKind(resource.kind).value,
            amount=consumed,
        ),
        behavior.memory_capacity,
    )


def act(
    agent: Agent,
    decision: Decision,
    resources_by_id: Dict[str, Resource],
    rng: DeterministicRng,
    config: SimulationConfig,
    delta_time: float,
    now: float,
) -> None:
    action = decision.action
    agent.last_action = action
    speed = agent.movement_speed

    if action is AgentAction.MOVE:
        agent.velocity = Vector3(rng.next_range(-1.0, 1.0) * speed, 0.0, rng.next_range(-1.0, 1.0) * speed)
    elif action is AgentAction.EXPLORE:
        agent.velocity = rng.next_heading() * speed
    elif action is AgentAction.APPROACH:
        _steer(agent, 1.0)
    elif action is AgentAction.AVOID:
        _steer(agent, -1.0)
    elif action is AgentAction.CONSUME:
        _consume(agent, decision.target_id, resources_by_id, config, now)
    elif action is AgentAction.COMMUNICATE:
        listener = _nearest(agent.sensors.proximity, _is_agent)
        if listener is not None:
            add_memory(
                agent.memory,
                ActionMemory(timestamp=now, intensity=0.6, action=action.value, target_id=listener.id),
                config.behavior.memory_capacity,
            )
    elif action is AgentAction.IDLE:
        agent.velocity = Vector3()
    # reproduction is only flagged here; pairing happens in the reproduction pass

    half = config.world.half_size
    agent.position.x = _clamp_value(agent.position.x + agent.velocity.x * delta_time, -half, half)
    agent.position.z = _clamp_value(agent.position.z + agent.velocity.z * delta_time, -half, half)
    if agent.velocity.x != 0.0 or agent.velocity.z != 0.0:
        agent.rotation.y = _heading_from_velocity(agent.velocity)

    if action is not AgentAction.IDLE:
        add_memory(
            agent.memory,
            ActionMemory(timestamp=now, intensity=0.5, action=action.value),
            config.behavior.memory_capacity,
        )


def enforce_agent_invariants(agent: Agent, config: SimulationConfig) -> None:
    strict = config.strict_invariants
    agent.energy = enforce_range(f"{agent.id}.energy", agent.energy, 0.0, config.behavior.max_energy, strict)
    agent.consciousness = enforce_range(f"{agent.id}.consciousness", agent.consciousness, 0.0, 100.0, strict)
    for name in TRAIT_NAMES:
        value = getattr(agent.traits, name)
        setattr(agent.traits, name, enforce_range(f"{agent.id}.{name}", value, 0.0, 1.0, strict))
    capacity = config.behavior.memory_capacity
    excess = len(agent.memory) - capacity
    if excess > 0:
        enforce_range(f"{agent.id}.memory", len(agent.memory), 0, capacity, strict)
        del agent.memory[:excess]


def _death_event(agent: Agent, cause: str, now: float, rng: DeterministicRng) -> WorldEvent:
    logger.info("agent %s died (%s) at age %.2f", agent.id, cause, agent.age)
    return WorldEvent(
        id=rng.next_uuid(),
        type="death",
        timestamp=now,
        description=f"Agent {agent.id} died ({cause}) at age {agent.age:.2f}",
        affected_agents=(agent.id,),
    )


def update_agents(
    agents: Sequence[Agent],
    resources: Sequence[Resource],
    grid: CellGrid,
    delta_time: float,
    now: float,
    rng: DeterministicRng,
    config: SimulationConfig,
) -> AgentUpdate:
    """Run sense, decide, act and reconcile for every agent.

    ``agents`` is the tick-start population and is not modified: each agent
    is copied before it is updated, and sensing and partner checks read the
    tick-start positions and scores. ``resources`` are mutated in place by
    consumption.
    """
    result = AgentUpdate()
    partners = {agent.id: agent for agent in agents}
    resources_by_id = {resource.id: resource for resource in resources}
    metabolism = config.behavior.metabolism_per_time

    for before in agents:
        if before.energy <= 0.0:
            result.events.append(_death_event(before, "starvation", now, rng))
            continue

        agent = before.copy()
        agent.age += delta_time
        agent.energy = max(0.0, agent.energy - metabolism * delta_time)

        sense(agent, agents, resources, grid, config)
        decision = decide(agent, partners, rng, config)
        act(agent, decision, resources_by_id, rng, config, delta_time, now)

        agent.consciousness = calculate_consciousness(agent)
        enforce_agent_invariants(agent, config)

        if agent.energy <= 0.0:
            result.events.append(_death_event(agent, "starvation", now, rng))
            continue
        if agent.age >= agent.lifespan:
            result.events.append(_death_event(agent, "old age", now, rng))
            continue
        result.survivors.append(agent)
    return result
