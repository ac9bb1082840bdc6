from __future__ import annotations

from dataclasses import asdict, fields
from typing import Any, Dict, List

from pygame.math import Vector3

from ..core.agent import Agent, AgentAction, AgentTraits, EntityKind, ProximityEntry, ResourceLevels, SensorValues
from ..core.memory import MEMORY_CLASSES, Memory, MemoryType
from ..core.state import (
    Cell,
    EnvironmentalParameters,
    Resource,
    ResourceKind,
    TimelineCategory,
    TimelineEvent,
    WeatherCondition,
    WorldEvent,
    WorldState,
)
from .metrics import SimulationStatistics


def _vector(v: Vector3) -> Dict[str, float]:
    return {"x": v.x, "y": v.y, "z": v.z}


def _to_vector(raw: Dict[str, float]) -> Vector3:
    return Vector3(raw["x"], raw["y"], raw["z"])


def memory_to_dict(entry: Memory) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"type": entry.type.value}
    for item in fields(entry):
        value = getattr(entry, item.name)
        payload[item.name] = list(value) if isinstance(value, tuple) else value
    return payload


def memory_from_dict(raw: Dict[str, Any]) -> Memory:
    cls = MEMORY_CLASSES[MemoryType(raw["type"])]
    values = {}
    for item in fields(cls):
        if item.name not in raw:
            continue
        value = raw[item.name]
        values[item.name] = tuple(value) if isinstance(value, list) else value
    return cls(**values)


def _proximity_to_dict(entry: ProximityEntry) -> Dict[str, Any]:
    return {
        "kind": entry.kind.value,
        "distance": entry.distance,
        "direction": _vector(entry.direction),
        "id": entry.id,
        "resource_kind": entry.resource_kind,
    }


def agent_to_dict(agent: Agent) -> Dict[str, Any]:
    sensors = agent.sensors
    return {
        "id": agent.id,
        "position": _vector(agent.position),
        "rotation": _vector(agent.rotation),
        "velocity": _vector(agent.velocity),
        "scale": agent.scale,
        "color": agent.color,
        "energy": agent.energy,
        "age": agent.age,
        "lifespan": agent.lifespan,
        "generation": agent.generation,
        "perception_radius": agent.perception_radius,
        "movement_speed": agent.movement_speed,
        "mutation_rate": agent.mutation_rate,
        "reproduction_threshold": agent.reproduction_threshold,
        "reproduction_cooldown": agent.reproduction_cooldown,
        "last_reproduction_time": agent.last_reproduction_time,
        "last_action": agent.last_action.value,
        "consciousness": agent.consciousness,
        "traits": agent.traits.as_dict(),
        "sensors": {
            "visual_input": list(sensors.visual_input),
            "auditory_input": list(sensors.auditory_input),
            "tactile_input": list(sensors.tactile_input),
            "proximity": [_proximity_to_dict(entry) for entry in sensors.proximity],
            "resource_levels": asdict(sensors.resource_levels),
        },
        "memory": [memory_to_dict(entry) for entry in agent.memory],
    }


def agent_from_dict(raw: Dict[str, Any]) -> Agent:
    sensors = raw["sensors"]
    return Agent(
        id=raw["id"],
        position=_to_vector(raw["position"]),
        rotation=_to_vector(raw["rotation"]),
        velocity=_to_vector(raw["velocity"]),
        scale=raw["scale"],
        color=raw["color"],
        energy=raw["energy"],
        age=raw["age"],
        lifespan=raw["lifespan"],
        generation=raw["generation"],
        perception_radius=raw["perception_radius"],
        movement_speed=raw["movement_speed"],
        mutation_rate=raw["mutation_rate"],
        reproduction_threshold=raw["reproduction_threshold"],
        reproduction_cooldown=raw["reproduction_cooldown"],
        last_reproduction_time=raw["last_reproduction_time"],
        last_action=AgentAction(raw["last_action"]),
        consciousness=raw["consciousness"],
        traits=AgentTraits(**raw["traits"]),
        sensors=SensorValues(
            visual_input=list(sensors["visual_input"]),
            auditory_input=list(sensors["auditory_input"]),
            tactile_input=list(sensors["tactile_input"]),
            proximity=[
                ProximityEntry(
                    kind=EntityKind(entry["kind"]),
                    distance=entry["distance"],
                    direction=_to_vector(entry["direction"]),
                    id=entry["id"],
                    resource_kind=entry["resource_kind"],
                )
                for entry in sensors["proximity"]
            ],
            resource_levels=ResourceLevels(**sensors["resource_levels"]),
        ),
        memory=[memory_from_dict(entry) for entry in raw["memory"]],
    )


def _resource_to_dict(resource: Resource) -> Dict[str, Any]:
    return {
        "id": resource.id,
        "kind": resource.kind.value,
        "position": _vector(resource.position),
        "amount": resource.amount,
        "regeneration_rate": resource.regeneration_rate,
        "last_regeneration": resource.last_regeneration,
    }


def _cell_to_dict(cell: Cell) -> Dict[str, Any]:
    return {
        "position": _vector(cell.position),
        "resources": asdict(cell.resources),
        "elevation": cell.elevation,
        "temperature": cell.temperature,
        "occupied": cell.occupied,
        "occupants": list(cell.occupants),
    }


def _event_to_dict(event: WorldEvent) -> Dict[str, Any]:
    payload = asdict(event)
    payload["affected_agents"] = list(event.affected_agents)
    return payload


def timeline_event_to_dict(event: TimelineEvent) -> Dict[str, Any]:
    payload = asdict(event)
    payload["category"] = event.category.value
    return payload


def environment_to_dict(environment: EnvironmentalParameters) -> Dict[str, Any]:
    payload = asdict(environment)
    payload["weather_condition"] = environment.weather_condition.value
    return payload


def world_to_dict(world: WorldState) -> Dict[str, Any]:
    """Encode ``world`` as plain JSON-compatible data."""
    environment = environment_to_dict(world.environment)
    return {
        "time": world.time,
        "time_scale": world.time_scale,
        "time_elapsed": world.time_elapsed,
        "day_night_cycle": world.day_night_cycle,
        "year_length": world.year_length,
        "resources": [_resource_to_dict(resource) for resource in world.resources],
        "agents": [agent_to_dict(agent) for agent in world.agents],
        "environment": environment,
        "events": [_event_to_dict(event) for event in world.events],
        "statistics": asdict(world.statistics),
        "cell_grid": [[_cell_to_dict(cell) for cell in column] for column in world.cell_grid],
        "timeline": [timeline_event_to_dict(event) for event in world.timeline],
    }


def world_from_dict(raw: Dict[str, Any]) -> WorldState:
    environment = dict(raw["environment"])
    environment["weather_condition"] = WeatherCondition(environment["weather_condition"])
    resources: List[Resource] = [
        Resource(
            id=item["id"],
            kind=ResourceKind(item["kind"]),
            position=_to_vector(item["position"]),
            amount=item["amount"],
            regeneration_rate=item["regeneration_rate"],
            last_regeneration=item["last_regeneration"],
        )
        for item in raw["resources"]
    ]
    grid = [
        [
            Cell(
                position=_to_vector(cell["position"]),
                resources=ResourceLevels(**cell["resources"]),
                elevation=cell["elevation"],
                temperature=cell["temperature"],
                occupied=cell["occupied"],
                occupants=list(cell["occupants"]),
            )
            for cell in column
        ]
        for column in raw["cell_grid"]
    ]
    return WorldState(
        time=raw["time"],
        time_scale=raw["time_scale"],
        time_elapsed=raw["time_elapsed"],
        day_night_cycle=raw["day_night_cycle"],
        year_length=raw["year_length"],
        resources=resources,
        agents=[agent_from_dict(item) for item in raw["agents"]],
        environment=EnvironmentalParameters(**environment),
        events=[
            WorldEvent(**{**item, "affected_agents": tuple(item["affected_agents"])}) for item in raw["events"]
        ],
        statistics=SimulationStatistics(**raw["statistics"]),
        cell_grid=grid,
        timeline=[
            TimelineEvent(**{**item, "category": TimelineCategory(item["category"])}) for item in raw["timeline"]
        ],
    )
