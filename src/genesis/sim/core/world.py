from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Dict, List, Optional

from pygame.math import Vector3

from .agent import Agent, AgentTraits
from .config import SimulationConfig, TraitsConfig
from .errors import ConfigurationError, enforce_range
from .grid import build_cell_grid, rebuild_occupancy
from .memory import Memory
from .rng import DeterministicRng
from .state import (
    PARAMETER_RANGES,
    EnvironmentalParameters,
    TimelineEvent,
    WeatherCondition,
    WorldEvent,
    WorldState,
)
from ..systems.behavior import update_agents
from ..systems.consciousness import calculate_consciousness
from ..systems.metrics import calculate_statistics, create_metrics
from ..systems.reproduction import reproduce_agents
from ..systems.resources import (
    apply_catastrophe,
    calculate_resource_distribution,
    generate_initial_resources,
    place_resources_in_cells,
    update_resource_levels,
)
from ..systems.timeline import catastrophe_event, detect_timeline_events
from ..types.metrics import TickMetrics

logger = logging.getLogger(__name__)


def _traits(config: TraitsConfig) -> AgentTraits:
    return AgentTraits(
        curiosity=config.curiosity,
        social_affinity=config.social_affinity,
        resource_affinity=config.resource_affinity,
        exploration=config.exploration,
        adaptability=config.adaptability,
    )


def create_initial_agents(config: SimulationConfig) -> List[Agent]:
    settings = config.agents
    seeds = (
        ("adam", settings.adam_position, settings.adam_color, settings.adam_traits),
        ("eve", settings.eve_position, settings.eve_color, settings.eve_traits),
    )
    agents = []
    for agent_id, position, color, traits in seeds:
        agent = Agent(
            id=agent_id,
            position=Vector3(*position),
            energy=settings.energy,
            age=0.0,
            lifespan=settings.lifespan,
            generation=settings.generation,
            color=color,
            perception_radius=settings.perception_radius,
            movement_speed=settings.movement_speed,
            mutation_rate=settings.mutation_rate,
            reproduction_threshold=settings.reproduction_threshold,
            reproduction_cooldown=settings.reproduction_cooldown,
            traits=_traits(traits),
        )
        agent.consciousness = calculate_consciousness(agent)
        agents.append(agent)
    return agents


def _parse_weather(condition: object) -> WeatherCondition:
    try:
        return WeatherCondition(condition)
    except ValueError:
        valid = ", ".join(w.value for w in WeatherCondition)
        raise ConfigurationError(f"unknown weather condition {condition!r} (expected one of {valid})") from None


def redistribute(world: WorldState, config: SimulationConfig) -> None:
    """Rebuild cell levels from the current resources and environment."""
    place_resources_in_cells(world.resources, world.cell_grid, config.world)
    world.cell_grid = calculate_resource_distribution(world.cell_grid, world.environment)


def initialize_world(config: SimulationConfig, rng: DeterministicRng) -> WorldState:
    env = config.environment
    parameters = EnvironmentalParameters(
        temperature=env.temperature,
        light_level=env.light_level,
        resource_abundance=env.resource_abundance,
        resource_distribution=env.resource_distribution,
        food_growth_rate=env.food_growth_rate,
        water_availability=env.water_availability,
        weather_condition=_parse_weather(env.weather_condition),
        catastrophe_chance=env.catastrophe_chance,
    )
    grid = build_cell_grid(config.world, rng)
    resources = generate_initial_resources(config.world, rng)
    agents = create_initial_agents(config)
    world = WorldState(
        time=0.0,
        time_scale=config.time_scale,
        resources=resources,
        agents=agents,
        environment=parameters,
        cell_grid=grid,
        year_length=config.year_length,
    )
    redistribute(world, config)
    world.statistics = calculate_statistics(agents)
    rebuild_occupancy(world.cell_grid, world.agents, config.world)
    logger.info(
        "initialized world: %d agents, %d resources, %dx%d grid",
        len(agents),
        len(resources),
        config.world.grid_size,
        config.world.grid_size,
    )
    return world


def tick(world: WorldState, delta_time: float, rng: DeterministicRng, config: SimulationConfig) -> WorldState:
    """Advance ``world`` by one step and return the new state.

    The input state is never modified.
    """
    if not math.isfinite(delta_time) or delta_time < 0:
        raise ConfigurationError(f"delta_time must be a finite non-negative number, got {delta_time!r}")

    state = world.copy()
    scaled = delta_time * state.time_scale
    state.time += scaled
    state.time_elapsed += scaled
    state.day_night_cycle = state.time % 1.0

    state.resources = update_resource_levels(state.resources, scaled)

    update = update_agents(state.agents, state.resources, state.cell_grid, scaled, state.time, rng, config)
    births = reproduce_agents(update.survivors, state.time, rng, config)
    state.agents = update.survivors + births.offspring
    state.events.extend(update.events)
    state.events.extend(births.events)

    for resource in state.resources:
        resource.amount = enforce_range(
            f"{resource.id}.amount", resource.amount, 0.0, math.inf, config.strict_invariants
        )

    statistics = calculate_statistics(state.agents)
    state.timeline.extend(detect_timeline_events(statistics, world.statistics, state.time, rng))
    state.statistics = statistics

    rebuild_occupancy(state.cell_grid, state.agents, config.world)
    logger.debug(
        "tick t=%.3f population=%d births=%d deaths=%d",
        state.time,
        len(state.agents),
        len(births.offspring),
        len(update.events),
    )
    return state


def set_environmental_parameter(
    world: WorldState, key: str, value: object, config: SimulationConfig
) -> WorldState:
    if key == "weather_condition":
        return set_weather_condition(world, value, config)
    if key not in PARAMETER_RANGES:
        raise ConfigurationError(f"unknown environmental parameter {key!r}")
    if isinstance(value, bool):
        raise ConfigurationError(f"{key} must be numeric, got {value!r}")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be numeric, got {value!r}") from None
    if not math.isfinite(number):
        raise ConfigurationError(f"{key} must be finite, got {value!r}")

    low, high = PARAMETER_RANGES[key]
    clamped = max(low, min(high, number))
    if clamped != number:
        logger.warning("clamped %s from %r to %r", key, number, clamped)

    state = world.copy()
    setattr(state.environment, key, clamped)
    redistribute(state, config)
    return state


def set_weather_condition(world: WorldState, condition: object, config: SimulationConfig) -> WorldState:
    weather = _parse_weather(condition)
    state = world.copy()
    state.environment.weather_condition = weather
    redistribute(state, config)
    logger.info("weather set to %s", weather.value)
    return state


def trigger_catastrophe(world: WorldState, kind: str, intensity: float, rng: DeterministicRng) -> WorldState:
    if isinstance(intensity, bool) or not isinstance(intensity, (int, float)) or not math.isfinite(intensity):
        raise ConfigurationError(f"catastrophe intensity must be a finite number, got {intensity!r}")
    if not 0.0 <= intensity <= 1.0:
        raise ConfigurationError(f"catastrophe intensity must lie in [0, 1], got {intensity!r}")

    state = world.copy()
    state.resources = apply_catastrophe(state.resources, intensity)
    state.events.append(
        WorldEvent(
            id=rng.next_uuid(),
            type=kind,
            timestamp=state.time,
            description=f"{kind} catastrophe of intensity {intensity}",
            duration=1000.0 * intensity,
            affected_agents=tuple(agent.id for agent in state.agents),
        )
    )
    state.timeline.append(catastrophe_event(kind, intensity, state.time, rng))
    return state


class Simulation:
    """Owns the current ``WorldState`` and serializes access to it."""

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._state = initialize_world(config, self._rng)
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._ticking = False

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> WorldState:
        return self._state

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def timeline(self) -> List[TimelineEvent]:
        return list(self._state.timeline)

    def reset(self) -> None:
        self._rng.reset()
        self._state = initialize_world(self._config, self._rng)
        self._tick = 0
        self._metrics = None

    def step(self, delta_time: Optional[float] = None) -> Optional[TickMetrics]:
        if self._ticking:
            logger.debug("tick %d still running, skipping", self._tick)
            return None
        dt = self._config.time_step if delta_time is None else delta_time
        self._ticking = True
        start = perf_counter()
        rng_state = self._rng.getstate()
        previous = self._state
        try:
            state = tick(previous, dt, self._rng, self._config)
        except Exception:
            self._rng.setstate(rng_state)
            logger.exception("tick %d failed; keeping previous state", self._tick)
            raise
        finally:
            self._ticking = False

        new_events = state.events[len(previous.events):]
        births = sum(1 for event in new_events if event.type == "birth")
        deaths = sum(1 for event in new_events if event.type == "death")
        elapsed_ms = (perf_counter() - start) * 1000.0
        self._state = state
        self._metrics = create_metrics(
            self._tick,
            state.time,
            state.agents,
            state.statistics,
            births,
            deaths,
            len(state.timeline) - len(previous.timeline),
            elapsed_ms,
        )
        self._tick += 1
        return self._metrics

    def set_time_scale(self, scale: float) -> float:
        if not math.isfinite(scale) or scale <= 0:
            raise ConfigurationError(f"time scale must be a positive number, got {scale!r}")
        clamped = max(self._config.min_time_scale, min(self._config.max_time_scale, scale))
        if clamped != scale:
            logger.warning("clamped time scale from %r to %r", scale, clamped)
        self._state = self._state.copy()
        self._state.time_scale = clamped
        return clamped

    def set_environmental_parameter(self, key: str, value: object) -> None:
        self._state = set_environmental_parameter(self._state, key, value, self._config)

    def set_environmental_parameters(self, values: Dict[str, object]) -> None:
        """Apply several parameters at once; nothing is committed if any is rejected."""
        state = self._state
        for key, value in values.items():
            state = set_environmental_parameter(state, key, value, self._config)
        self._state = state

    def set_weather_condition(self, condition: object) -> None:
        self._state = set_weather_condition(self._state, condition, self._config)

    def trigger_catastrophe(self, kind: str, intensity: float) -> TimelineEvent:
        self._state = trigger_catastrophe(self._state, kind, intensity, self._rng)
        return self._state.timeline[-1]

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._state.find_agent(agent_id)

    def agent_memories(self, agent_id: str) -> Optional[List[Memory]]:
        agent = self._state.find_agent(agent_id)
        if agent is None:
            return None
        return list(agent.memory)

    def snapshot(self) -> WorldState:
        return self._state.copy()
