from __future__ import annotations

import math

import pytest
from pygame.math import Vector3
from pytest import approx

from genesis.sim.core.agent import Agent, AgentAction
from genesis.sim.core.config import SimulationConfig
from genesis.sim.core.errors import ConfigurationError, InvariantViolation
from genesis.sim.core.memory import MemoryType
from genesis.sim.core.rng import DeterministicRng
from genesis.sim.core.state import Resource, ResourceKind, TimelineCategory, WeatherCondition
from genesis.sim.core.world import (
    Simulation,
    initialize_world,
    set_environmental_parameter,
    set_weather_condition,
    tick,
    trigger_catastrophe,
)
from genesis.sim.systems.timeline import detect_timeline_events
from genesis.sim.types.metrics import SimulationStatistics
from genesis.sim.types.snapshot import world_to_dict


def mean_water(world) -> float:
    cells = [cell for column in world.cell_grid for cell in column]
    return sum(cell.resources.water for cell in cells) / len(cells)


def test_initial_world_seeds_adam_and_eve():
    config = SimulationConfig()
    world = initialize_world(config, DeterministicRng(config.seed))

    adam, eve = world.agents
    assert (adam.id, eve.id) == ("adam", "eve")
    assert tuple(adam.position) == (-2.0, 0.0, 0.0)
    assert tuple(eve.position) == (2.0, 0.0, 0.0)
    for agent in (adam, eve):
        assert agent.energy == 100.0
        assert agent.generation == 1
        assert agent.consciousness > 0.0
    assert len(world.resources) == 50
    assert len(world.cell_grid) == 10 and len(world.cell_grid[0]) == 10
    assert world.statistics.population_size == 2
    assert world.time == 0.0
    occupied = {agent_id for column in world.cell_grid for cell in column for agent_id in cell.occupants}
    assert occupied == {"adam", "eve"}


def test_tick_returns_new_state_and_leaves_input_untouched():
    config = SimulationConfig()
    rng = DeterministicRng(config.seed)
    world = initialize_world(config, rng)
    before = world_to_dict(world)

    advanced = tick(world, 0.1, rng, config)

    assert advanced is not world
    assert world_to_dict(world) == before
    assert advanced.time == approx(0.1)
    assert advanced.time_elapsed == approx(0.1)
    assert all(agent.age == approx(0.1) for agent in advanced.agents)


def test_time_scale_multiplies_delta():
    config = SimulationConfig(time_scale=10.0)
    rng = DeterministicRng(config.seed)
    world = initialize_world(config, rng)

    advanced = tick(world, 0.1, rng, config)

    assert advanced.time == approx(1.0)
    assert advanced.day_night_cycle == approx(0.0)


def test_negative_delta_is_rejected():
    config = SimulationConfig()
    rng = DeterministicRng(config.seed)
    world = initialize_world(config, rng)
    with pytest.raises(ConfigurationError):
        tick(world, -1.0, rng, config)


def test_same_seed_produces_identical_runs():
    sim_a = Simulation(SimulationConfig(seed=99))
    sim_b = Simulation(SimulationConfig(seed=99))
    for _ in range(40):
        sim_a.step()
        sim_b.step()
    assert world_to_dict(sim_a.state) == world_to_dict(sim_b.state)


def test_invariants_hold_over_a_long_run(breeding_config):
    config = breeding_config
    sim = Simulation(config)
    for _ in range(150):
        sim.step(1.0)
        for agent in sim.state.agents:
            assert 0.0 <= agent.energy <= config.behavior.max_energy
            assert 0.0 <= agent.consciousness <= 100.0
            assert len(agent.memory) <= config.behavior.memory_capacity
            for value in agent.traits.as_dict().values():
                assert 0.0 <= value <= 1.0
        for resource in sim.state.resources:
            assert resource.amount >= 0.0
        assert len(sim.state.agents) <= config.world.max_agents


def test_colocated_ready_pair_produces_offspring(breeding_config):
    sim = Simulation(breeding_config)

    metrics = None
    for _ in range(5):
        metrics = sim.step()
        if metrics.births:
            break

    assert metrics.births == 1
    state = sim.state
    (child,) = [agent for agent in state.agents if agent.id not in ("adam", "eve")]
    assert child.generation == 2
    assert child.energy == approx(50.0)
    assert child.scale == approx(0.7)
    assert child.age == 0.0
    assert tuple(child.position) == (0.0, 0.0, 0.0)
    birth_memories = [m for m in child.memory if m.type is MemoryType.OBSERVATION]
    assert birth_memories[0].subject_ids == ("adam", "eve")

    for parent_id in ("adam", "eve"):
        parent = state.find_agent(parent_id)
        assert parent.energy == approx(80.0, abs=0.1)
        assert parent.last_reproduction_time == approx(state.time)
        assert any(
            m.type is MemoryType.ACTION and m.action == "reproduce" and m.offspring_id == child.id
            for m in parent.memory
        )

    births = [event for event in state.events if event.type == "birth"]
    assert births[-1].affected_agents == ("adam", "eve", child.id)
    assert any(event.title == "New Generation" for event in state.timeline)
    assert state.statistics.total_generations == 2


def hungry_world(*others: Agent):
    config = SimulationConfig()
    rng = DeterministicRng(1)
    world = initialize_world(config, rng)
    hungry = Agent(id="a", position=Vector3(), energy=20.0, age=0.0, lifespan=1000.0, generation=1)
    world.agents = [hungry, *others]
    world.resources = [Resource(id="f", kind=ResourceKind.FOOD, position=Vector3(1.0, 0.0, 0.0), amount=50.0)]
    return config, rng, world


def test_hungry_agent_walks_toward_sensed_food_during_a_tick():
    config, rng, world = hungry_world()

    advanced = tick(world, 0.1, rng, config)

    agent = advanced.find_agent("a")
    assert agent.last_action is AgentAction.APPROACH
    assert agent.position.x > 0.0
    assert agent.position.z == approx(0.0)
    assert not [m for m in agent.memory if m.type is MemoryType.ACTION and m.action == "consume"]


def test_hungry_agent_steers_toward_nearest_entity_during_a_tick():
    neighbour = Agent(id="b", position=Vector3(0.0, 0.0, 0.5), energy=100.0, age=0.0, lifespan=1000.0, generation=1)
    config, rng, world = hungry_world(neighbour)

    advanced = tick(world, 0.1, rng, config)

    agent = advanced.find_agent("a")
    assert agent.last_action is AgentAction.APPROACH
    assert agent.position.x == approx(0.0)
    assert agent.position.z > 0.0


def test_no_pairing_once_population_cap_is_reached(breeding_config):
    config = breeding_config
    config.world.max_agents = 2
    sim = Simulation(config)
    for _ in range(5):
        sim.step()
    assert len(sim.state.agents) == 2
    assert not [event for event in sim.state.events if event.type == "birth"]


def test_environmental_parameter_is_clamped_on_a_new_state():
    config = SimulationConfig()
    world = initialize_world(config, DeterministicRng(1))

    updated = set_environmental_parameter(world, "temperature", 5.0, config)

    assert updated.environment.temperature == 1.0
    assert world.environment.temperature == 0.5


def test_environmental_parameter_rejects_bad_input():
    config = SimulationConfig()
    world = initialize_world(config, DeterministicRng(1))
    with pytest.raises(ConfigurationError):
        set_environmental_parameter(world, "gravity", 0.5, config)
    with pytest.raises(ConfigurationError):
        set_environmental_parameter(world, "temperature", math.nan, config)
    with pytest.raises(ConfigurationError):
        set_environmental_parameter(world, "temperature", "warm", config)


def test_batch_environment_update_commits_nothing_on_error():
    sim = Simulation(SimulationConfig())
    state = sim.state

    with pytest.raises(ConfigurationError):
        sim.set_environmental_parameters({"temperature": 0.9, "gravity": 1.0})

    assert sim.state is state
    assert sim.state.environment.temperature == 0.5

    sim.set_environmental_parameters({"temperature": 0.9, "resource_abundance": 5.0})
    assert sim.state.environment.temperature == 0.9
    assert sim.state.environment.resource_abundance == 2.0


def test_weather_change_redistributes_cells():
    config = SimulationConfig()
    world = initialize_world(config, DeterministicRng(1))

    dry = set_weather_condition(world, "drought", config)

    assert dry.environment.weather_condition is WeatherCondition.DROUGHT
    assert world.environment.weather_condition is WeatherCondition.CLEAR
    assert mean_water(dry) < mean_water(world)

    restored = set_weather_condition(dry, WeatherCondition.CLEAR, config)
    assert mean_water(restored) == approx(mean_water(world))


def test_unknown_weather_is_rejected():
    config = SimulationConfig()
    world = initialize_world(config, DeterministicRng(1))
    with pytest.raises(ConfigurationError):
        set_weather_condition(world, "hail", config)


def test_catastrophe_damages_resources_and_records_events():
    config = SimulationConfig()
    rng = DeterministicRng(1)
    world = initialize_world(config, rng)

    hit = trigger_catastrophe(world, "flood", 0.5, rng)

    for before, after in zip(world.resources, hit.resources):
        assert after.amount == approx(before.amount * 0.85)
    (entry,) = hit.timeline
    assert entry.category is TimelineCategory.EXTINCTION
    assert entry.significance == 0.5
    event = hit.events[-1]
    assert event.type == "flood"
    assert event.duration == approx(500.0)
    assert event.affected_agents == ("adam", "eve")
    assert world.timeline == []


@pytest.mark.parametrize("intensity", [-0.1, 1.5, math.inf])
def test_catastrophe_intensity_outside_unit_interval_is_rejected(intensity):
    config = SimulationConfig()
    rng = DeterministicRng(1)
    world = initialize_world(config, rng)
    with pytest.raises(ConfigurationError):
        trigger_catastrophe(world, "flood", intensity, rng)


def test_timeline_detection_rules():
    previous = SimulationStatistics(population_size=9, species_count=1, total_generations=1)
    current = SimulationStatistics(
        population_size=10,
        species_count=2,
        total_generations=2,
        language_complexity=0.3,
        social_complexity=0.1,
    )

    events = detect_timeline_events(current, previous, 5.0, DeterministicRng(1))

    assert [(e.category, e.significance) for e in events] == [
        (TimelineCategory.MUTATION, 0.7),
        (TimelineCategory.POPULATION, 0.5),
        (TimelineCategory.LANGUAGE, 0.8),
        (TimelineCategory.POPULATION, 0.4),
    ]
    assert all(e.timestamp == 5.0 for e in events)
    assert detect_timeline_events(current, current, 6.0, DeterministicRng(1)) == []


def test_simulation_time_scale_is_clamped():
    sim = Simulation(SimulationConfig())
    assert sim.set_time_scale(1000.0) == 100.0
    assert sim.set_time_scale(0.01) == approx(0.1)
    assert sim.set_time_scale(2.0) == 2.0
    assert sim.state.time_scale == 2.0
    for bad in (0.0, -1.0, math.nan):
        with pytest.raises(ConfigurationError):
            sim.set_time_scale(bad)


def test_simulation_lookups_return_none_for_unknown_ids():
    sim = Simulation(SimulationConfig())
    sim.step()
    assert sim.get_agent("nobody") is None
    assert sim.agent_memories("nobody") is None
    assert sim.get_agent("adam").id == "adam"
    assert sim.agent_memories("adam") == sim.get_agent("adam").memory


def test_failed_step_keeps_previous_state(monkeypatch):
    sim = Simulation(SimulationConfig())
    state = sim.state

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("genesis.sim.core.world.update_agents", boom)
    with pytest.raises(RuntimeError):
        sim.step()

    assert sim.state is state
    assert sim.tick_count == 0
    assert sim.metrics is None


def test_reentrant_step_is_skipped():
    sim = Simulation(SimulationConfig())
    sim._ticking = True
    assert sim.step() is None
    assert sim.tick_count == 0


def test_step_reports_metrics_and_reset_restores_seed_state():
    sim = Simulation(SimulationConfig(seed=5))
    initial = world_to_dict(sim.state)

    metrics = sim.step()
    assert metrics.tick == 0
    assert metrics.population == 2
    assert metrics.time == approx(0.1)
    assert sim.tick_count == 1

    sim.reset()
    assert sim.tick_count == 0
    assert world_to_dict(sim.state) == initial


def test_snapshot_is_detached_from_live_state():
    sim = Simulation(SimulationConfig())
    snapshot = sim.snapshot()
    snapshot.agents[0].energy = 1.0
    assert sim.state.agents[0].energy == 100.0


def test_strict_mode_raises_on_broken_invariant():
    config = SimulationConfig(strict_invariants=True)
    rng = DeterministicRng(1)
    world = initialize_world(config, rng)
    world.agents[0].traits.curiosity = 2.0
    with pytest.raises(InvariantViolation):
        tick(world, 0.1, rng, config)


def test_elapsed_years_follows_year_length():
    sim = Simulation(SimulationConfig(year_length=2.0))
    for _ in range(10):
        sim.step(0.5)
    assert sim.state.elapsed_years == approx(2.5)
