from __future__ import annotations

from pygame.math import Vector3
from pytest import approx

from genesis.sim.core.agent import Agent, AgentAction
from genesis.sim.core.config import SimulationConfig
from genesis.sim.core.grid import build_cell_grid
from genesis.sim.core.memory import MemoryType
from genesis.sim.core.rng import DeterministicRng
from genesis.sim.core.state import Resource, ResourceKind
from genesis.sim.systems.behavior import Decision, act, decide, enforce_agent_invariants, sense, update_agents


def make_agent(agent_id: str = "a", **overrides) -> Agent:
    values = dict(id=agent_id, position=Vector3(), energy=100.0, age=0.0, lifespan=1000.0, generation=1)
    values.update(overrides)
    return Agent(**values)


def grid_fixtures():
    config = SimulationConfig()
    rng = DeterministicRng(3)
    grid = build_cell_grid(config.world, rng)
    return config, rng, grid


def test_agent_with_no_energy_dies_before_acting():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=0.0)

    update = update_agents([agent], [], grid, 0.1, 0.1, rng, config)

    assert update.survivors == []
    assert len(update.events) == 1
    assert update.events[0].type == "death"
    assert update.events[0].affected_agents == ("a",)


def test_metabolism_can_starve_an_agent():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=0.005)

    update = update_agents([agent], [], grid, 0.1, 0.1, rng, config)

    assert update.survivors == []
    assert "starvation" in update.events[0].description


def test_agent_dies_of_old_age():
    config, rng, grid = grid_fixtures()
    agent = make_agent(age=999.95)

    update = update_agents([agent], [], grid, 0.1, 0.1, rng, config)

    assert update.survivors == []
    assert "old age" in update.events[0].description


def test_hungry_agent_consumes_nearby_food_when_enabled():
    config, rng, grid = grid_fixtures()
    config.behavior.consume_when_adjacent = True
    agent = make_agent(energy=10.0)
    food = Resource(id="f1", kind=ResourceKind.FOOD, position=Vector3(0.5, 0.0, 0.0), amount=50.0)

    update = update_agents([agent], [food], grid, 0.1, 0.1, rng, config)

    (survivor,) = update.survivors
    assert survivor.last_action is AgentAction.CONSUME
    # ten units at five energy each, minus one tick of metabolism
    assert survivor.energy == approx(10.0 - 0.01 + 50.0)
    assert food.amount == approx(40.0)
    consumed = [m for m in survivor.memory if m.type is MemoryType.ACTION and m.action == "consume"]
    assert consumed and consumed[0].target_id == "f1"
    # input agent is untouched
    assert agent.energy == 10.0
    assert agent.memory == []


def test_energy_is_capped_when_consuming():
    config, rng, grid = grid_fixtures()
    config.behavior.consume_when_adjacent = True
    config.behavior.consume_max_amount = 20.0
    agent = make_agent(energy=29.0)
    food = Resource(id="f1", kind=ResourceKind.FOOD, position=Vector3(0.0, 0.0, 1.0), amount=100.0)

    update = update_agents([agent], [food], grid, 0.1, 0.1, rng, config)

    assert update.survivors[0].energy == approx(config.behavior.max_energy)


def test_hungry_agent_without_food_explores():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=10.0)
    sense(agent, [agent], [], grid, config)

    assert decide(agent, {agent.id: agent}, rng, config).action is AgentAction.EXPLORE


def test_hungry_agent_approaches_distant_food():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=10.0)
    food = Resource(id="f1", kind=ResourceKind.FOOD, position=Vector3(5.0, 0.0, 0.0), amount=50.0)
    sense(agent, [agent], [food], grid, config)

    decision = decide(agent, {agent.id: agent}, rng, config)

    assert decision.action is AgentAction.APPROACH


def test_hungry_agent_approaches_adjacent_food_by_default():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=10.0)
    food = Resource(id="f1", kind=ResourceKind.FOOD, position=Vector3(1.0, 0.0, 0.0), amount=50.0)

    update = update_agents([agent], [food], grid, 0.1, 0.1, rng, config)

    (survivor,) = update.survivors
    assert survivor.last_action is AgentAction.APPROACH
    assert survivor.position.x > 0.0
    assert food.amount == 50.0


def test_approach_heads_for_nearest_entity_of_any_kind():
    config, rng, grid = grid_fixtures()
    agent = make_agent(energy=10.0, movement_speed=1.0)
    other = make_agent("b", position=Vector3(0.0, 0.0, 2.0))
    food = Resource(id="f", kind=ResourceKind.FOOD, position=Vector3(5.0, 0.0, 0.0), amount=50.0)
    sense(agent, [agent, other], [food], grid, config)

    decision = decide(agent, {"a": agent, "b": other}, rng, config)
    act(agent, decision, {"f": food}, rng, config, 0.1, 0.1)

    assert decision.action is AgentAction.APPROACH
    assert agent.velocity.x == approx(0.0)
    assert agent.velocity.z == approx(1.0)
    assert agent.position.z == approx(0.1)


def test_steering_normalizes_the_full_direction_and_drops_height():
    config, rng, grid = grid_fixtures()
    water = Resource(id="w", kind=ResourceKind.WATER, position=Vector3(3.0, 4.0, 0.0), amount=50.0)

    toward = make_agent(movement_speed=2.0)
    sense(toward, [toward], [water], grid, config)
    act(toward, Decision(AgentAction.APPROACH), {}, rng, config, 0.1, 0.1)
    assert tuple(toward.velocity) == approx((1.2, 0.0, 0.0))

    away = make_agent(movement_speed=2.0)
    sense(away, [away], [water], grid, config)
    act(away, Decision(AgentAction.AVOID), {}, rng, config, 0.1, 0.1)
    assert tuple(away.velocity) == approx((-1.2, 0.0, 0.0))


def test_sense_ignores_entities_beyond_perception_radius():
    config, rng, grid = grid_fixtures()
    agent = make_agent(perception_radius=10.0)
    near = make_agent("near", position=Vector3(5.0, 0.0, 0.0))
    far = make_agent("far", position=Vector3(20.0, 0.0, 0.0))
    water = Resource(id="w1", kind=ResourceKind.WATER, position=Vector3(0.0, 0.0, 9.0), amount=80.0)
    distant_water = Resource(id="w2", kind=ResourceKind.WATER, position=Vector3(0.0, 0.0, 30.0), amount=80.0)

    sense(agent, [agent, near, far], [water, distant_water], grid, config)

    assert sorted(entry.id for entry in agent.sensors.proximity) == ["near", "w1"]
    assert agent.sensors.nearby_agent_count() == 1
    assert agent.sensors.resource_levels.mean() > 0.0


def test_ready_agents_choose_to_reproduce_together():
    config, rng, grid = grid_fixtures()
    adam = make_agent("adam", age=1.0, reproduction_threshold=0.0, reproduction_cooldown=0.0)
    eve = make_agent("eve", position=Vector3(1.0, 0.0, 0.0), age=1.0, reproduction_threshold=0.0, reproduction_cooldown=0.0)
    sense(adam, [adam, eve], [], grid, config)

    decision = decide(adam, {"adam": adam, "eve": eve}, rng, config)

    assert decision.action is AgentAction.REPRODUCE
    assert decision.target_id == "eve"


def test_ready_agent_approaches_partner_that_is_not_ready():
    config, rng, grid = grid_fixtures()
    adam = make_agent("adam", age=1.0, reproduction_threshold=0.0, reproduction_cooldown=0.0)
    eve = make_agent("eve", position=Vector3(1.0, 0.0, 0.0), reproduction_threshold=0.0, reproduction_cooldown=0.0)
    sense(adam, [adam, eve], [], grid, config)

    decision = decide(adam, {"adam": adam, "eve": eve}, rng, config)

    assert decision.action is AgentAction.APPROACH


def test_movement_stays_inside_world_bounds():
    config, rng, grid = grid_fixtures()
    half = config.world.half_size
    agent = make_agent(position=Vector3(half, 0.0, -half), movement_speed=50.0)

    for _ in range(20):
        update = update_agents([agent], [], grid, 1.0, 1.0, rng, config)
        agent = update.survivors[0]
        assert -half <= agent.position.x <= half
        assert -half <= agent.position.z <= half


def test_invariants_are_repaired_outside_strict_mode():
    config, _, _ = grid_fixtures()
    agent = make_agent(energy=150.0)
    agent.consciousness = -3.0
    agent.traits.curiosity = 1.4

    enforce_agent_invariants(agent, config)

    assert agent.energy == config.behavior.max_energy
    assert agent.consciousness == 0.0
    assert agent.traits.curiosity == 1.0
