"""Consciousness score: the product of three normalized factors.

Integration (how much the agent takes in), self-modeling (how much it
remembers about itself) and decision freedom (how unconstrained it is).
Multiplying the factors means any single factor at zero gates the whole
score to zero.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..core.agent import Agent
from ..core.memory import MemoryType, count_memories, distinct_memory_types
from ..utils.math3d import _clamp01, _clamp_value

ACTION_VARIETY = 0.7
MEMORY_TYPE_COUNT = len(MemoryType)


@dataclass(frozen=True, slots=True)
class ConsciousnessComponents:
    integration: float
    self_modeling: float
    decision_freedom: float


def _integration(agent: Agent) -> float:
    traits = agent.traits
    trait_factor = traits.curiosity * 0.3 + traits.adaptability * 0.4 + traits.exploration * 0.3
    perception_factor = min(1.0, agent.sensors.active_channels() / 4.0)
    memory_factor = min(1.0, len(agent.memory) / 20.0)
    resource_awareness = agent.sensors.resource_levels.mean()
    return _clamp01(trait_factor * 0.4 + perception_factor * 0.3 + memory_factor * 0.2 + resource_awareness * 0.1)


def _self_modeling(agent: Agent) -> float:
    self_memories = count_memories(agent.memory, MemoryType.ACTION, MemoryType.FEEDBACK)
    memory_factor = min(1.0, self_memories / 15.0)
    variety_factor = distinct_memory_types(agent.memory) / MEMORY_TYPE_COUNT
    generation_factor = min(1.0, agent.generation / 10.0)
    age_factor = min(1.0, agent.age / agent.lifespan) if agent.lifespan > 0 else 1.0
    return _clamp01(memory_factor * 0.3 + variety_factor * 0.3 + generation_factor * 0.2 + age_factor * 0.2)


def _decision_freedom(agent: Agent) -> float:
    energy_factor = min(1.0, agent.energy / 100.0)
    environmental_freedom = agent.sensors.resource_levels.mean()
    social_freedom = max(0.0, 1.0 - agent.sensors.nearby_agent_count() / 10.0)
    return _clamp01(
        energy_factor * 0.3 + ACTION_VARIETY * 0.3 + environmental_freedom * 0.2 + social_freedom * 0.2
    )


def calculate_consciousness_components(agent: Agent) -> ConsciousnessComponents:
    return ConsciousnessComponents(
        integration=_integration(agent),
        self_modeling=_self_modeling(agent),
        decision_freedom=_decision_freedom(agent),
    )


def calculate_consciousness(agent: Agent) -> float:
    components = calculate_consciousness_components(agent)
    raw = components.integration * components.self_modeling * components.decision_freedom
    return _clamp_value(raw * 100.0, 0.0, 100.0)


def meets_consciousness_threshold(agent: Agent) -> bool:
    return agent.consciousness >= agent.reproduction_threshold
