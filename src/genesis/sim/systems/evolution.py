from __future__ import annotations

import math
from typing import Iterable

from ..core.agent import TRAIT_NAMES, Agent, AgentTraits
from ..core.config import EvolutionConfig
from ..core.rng import DeterministicRng
from ..utils.math3d import _clamp01, _clamp_value


def _parse_hex(color: str) -> tuple[int, int, int]:
    return int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)


def _format_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def _channel(value: float) -> int:
    return int(_clamp_value(value, 0.0, 255.0))


def mutate_color(color: str, mutation_rate: float, rng: DeterministicRng, scale: float = 50.0) -> str:
    if rng.next_float() > mutation_rate * 2.0:
        return color
    factor = mutation_rate * scale
    r, g, b = _parse_hex(color)
    shifted = [_channel(math.floor(channel + rng.next_range(-factor, factor) + 0.5)) for channel in (r, g, b)]
    return _format_hex(*shifted)


def blend_colors(color_a: str, color_b: str, rng: DeterministicRng, jitter: float = 10.0) -> str:
    channels_a = _parse_hex(color_a)
    channels_b = _parse_hex(color_b)
    blended = [
        _channel(math.floor((a + b) / 2.0 + rng.next_range(-jitter, jitter)))
        for a, b in zip(channels_a, channels_b)
    ]
    return _format_hex(*blended)


def mutate_agent(agent: Agent, rng: DeterministicRng, config: EvolutionConfig | None = None) -> Agent:
    """Return a mutated copy of ``agent``.

    Every mutable scalar mutates independently with probability equal to the
    agent's own mutation rate. Perception radius and movement speed mutate in
    a normalized space, so they stay within ``[0, scale]``.
    """
    config = config or EvolutionConfig()
    rate = agent.mutation_rate

    def _mutate(value: float, factor: float) -> float:
        if rng.next_float() < rate:
            return _clamp01(value + rng.next_range(-factor, factor))
        return value

    strength = config.mutation_factor
    mutated = agent.copy()
    mutated.perception_radius = _mutate(agent.perception_radius / config.perception_scale, strength) * config.perception_scale
    mutated.movement_speed = _mutate(agent.movement_speed / config.speed_scale, strength) * config.speed_scale

    # the factor starts at 1.0 and is clamped to [0, 1], so lifespans never grow
    mutated.lifespan = agent.lifespan * _mutate(1.0, config.lifespan_mutation_factor)
    mutated.mutation_rate = _mutate(agent.mutation_rate, config.mutation_rate_drift)

    mutated.traits = AgentTraits(**{name: _mutate(getattr(agent.traits, name), strength) for name in TRAIT_NAMES})
    mutated.color = mutate_color(agent.color, rate, rng, config.color_mutation_scale)
    return mutated


def trait_distance(a: AgentTraits, b: AgentTraits) -> float:
    diffs = [abs(getattr(a, name) - getattr(b, name)) for name in TRAIT_NAMES]
    return sum(diffs) / len(diffs) if diffs else 1.0


def is_new_species(agent: Agent, population: Iterable[Agent], threshold: float = 0.3) -> bool:
    """True when no other agent's traits are within ``threshold`` of ``agent``."""
    for other in population:
        if other.id == agent.id:
            continue
        if trait_distance(agent.traits, other.traits) < threshold:
            return False
    return True


def species_signature(agent: Agent) -> tuple[int, int]:
    # decile buckets; halves round up
    return (
        int(math.floor(agent.traits.curiosity * 10.0 + 0.5)),
        int(math.floor(agent.traits.social_affinity * 10.0 + 0.5)),
    )


def count_species(agents: Iterable[Agent]) -> int:
    return len({species_signature(agent) for agent in agents})
