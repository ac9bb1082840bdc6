from __future__ import annotations

import logging
from typing import List

from ..core.rng import DeterministicRng
from ..core.state import TimelineCategory, TimelineEvent
from ..types.metrics import SimulationStatistics

logger = logging.getLogger(__name__)

POPULATION_MILESTONE = 10
COMPLEXITY_STEP = 0.2


def _event(
    rng: DeterministicRng,
    now: float,
    title: str,
    description: str,
    category: TimelineCategory,
    significance: float,
) -> TimelineEvent:
    logger.info("timeline: %s (%s)", title, description)
    return TimelineEvent(
        id=rng.next_uuid(),
        timestamp=now,
        title=title,
        description=description,
        category=category,
        significance=significance,
    )


def detect_timeline_events(
    current: SimulationStatistics,
    previous: SimulationStatistics,
    now: float,
    rng: DeterministicRng,
) -> List[TimelineEvent]:
    events: List[TimelineEvent] = []

    if current.species_count > previous.species_count:
        events.append(
            _event(
                rng,
                now,
                "New Species Evolved",
                f"A new species has evolved, bringing the total to {current.species_count}.",
                TimelineCategory.MUTATION,
                0.7,
            )
        )

    milestone = current.population_size // POPULATION_MILESTONE
    if milestone > previous.population_size // POPULATION_MILESTONE:
        events.append(
            _event(
                rng,
                now,
                "Population Milestone",
                f"The population has reached {milestone * POPULATION_MILESTONE} individuals.",
                TimelineCategory.POPULATION,
                0.5,
            )
        )

    if current.language_complexity > previous.language_complexity + COMPLEXITY_STEP:
        events.append(
            _event(
                rng,
                now,
                "Communication Evolution",
                "The agents have developed more complex communication patterns.",
                TimelineCategory.LANGUAGE,
                0.8,
            )
        )

    if current.social_complexity > previous.social_complexity + COMPLEXITY_STEP:
        events.append(
            _event(
                rng,
                now,
                "Social Structure Formed",
                "Agents have begun forming more complex social structures.",
                TimelineCategory.SOCIAL,
                0.7,
            )
        )

    if current.total_generations > previous.total_generations:
        events.append(
            _event(
                rng,
                now,
                "New Generation",
                f"Generation {current.total_generations} has emerged.",
                TimelineCategory.POPULATION,
                0.4,
            )
        )
    return events


def catastrophe_event(kind: str, intensity: float, now: float, rng: DeterministicRng) -> TimelineEvent:
    return _event(
        rng,
        now,
        f"{kind} Catastrophe",
        f"A {kind} catastrophe of intensity {intensity} has occurred.",
        TimelineCategory.EXTINCTION,
        intensity,
    )
