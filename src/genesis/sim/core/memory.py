from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, List, Optional, Tuple, Union


class MemoryType(str, Enum):
    ENCOUNTER = "encounter"
    ACTION = "action"
    FEEDBACK = "feedback"
    OBSERVATION = "observation"


@dataclass(frozen=True, slots=True)
class EncounterMemory:
    timestamp: float
    intensity: float
    other_id: str
    distance: float = 0.0
    type: ClassVar[MemoryType] = MemoryType.ENCOUNTER


@dataclass(frozen=True, slots=True)
class ActionMemory:
    timestamp: float
    intensity: float
    action: str
    target_id: Optional[str] = None
    partner_id: Optional[str] = None
    offspring_id: Optional[str] = None
    resource_kind: Optional[str] = None
    amount: float = 0.0
    type: ClassVar[MemoryType] = MemoryType.ACTION


@dataclass(frozen=True, slots=True)
class FeedbackMemory:
    timestamp: float
    intensity: float
    signal: str
    value: float = 0.0
    type: ClassVar[MemoryType] = MemoryType.FEEDBACK


@dataclass(frozen=True, slots=True)
class ObservationMemory:
    timestamp: float
    intensity: float
    event: str
    subject_ids: Tuple[str, ...] = ()
    type: ClassVar[MemoryType] = MemoryType.OBSERVATION


Memory = Union[EncounterMemory, ActionMemory, FeedbackMemory, ObservationMemory]

MEMORY_CLASSES = {
    MemoryType.ENCOUNTER: EncounterMemory,
    MemoryType.ACTION: ActionMemory,
    MemoryType.FEEDBACK: FeedbackMemory,
    MemoryType.OBSERVATION: ObservationMemory,
}


def _eviction_index(log: List[Memory]) -> int:
    # lowest intensity, then oldest timestamp, then earliest insertion
    best = 0
    for index in range(1, len(log)):
        entry = log[index]
        current = log[best]
        if (entry.intensity, entry.timestamp) < (current.intensity, current.timestamp):
            best = index
    return best


def add_memory(log: List[Memory], entry: Memory, capacity: int) -> None:
    """Append ``entry``, evicting until the log fits ``capacity``."""
    while capacity > 0 and len(log) >= capacity:
        del log[_eviction_index(log)]
    log.append(entry)


def count_memories(log: List[Memory], *types: MemoryType) -> int:
    return sum(1 for entry in log if entry.type in types)


def distinct_memory_types(log: List[Memory]) -> int:
    return len({entry.type for entry in log})
