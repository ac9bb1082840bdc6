from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class GenesisError(Exception):
    pass


class ConfigurationError(GenesisError, ValueError):
    """Rejected input at a setter boundary (unknown key, bad value)."""


class InvariantViolation(GenesisError):
    """A core invariant was broken; only raised in strict mode."""


def enforce_range(
    name: str,
    value: float,
    low: float,
    high: float,
    strict: bool,
) -> float:
    """Return ``value`` if it lies in ``[low, high]``.

    In strict mode an out-of-range value raises ``InvariantViolation``;
    otherwise it is clamped and a warning is logged.
    """
    if low <= value <= high:
        return value
    if strict:
        raise InvariantViolation(f"{name}={value!r} outside [{low}, {high}]")
    clamped = max(low, min(high, value))
    logger.warning("clamped %s from %r to %r", name, value, clamped)
    return clamped
