"""Clamping helpers and invariant guards.

Out-of-range *inputs* are clamped silently. Out-of-range *state* (a
strictness level outside 1-5, a probability outside 0-1, a negative
session duration) means a bug somewhere upstream: with strict invariants
enabled it raises InvariantViolation, otherwise it is clamped and logged
so the user-facing experience keeps working.
"""

from __future__ import annotations

from tools.logging_config import get_logger


logger = get_logger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 5


class PersonalizationError(Exception):
    """Base class for engine errors."""


class InvariantViolation(PersonalizationError):
    """A state value fell outside its documented range."""


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def _violation(kind: str, value, repaired, strict: bool):
    if strict:
        raise InvariantViolation(f"{kind} out of range: {value!r}")
    logger.warning("invariant_clamped", kind=kind, value=value, repaired=repaired)
    return repaired


def check_level(level: int, strict: bool = False) -> int:
    if MIN_LEVEL <= level <= MAX_LEVEL:
        return level
    return _violation("strictness_level", level, int(clamp(level, MIN_LEVEL, MAX_LEVEL)), strict)


def check_probability(probability: float, strict: bool = False) -> float:
    if 0.0 <= probability <= 1.0:
        return probability
    return _violation("probability", probability, clamp(probability), strict)


def check_duration(duration_ms: int, strict: bool = False) -> int:
    if duration_ms >= 0:
        return duration_ms
    return _violation("session_duration", duration_ms, 0, strict)


__all__ = [
    "MAX_LEVEL",
    "MIN_LEVEL",
    "InvariantViolation",
    "PersonalizationError",
    "check_duration",
    "check_level",
    "check_probability",
    "clamp",
]
