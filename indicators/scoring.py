"""
Score normalization and status classification for KPI results.
"""
from typing import Optional

from .domain import OptimumType, PerformanceStatus

# Every KPI is scored against the same ceiling/target regardless of its unit.
CANONICAL_TARGET = 100.0
MIN_SCORE = 0.0
MAX_SCORE = 100.0

GOOD_THRESHOLD = 70.0
AVERAGE_THRESHOLD = 40.0


def clamp(value: float, min_val: float, max_val: float) -> float:
    """
    Clamp a value between min and max.

    Args:
        value: Value to clamp
        min_val: Minimum value
        max_val: Maximum value

    Returns:
        Clamped value
    """
    return max(min_val, min(value, max_val))


def normalize(raw_value: float, optimum_type: str) -> float:
    """
    Map a raw KPI result onto the 0-100 performance scale.

    - higher: the raw value itself, capped at 100 (no reward beyond the target)
    - lower: 100 minus the raw value, floored at 0
    - target: 100 minus the distance from 100, floored at 0

    Args:
        raw_value: Evaluated formula result
        optimum_type: One of OptimumType

    Returns:
        Score in [0, 100]

    Raises:
        ValueError: If optimum_type is not a known OptimumType
    """
    raw = float(raw_value)

    if optimum_type == OptimumType.HIGHER:
        score = raw
    elif optimum_type == OptimumType.LOWER:
        score = CANONICAL_TARGET - raw
    elif optimum_type == OptimumType.TARGET:
        score = CANONICAL_TARGET - abs(CANONICAL_TARGET - raw)
    else:
        raise ValueError(f"Invalid optimum_type: {optimum_type}")

    return clamp(score, MIN_SCORE, MAX_SCORE)


def normalize_or_zero(raw_value: Optional[float], optimum_type: str) -> float:
    """Normalize, treating a missing value as a score of 0."""
    if raw_value is None:
        return MIN_SCORE
    return normalize(raw_value, optimum_type)


def classify_score(score: float) -> str:
    """Good from 70, Average from 40, Needs Improvement below. Lower edges are inclusive."""
    if score >= GOOD_THRESHOLD:
        return PerformanceStatus.GOOD
    if score >= AVERAGE_THRESHOLD:
        return PerformanceStatus.AVERAGE
    return PerformanceStatus.NEEDS_IMPROVEMENT


def status_label(score: float) -> str:
    return PerformanceStatus(classify_score(score)).label
