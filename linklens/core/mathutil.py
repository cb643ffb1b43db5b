"""
Numeric helpers shared by the scoring components.

Scores are reported as integers in [0, 100] and every ratio guards its
denominator. Rounding is half-up (2.5 -> 3), which is what the product's
published numbers use; Python's built-in round() would give banker's rounding.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

SCORE_MIN = 0
SCORE_MAX = 100


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding towards +infinity."""
    if math.isnan(value) or math.isinf(value):
        return 0
    return math.floor(value + 0.5)


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into [0, 100]."""
    return max(SCORE_MIN, min(SCORE_MAX, round_half_up(value)))


def clamp_percent(value: float | None) -> float:
    """A percentage forced into [0, 100]; None counts as 0."""
    if value is None:
        return 0.0
    return max(0.0, min(100.0, value))


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """numerator / denominator, or default when the denominator is zero."""
    if not denominator:
        return default
    return numerator / denominator


def percent(count: float, total: float) -> float:
    """Unrounded percentage of total (0 when total is zero)."""
    return safe_ratio(count, total) * 100


def percent_int(count: float, total: float) -> int:
    """Half-up rounded percentage of total (0 when total is zero)."""
    return round_half_up(percent(count, total))


def mean(values: Iterable[float], default: float = 0.0) -> float:
    items = list(values)
    if not items:
        return default
    return sum(items) / len(items)
