"""
Normalization Utilities.

Numeric guards used by the scheduler and the queue pipeline. Out-of-range
values are clamped and non-finite values are replaced by the parameter
defaults; nothing here raises.
"""

from __future__ import annotations

import math

from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters


def _is_finite(value: float | None) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Clamp ``value`` to [minimum, maximum]; non-finite values become ``minimum``."""
    if not _is_finite(value):
        return minimum
    return max(minimum, min(maximum, value))


def normalize_stability(stability: float, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    """Clamp stability to the parameter bounds; non-finite values become w0."""
    if not _is_finite(stability):
        return params.initial_stability
    return max(params.min_stability, min(params.max_stability, stability))


def normalize_difficulty(difficulty: float, params: FSRSParameters = DEFAULT_PARAMETERS) -> float:
    """Clamp difficulty to the parameter bounds; non-finite values become the initial difficulty."""
    if not _is_finite(difficulty):
        return params.initial_difficulty
    return max(params.min_difficulty, min(params.max_difficulty, difficulty))


def normalize_interval(interval_days: float) -> int:
    """Whole days, at least 1."""
    if not _is_finite(interval_days):
        return 1
    return max(1, math.floor(interval_days))


def normalize_retention(retention: float) -> float:
    if not _is_finite(retention):
        return 0.0
    return max(0.0, min(1.0, retention))


def normalize_response_time(response_time_ms: float | None) -> float:
    """Response times are non-negative milliseconds."""
    if response_time_ms is None or not _is_finite(response_time_ms):
        return 0.0
    return max(0.0, float(response_time_ms))


def normalize_percentage(percentage: float) -> float:
    """Map a 0-1 or 0-100 value to 0-1."""
    if not _is_finite(percentage):
        return 0.0
    if percentage > 1:
        return max(0.0, min(1.0, percentage / 100))
    return max(0.0, min(1.0, percentage))
