"""
Attention/Fatigue Index (AFI).

AFI = average recent response time / current response time.
1.0 is baseline; values below 1.0 mean the learner is slowing down.
"""
from __future__ import annotations

from collections.abc import Sequence

from cadence.scheduler.normalization import normalize_response_time

NO_HISTORY_AFI = 1.0
INSTANT_RESPONSE_AFI = 2.0


def calculate_afi(current_response_ms: float, recent_response_times: Sequence[float]) -> float:
    """
    Compare the current response time with the recent average.

    Args:
        current_response_ms: This review's response time
        recent_response_times: Response times of recent reviews (ms)

    Returns:
        AFI score (1.0 with no history, 2.0 for a zero response time)
    """
    if not recent_response_times:
        return NO_HISTORY_AFI

    recent = [normalize_response_time(t) for t in recent_response_times]
    average = sum(recent) / len(recent)

    current = normalize_response_time(current_response_ms)
    if current == 0:
        return INSTANT_RESPONSE_AFI
    return average / current
