"""
Parameter fitting helpers.

Scores a parameter set against a learner's review history and proposes
simple heuristic adjustments. This is not a gradient optimizer: it is the
quick feedback loop used before handing history to a dedicated fitter.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from cadence.core.models import Rating
from cadence.scheduler.fsrs import calculate_retention
from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters

AGAIN_RATE_THRESHOLD = 0.3
EASY_RATE_THRESHOLD = 0.4
MSE_THRESHOLD = 0.1


@dataclass
class ReviewRecord:
    """One historical review with the memory state before and after it."""

    item_id: str
    rating: Rating
    elapsed_days: float
    stability_before: float
    difficulty_before: float
    stability_after: float
    difficulty_after: float
    reviewed_at: datetime | None = None


@dataclass
class OptimizationMetrics:
    mse: float = 0.0
    mae: float = 0.0
    correlation: float = 0.0
    review_count: int = 0


def predict_retention(
    stability: float,
    elapsed_days: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> float:
    """Predicted recall probability for a review."""
    return calculate_retention(stability, elapsed_days, params)


def _pearson(x: Sequence[float], y: Sequence[float]) -> float:
    if len(x) != len(y) or not x:
        return 0.0

    n = len(x)
    sum_x, sum_y = sum(x), sum(y)
    sum_xy = sum(a * b for a, b in zip(x, y))
    sum_x2 = sum(a * a for a in x)
    sum_y2 = sum(b * b for b in y)

    numerator = n * sum_xy - sum_x * sum_y
    denominator_sq = (n * sum_x2 - sum_x * sum_x) * (n * sum_y2 - sum_y * sum_y)
    if denominator_sq <= 0:
        return 0.0
    return numerator / math.sqrt(denominator_sq)


def calculate_optimization_metrics(
    history: Sequence[ReviewRecord],
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> OptimizationMetrics:
    """
    Compare predicted retention with observed recall.

    Observed recall is 0 for an Again review and 1 otherwise.
    """
    if not history:
        return OptimizationMetrics()

    predicted = [predict_retention(r.stability_before, r.elapsed_days, params) for r in history]
    actual = [0.0 if r.rating is Rating.AGAIN else 1.0 for r in history]
    errors = [a - p for a, p in zip(actual, predicted)]

    return OptimizationMetrics(
        mse=sum(e * e for e in errors) / len(errors),
        mae=sum(abs(e) for e in errors) / len(errors),
        correlation=_pearson(predicted, actual),
        review_count=len(history),
    )


def suggest_parameter_adjustments(
    history: Sequence[ReviewRecord],
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> dict[int, float]:
    """
    Heuristic weight changes keyed by weight index.

    Apply with ``params.with_adjustments(suggestions)``.
    """
    if not history:
        return {}

    suggestions: dict[int, float] = {}
    metrics = calculate_optimization_metrics(history, params)
    counts = Counter(r.rating for r in history)
    total = len(history)

    # Too many misses: start items with more stability
    if counts[Rating.AGAIN] / total > AGAIN_RATE_THRESHOLD:
        suggestions[0] = params.w[0] * 1.1

    # Mostly easy: seed a lower difficulty
    if counts[Rating.EASY] / total > EASY_RATE_THRESHOLD:
        suggestions[1] = params.w[1] * 0.95
        suggestions[2] = params.w[2] * 0.95

    if counts[Rating.AGAIN] > counts[Rating.GOOD]:
        suggestions[3] = params.w[3] * 0.9

    if metrics.mse > MSE_THRESHOLD:
        suggestions[7] = params.w[7] * 1.1
        suggestions[9] = params.w[9] * 1.05

    return suggestions
