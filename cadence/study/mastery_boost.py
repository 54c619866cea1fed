"""
Mastery Boost.

A confident answer on an item that is still being learned is evidence
about its semantic neighbours: their next due date is pushed out by a
small fraction of their current interval.

Only future due dates are moved. Items already due (or overdue) keep their
due date so a boost can never hide work the learner owes.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger

from cadence.core.models import CardState, Rating, ScheduleState
from cadence.core.timeutils import ensure_aware, utc_now

EASY_BOOST = 0.07
DEFAULT_BOOST = 0.05
MIN_BOOST_SCORE = 2


@dataclass(frozen=True)
class BoostUpdate:
    """New due date for one neighbour."""
    item_id: str
    previous_due_at: datetime
    new_due_at: datetime
    magnitude: float


def boost_magnitude(rating: Rating, new_state: CardState) -> float:
    """
    Fraction of the current interval to add to each neighbour.

    0.0 when no boost applies: the score is below GOOD or the reviewed item
    is in REVIEW.
    """
    rating = Rating.from_label(rating)
    if rating.score < MIN_BOOST_SCORE or new_state is CardState.REVIEW:
        return 0.0
    return EASY_BOOST if rating is Rating.EASY else DEFAULT_BOOST


def apply_boost(
    source_item_id: str,
    rating: Rating,
    new_state: CardState,
    similar_item_ids: Sequence[str],
    targets: Mapping[str, ScheduleState],
    now: Optional[datetime] = None,
) -> list[BoostUpdate]:
    """
    Compute the boost batch for a review.

    Args:
        source_item_id: Reviewed item
        rating: Review grade
        new_state: Reviewed item's stage after the review
        similar_item_ids: Neighbours of the reviewed item
        targets: Current schedules of the neighbours, by item id
        now: Review time

    Returns:
        Updates to apply atomically; empty when no boost applies
    """
    magnitude = boost_magnitude(rating, new_state)
    if magnitude == 0.0 or not similar_item_ids:
        return []

    now = ensure_aware(now) if now else utc_now()
    updates: list[BoostUpdate] = []

    for item_id in similar_item_ids:
        if item_id == source_item_id:
            continue
        target = targets.get(item_id)
        if target is None or target.last_reviewed_at is None:
            continue
        due_at = ensure_aware(target.due_at)
        if due_at <= now:
            continue

        interval = due_at - ensure_aware(target.last_reviewed_at)
        updates.append(BoostUpdate(
            item_id=item_id,
            previous_due_at=due_at,
            new_due_at=due_at + interval * magnitude,
            magnitude=magnitude,
        ))

    if updates:
        logger.debug(f"Boost from {source_item_id}: {len(updates)} neighbours +{magnitude:.0%}")
    return updates
