"""
Priority & Balance Engine.

Builds a study queue from scheduled items:
1. Keep eligible items
2. Score each under the selected strategy
3. Sort by priority (descending, stable)
4. Rebalance new vs. review items to a target ratio
5. Cap at max_size
6. Optionally shuffle (after prioritization only)
7. Assign 1-based positions

Balancing note: when one bucket has fewer eligible items than its share,
the shortfall is NOT redistributed to the other bucket.
"""
from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from loguru import logger

from cadence.core.models import CardState, EligibilityResult, QueueItem, ScheduleState
from cadence.scheduler.normalization import normalize_difficulty, normalize_stability
from cadence.study.eligibility import EligibilityOptions, check_eligibility

DEFAULT_MAX_SIZE = 50
DEFAULT_NEW_CARD_RATIO = 0.3
NEW_FIRST_BONUS = 1000.0
BALANCED_NEW_BONUS = 500.0


class QueueStrategy(str, Enum):
    """Prioritization strategies."""
    DUE_FIRST = "due_first"
    NEW_FIRST = "new_first"
    DIFFICULTY = "difficulty"
    STABILITY = "stability"
    BALANCED = "balanced"


@dataclass
class QueueOptions(EligibilityOptions):
    """Eligibility options plus queue shaping."""
    max_size: Optional[int] = DEFAULT_MAX_SIZE
    strategy: QueueStrategy | str = QueueStrategy.BALANCED
    balance_new_and_review: bool = True
    new_card_ratio: Optional[float] = DEFAULT_NEW_CARD_RATIO
    shuffle: bool = False
    rng: Optional[random.Random] = None


# =============================================================================
# Priority
# =============================================================================


def calculate_priority(
    state: ScheduleState,
    eligibility: EligibilityResult,
    strategy: QueueStrategy | str = QueueStrategy.BALANCED,
    options: Optional[QueueOptions] = None,
) -> float:
    """
    Priority score for an eligible item (higher = sooner).

    Raises:
        ValueError: for an unknown strategy name
    """
    strategy = QueueStrategy(strategy)
    params = (options or QueueOptions()).params
    days_until_due = eligibility.context.days_until_due
    is_new = eligibility.context.is_new
    stability = normalize_stability(state.stability, params)
    difficulty = normalize_difficulty(state.difficulty, params)

    if strategy is QueueStrategy.DUE_FIRST:
        return float(-days_until_due)

    if strategy is QueueStrategy.NEW_FIRST:
        return NEW_FIRST_BONUS if is_new else float(-days_until_due)

    if strategy is QueueStrategy.DIFFICULTY:
        return difficulty * 100 - days_until_due

    if strategy is QueueStrategy.STABILITY:
        return (1 / stability) * 100 - days_until_due

    # Balanced: overdue urgency, new bonus, difficulty, instability
    priority = 0.0
    if days_until_due < 0:
        priority += abs(days_until_due) * 10
    if is_new:
        priority += BALANCED_NEW_BONUS
    priority += difficulty * 5
    priority += (1 / (stability + 1)) * 20
    return priority


# =============================================================================
# Balancing / shuffling
# =============================================================================


def balance_queue(items: list[QueueItem], options: QueueOptions) -> list[QueueItem]:
    """
    Split into new and non-new buckets and cap each at its share.

    Buckets keep their priority order; the union is re-sorted by priority.
    """
    ratio = DEFAULT_NEW_CARD_RATIO if options.new_card_ratio is None else options.new_card_ratio
    ratio = max(0.0, min(1.0, ratio))
    max_size = options.max_size or len(items)

    target_new = math.floor(max_size * ratio)
    target_review = max_size - target_new

    new_items = [item for item in items if item.is_new][:target_new]
    review_items = [item for item in items if not item.is_new][:target_review]

    combined = new_items + review_items
    combined.sort(key=lambda item: item.priority, reverse=True)
    return combined


def shuffle_items(items: list[QueueItem], rng: random.Random) -> list[QueueItem]:
    """Fisher-Yates shuffle into a new list."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


# =============================================================================
# Queue
# =============================================================================


def build_queue(
    states: list[ScheduleState],
    options: Optional[QueueOptions] = None,
) -> list[QueueItem]:
    """
    Build a prioritized queue.

    Args:
        states: Candidate schedules
        options: Queue options (defaults: balanced, 50 items, 30% new)

    Returns:
        Queue items with 1-based positions

    Raises:
        ValueError: for an unknown strategy name
    """
    options = options or QueueOptions()
    strategy = QueueStrategy(options.strategy)

    items: list[QueueItem] = []
    for state in states:
        eligibility = check_eligibility(state, options)
        if not eligibility.eligible:
            continue
        items.append(QueueItem(
            item_id=state.item_id,
            schedule=state,
            eligibility=eligibility,
            priority=calculate_priority(state, eligibility, strategy, options),
        ))

    if not items:
        logger.debug(f"No eligible items among {len(states)} candidates")
        return []

    items.sort(key=lambda item: item.priority, reverse=True)

    if options.balance_new_and_review:
        items = balance_queue(items, options)

    if options.max_size is not None and len(items) > options.max_size:
        items = items[: options.max_size]

    if options.shuffle:
        items = shuffle_items(items, options.rng or random.Random())

    for index, item in enumerate(items, start=1):
        item.position = index

    logger.info(
        f"Built {strategy.value} queue: {len(items)} of {len(states)} items "
        f"({sum(1 for i in items if i.is_new)} new)"
    )
    return items


def get_queue_stats(queue: list[QueueItem]) -> dict[str, Any]:
    """Counts by stage plus average priority, difficulty and stability."""
    stats: dict[str, Any] = {
        "total": len(queue),
        "new": 0,
        "learning": 0,
        "review": 0,
        "relearning": 0,
        "overdue": 0,
        "average_priority": 0.0,
        "average_difficulty": 0.0,
        "average_stability": 0.0,
    }
    if not queue:
        return stats

    for item in queue:
        if item.is_new:
            stats["new"] += 1
        if item.schedule.state is CardState.LEARNING:
            stats["learning"] += 1
        elif item.schedule.state is CardState.REVIEW:
            stats["review"] += 1
        elif item.schedule.state is CardState.RELEARNING:
            stats["relearning"] += 1
        if item.eligibility.context.is_overdue:
            stats["overdue"] += 1

    total = len(queue)
    stats["average_priority"] = sum(i.priority for i in queue) / total
    stats["average_difficulty"] = sum(normalize_difficulty(i.schedule.difficulty) for i in queue) / total
    stats["average_stability"] = sum(normalize_stability(i.schedule.stability) for i in queue) / total
    return stats
