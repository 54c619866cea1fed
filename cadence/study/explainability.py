"""
Queue Explainability.

Human-readable reasons for why an item is in the queue and why it is
ranked where it is. Used by the CLI ``--explain`` flag.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from cadence.core.models import PrimaryReason, QueueItem

HARD_DIFFICULTY = 7.0
EASY_DIFFICULTY = 3.0
UNSTABLE_STABILITY = 2.0
ESTABLISHED_STABILITY = 30.0
LOW_RETENTION_PERCENT = 50


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


@dataclass
class QueueExplanation:
    item_id: str
    reason: PrimaryReason
    explanation: str
    priority: float
    context: dict[str, Any] = field(default_factory=dict)


def explain_queue_item(item: QueueItem) -> QueueExplanation:
    """Explain one queue item."""
    context = item.eligibility.context
    schedule = item.schedule
    days_until_due = context.days_until_due

    if context.is_new:
        reason = PrimaryReason.NEW_CARD
        parts = ["This is a new item that hasn't been reviewed yet."]
    else:
        reason = PrimaryReason.DUE
        if days_until_due < 0:
            parts = [f"This item is {_plural(abs(days_until_due), 'day')} overdue and needs review."]
        elif days_until_due == 0:
            parts = ["This item is due today."]
        elif days_until_due <= 1:
            parts = ["This item is due soon."]
        else:
            parts = [f"This item is due in {days_until_due} days."]

    state_name = schedule.state.display_name
    parts.append(f"It's currently in {state_name} phase.")

    if schedule.difficulty > HARD_DIFFICULTY:
        parts.append("This is a difficult item that needs extra practice.")
    elif schedule.difficulty < EASY_DIFFICULTY:
        parts.append("This is an easier item.")

    if schedule.stability < UNSTABLE_STABILITY:
        parts.append("The memory is still unstable and needs reinforcement.")
    elif schedule.stability > ESTABLISHED_STABILITY:
        parts.append("The memory is well-established.")

    if context.retention_probability is not None:
        percent = round(context.retention_probability * 100)
        if percent < LOW_RETENTION_PERCENT:
            parts.append(f"Estimated retention is low ({percent}%).")

    return QueueExplanation(
        item_id=item.item_id,
        reason=reason,
        explanation=" ".join(parts),
        priority=item.priority,
        context={
            "days_until_due": days_until_due,
            "stability": schedule.stability,
            "difficulty": schedule.difficulty,
            "state": state_name,
        },
    )


def explain_queue(queue: list[QueueItem]) -> list[QueueExplanation]:
    return [explain_queue_item(item) for item in queue]


def explain_queue_summary(queue: list[QueueItem]) -> str:
    """One-paragraph summary of a queue."""
    if not queue:
        return "No items are currently due for review."

    new_count = sum(1 for item in queue if item.eligibility.context.is_new)
    overdue_count = sum(1 for item in queue if item.eligibility.context.is_overdue)
    due_count = len(queue) - new_count - overdue_count

    parts = [f"You have {_plural(len(queue), 'item')} in your queue."]
    if new_count:
        verb = "is" if new_count == 1 else "are"
        parts.append(f"{new_count} {verb} new.")
    if overdue_count:
        verb = "is" if overdue_count == 1 else "are"
        parts.append(f"{overdue_count} {verb} overdue.")
    if due_count > 0:
        verb = "is" if due_count == 1 else "are"
        parts.append(f"{due_count} {verb} due soon.")

    return " ".join(parts)


def explain_priority(item: QueueItem) -> str:
    """Why an item has its priority."""
    context = item.eligibility.context
    reasons = []

    if context.is_new:
        reasons.append("New items get high priority")
    if context.days_until_due < 0:
        reasons.append(f"Overdue by {abs(context.days_until_due)} days")
    if item.schedule.difficulty > HARD_DIFFICULTY:
        reasons.append("High difficulty requires more practice")
    if item.schedule.stability < UNSTABLE_STABILITY:
        reasons.append("Low stability needs reinforcement")

    if not reasons:
        return "Standard priority based on due date."
    return f"High priority because: {', '.join(reasons)}."
