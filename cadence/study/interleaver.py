"""
Interleaving Finalizer.

Reorders a priority-sorted queue so that neither the same concept nor
semantically similar items appear back-to-back.

Greedy pass:
1. Pick the first remaining item whose concept is not in the recent-concept
   window and none of whose similar items is in the recent-item window
2. Record its concept and id (oldest entries evicted beyond window size)
3. If nothing qualifies, append the rest in priority order and stop

Items are never dropped; the output is a permutation of the input.
"""
from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Protocol, TypeVar

from loguru import logger

from cadence.core.models import ScheduleState
from cadence.core.timeutils import ensure_aware, utc_now

DEFAULT_CONCEPT_WINDOW = 3
DEFAULT_ITEM_WINDOW = 5

# Assumed interval for items that have never been reviewed
DEFAULT_LAST_REVIEW_GAP = timedelta(days=3)


class Interleavable(Protocol):
    @property
    def item_id(self) -> str: ...


T = TypeVar("T", bound=Interleavable)


@dataclass
class RecencyWindow:
    """Bounded FIFO set. A size of 0 records nothing."""
    size: int
    _entries: dict[Hashable, None] = field(default_factory=dict)

    def __post_init__(self):
        if self.size < 0:
            raise ValueError(f"Window size must be >= 0, got {self.size}")

    def __contains__(self, value: Hashable) -> bool:
        return value in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, value: Hashable) -> None:
        if self.size == 0:
            return
        self._entries.pop(value, None)
        self._entries[value] = None
        while len(self._entries) > self.size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

    def contains_any(self, values: Iterable[Hashable]) -> bool:
        return any(v in self._entries for v in values)


def _concept_for(item: Interleavable, concept_map: Mapping[str, Optional[str]]) -> Optional[str]:
    if item.item_id in concept_map:
        return concept_map[item.item_id]
    return getattr(item, "concept_id", None)


def interleave(
    items: Sequence[T],
    concept_map: Optional[Mapping[str, Optional[str]]] = None,
    similarity: Optional[Mapping[str, Sequence[str]]] = None,
    concept_window: int = DEFAULT_CONCEPT_WINDOW,
    item_window: int = DEFAULT_ITEM_WINDOW,
) -> list[T]:
    """
    Reorder a priority-sorted list to avoid clustered repetition.

    Args:
        items: Items in priority order (not modified)
        concept_map: item_id -> concept_id; falls back to ``item.concept_id``
        similarity: item_id -> similar item ids; missing entries mean "none"
        concept_window: Recent concepts to avoid (0 disables)
        item_window: Recent item ids checked against similar items (0 disables)

    Returns:
        The same items in interleaved order
    """
    concept_map = concept_map or {}
    similarity = similarity or {}
    recent_concepts = RecencyWindow(concept_window)
    recent_items = RecencyWindow(item_window)

    remaining = list(items)
    final: list[T] = []

    while remaining:
        pick = None
        for index, item in enumerate(remaining):
            if _concept_for(item, concept_map) in recent_concepts:
                continue
            if recent_items.contains_any(similarity.get(item.item_id, ())):
                continue
            pick = index
            break

        if pick is None:
            logger.debug(f"Interleaving stalled; appending {len(remaining)} items in priority order")
            final.extend(remaining)
            break

        item = remaining.pop(pick)
        recent_concepts.push(_concept_for(item, concept_map))
        recent_items.push(item.item_id)
        final.append(item)

    return final


# =============================================================================
# Review-queue finalization
# =============================================================================


def priority_index(state: ScheduleState, now: Optional[datetime] = None) -> float:
    """
    Overdue time as a fraction of the current interval.

    0 when not yet due; 1.0 means overdue by a full interval.
    """
    now = ensure_aware(now) if now else utc_now()
    due_at = ensure_aware(state.due_at)
    last_reviewed = (
        ensure_aware(state.last_reviewed_at)
        if state.last_reviewed_at
        else due_at - DEFAULT_LAST_REVIEW_GAP
    )

    overdue = max(0.0, (now - due_at).total_seconds())
    # 1 ms floor
    interval = max(0.001, (due_at - last_reviewed).total_seconds())
    return overdue / interval


def finalize_review_queue(
    states: Sequence[ScheduleState],
    similarity: Optional[Mapping[str, Sequence[str]]] = None,
    now: Optional[datetime] = None,
    concept_window: int = DEFAULT_CONCEPT_WINDOW,
    item_window: int = DEFAULT_ITEM_WINDOW,
) -> list[ScheduleState]:
    """Sort due schedules by priority index (descending), then interleave."""
    now = ensure_aware(now) if now else utc_now()
    ranked = sorted(states, key=lambda s: priority_index(s, now), reverse=True)
    return interleave(
        ranked,
        similarity=similarity,
        concept_window=concept_window,
        item_window=item_window,
    )
