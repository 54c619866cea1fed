"""
Session Assembler.

Merges the learning and review queues into one session, scores its
cognitive load and optionally trims it to a load budget.

Load-aware reporting compares the session score with the learner's
historical average. When no usable average exists the session is compared
with itself (zero deviation) rather than failing the request.
"""
from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

from loguru import logger

from cadence.core.models import QueueItem, ScheduleState

DEFAULT_SESSION_LIMIT = 20
DEFAULT_LOAD_SCORE = 1.0

# Canonical per-type loads
ITEM_TYPE_LOADS: dict[str, float] = {
    "recognition": 0.7,
    "recall": 1.0,
    "synthesis": 1.3,
}

SessionEntry = Union[QueueItem, ScheduleState]


class HistoricalLoadProvider(Protocol):
    """Supplies a learner's average session load."""

    def average_load(self, learner_id: str) -> Optional[float]: ...


class StaticLoadProvider:
    """Fixed averages keyed by learner, with an optional default."""

    def __init__(self, averages: Optional[Mapping[str, float]] = None, default: Optional[float] = None):
        self.averages = dict(averages or {})
        self.default = default

    def average_load(self, learner_id: str) -> Optional[float]:
        return self.averages.get(learner_id, self.default)


@dataclass
class LoadReport:
    session_load_score: float
    average_historical_load: float
    deviation: float

    def to_dict(self) -> dict[str, float]:
        return {
            "session_load_score": self.session_load_score,
            "average_historical_load": self.average_historical_load,
            "deviation": self.deviation,
        }


@dataclass
class SessionResult:
    items: list[SessionEntry] = field(default_factory=list)
    load_report: LoadReport = field(default_factory=lambda: LoadReport(0.0, 0.0, 0.0))
    truncated_by_budget: bool = False

    @property
    def count(self) -> int:
        return len(self.items)


def _schedule_of(entry: SessionEntry) -> ScheduleState:
    return entry.schedule if isinstance(entry, QueueItem) else entry


def item_load_score(entry: SessionEntry) -> float:
    """Explicit load score, else the item-type load, else 1.0."""
    schedule = _schedule_of(entry)
    if schedule.load_score is not None and math.isfinite(schedule.load_score):
        return schedule.load_score
    if schedule.item_type:
        return ITEM_TYPE_LOADS.get(schedule.item_type.lower(), DEFAULT_LOAD_SCORE)
    return DEFAULT_LOAD_SCORE


def resolve_average_load(
    provider: Optional[HistoricalLoadProvider],
    learner_id: Optional[str],
) -> Optional[float]:
    """
    Ask the provider for a learner's average load.

    Provider failures are logged and reported as "no average".
    """
    if provider is None or learner_id is None:
        return None
    try:
        return provider.average_load(learner_id)
    except Exception as e:
        logger.warning(f"Historical load lookup failed for {learner_id}: {e}")
        return None


def _usable_average(value: Any) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def build_load_report(session_load_score: float, average_historical_load: Any = None) -> LoadReport:
    if not _usable_average(average_historical_load):
        average_historical_load = session_load_score

    if average_historical_load == 0:
        deviation = 0.0
    else:
        deviation = (session_load_score - average_historical_load) / average_historical_load

    return LoadReport(
        session_load_score=session_load_score,
        average_historical_load=float(average_historical_load),
        deviation=deviation,
    )


def assemble_session(
    learning_queue: Sequence[SessionEntry],
    review_queue: Sequence[SessionEntry],
    session_limit: int = DEFAULT_SESSION_LIMIT,
    max_load_budget: Optional[float] = None,
    average_historical_load: Optional[float] = None,
) -> SessionResult:
    """
    Build the session list and its load report.

    Learning items come first (up to ``session_limit``), then review items;
    the combined list is truncated to ``session_limit``. If a load budget is
    given and exceeded, items are kept in order until the next one would
    overflow the budget; nothing after that point is included.

    Args:
        learning_queue: New/learning items, in order
        review_queue: Review items, already finalized
        session_limit: Maximum number of items
        max_load_budget: Optional effort ceiling
        average_historical_load: Learner's average session load, if known

    Returns:
        SessionResult with items and LoadReport
    """
    session_limit = max(0, session_limit)
    items = (list(learning_queue[:session_limit]) + list(review_queue))[:session_limit]
    session_score = sum(item_load_score(i) for i in items)

    truncated = False
    if max_load_budget is not None and session_score > max_load_budget:
        kept: list[SessionEntry] = []
        running = 0.0
        for item in items:
            load = item_load_score(item)
            if running + load > max_load_budget:
                break
            kept.append(item)
            running += load
        logger.info(
            f"Session load {session_score:.2f} exceeds budget {max_load_budget:.2f}; "
            f"kept {len(kept)} of {len(items)} items"
        )
        items = kept
        session_score = running
        truncated = True

    report = build_load_report(session_score, average_historical_load)
    logger.info(
        f"Assembled session: {len(items)} items, load {report.session_load_score:.2f} "
        f"(deviation {report.deviation:+.1%})"
    )
    return SessionResult(items=items, load_report=report, truncated_by_budget=truncated)
