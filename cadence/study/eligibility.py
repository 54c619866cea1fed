"""
Eligibility Filter.

Decides whether a scheduled item may be presented now, and records the
context of that decision (days until due, overdue flag, estimated recall)
so ineligible items can still be explained.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from cadence.core.models import (
    CardState,
    EligibilityContext,
    EligibilityResult,
    PrimaryReason,
    ScheduleState,
)
from cadence.core.timeutils import ensure_aware, utc_now, whole_days_until
from cadence.scheduler.fsrs import calculate_retention
from cadence.scheduler.normalization import normalize_stability
from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters


class ConceptMastery(Protocol):
    """Answers whether a learner has mastered a concept."""

    def is_mastered(self, concept_id: str) -> bool: ...


@dataclass
class EligibilityOptions:
    """Toggles and bounds for an eligibility check."""
    now: Optional[datetime] = None
    include_new: bool = True
    include_learning: bool = True
    include_review: bool = True
    include_relearning: bool = True
    max_overdue_days: Optional[int] = 30
    min_stability: Optional[float] = None
    max_stability: Optional[float] = None

    # Prerequisite gating runs only when all three are supplied
    check_prerequisites: bool = False
    required_prerequisites: list[str] = field(default_factory=list)
    mastery: Optional[ConceptMastery] = None

    params: FSRSParameters = DEFAULT_PARAMETERS

    def current_time(self) -> datetime:
        return ensure_aware(self.now) if self.now else utc_now()


def _state_included(state: CardState, options: EligibilityOptions) -> bool:
    return {
        CardState.NEW: options.include_new,
        CardState.LEARNING: options.include_learning,
        CardState.REVIEW: options.include_review,
        CardState.RELEARNING: options.include_relearning,
    }[state]


def _prerequisites_met(options: EligibilityOptions) -> bool:
    if not (options.check_prerequisites and options.mastery and options.required_prerequisites):
        return True
    return all(options.mastery.is_mastered(cid) for cid in options.required_prerequisites)


def check_eligibility(
    state: ScheduleState,
    options: Optional[EligibilityOptions] = None,
) -> EligibilityResult:
    """
    Check whether an item is eligible for review.

    Args:
        state: Item schedule
        options: Toggles and bounds (defaults include every stage)

    Returns:
        EligibilityResult; ineligible results carry ``reason=None``
    """
    options = options or EligibilityOptions()
    now = options.current_time()
    stability = normalize_stability(state.stability, options.params)

    days_until_due = whole_days_until(state.due_at, now)
    is_overdue = days_until_due < 0
    context = EligibilityContext(
        days_until_due=days_until_due,
        is_new=state.is_new,
        is_overdue=is_overdue,
    )

    def rejected() -> EligibilityResult:
        return EligibilityResult(eligible=False, reason=None, context=context)

    if not _state_included(state.state, options):
        return rejected()

    if is_overdue and options.max_overdue_days is not None:
        if abs(days_until_due) > options.max_overdue_days:
            return rejected()

    if options.min_stability is not None and stability < options.min_stability:
        return rejected()
    if options.max_stability is not None and stability > options.max_stability:
        return rejected()

    if not _prerequisites_met(options):
        return rejected()

    if is_overdue:
        context.retention_probability = calculate_retention(
            stability, abs(days_until_due), options.params
        )
    else:
        context.retention_probability = 1.0

    reason = PrimaryReason.NEW_CARD if state.is_new else PrimaryReason.DUE
    return EligibilityResult(eligible=True, reason=reason, context=context)


# =============================================================================
# Quick predicates
# =============================================================================


def is_due(state: ScheduleState, now: Optional[datetime] = None) -> bool:
    now = ensure_aware(now) if now else utc_now()
    return now >= ensure_aware(state.due_at)


def is_new(state: ScheduleState) -> bool:
    return state.state is CardState.NEW


def is_learning(state: ScheduleState) -> bool:
    """LEARNING or RELEARNING."""
    return state.state in (CardState.LEARNING, CardState.RELEARNING)


def is_review(state: ScheduleState) -> bool:
    return state.state is CardState.REVIEW
