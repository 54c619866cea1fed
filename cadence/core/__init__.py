"""
Core data model and errors for the scheduling core.
"""

from cadence.core.errors import (
    CadenceError,
    InvalidParameters,
    InvalidTargetRetention,
    SimilarityUnavailable,
)
from cadence.core.models import (
    CardState,
    EligibilityContext,
    EligibilityResult,
    PrimaryReason,
    QueueItem,
    Rating,
    ScheduleState,
    transition_state,
)

__all__ = [
    # Errors
    "CadenceError",
    "InvalidParameters",
    "InvalidTargetRetention",
    "SimilarityUnavailable",
    # Model
    "CardState",
    "Rating",
    "PrimaryReason",
    "ScheduleState",
    "EligibilityContext",
    "EligibilityResult",
    "QueueItem",
    "transition_state",
]
