"""
Study pipeline: eligibility, prioritization, interleaving, session assembly
and post-review mastery boosts.
"""

from cadence.study.attention import calculate_afi
from cadence.study.eligibility import (
    ConceptMastery,
    EligibilityOptions,
    check_eligibility,
    is_due,
    is_learning,
    is_new,
    is_review,
)
from cadence.study.explainability import (
    QueueExplanation,
    explain_priority,
    explain_queue,
    explain_queue_item,
    explain_queue_summary,
)
from cadence.study.interleaver import (
    RecencyWindow,
    finalize_review_queue,
    interleave,
    priority_index,
)
from cadence.study.mastery_boost import BoostUpdate, apply_boost, boost_magnitude
from cadence.study.queue_builder import (
    QueueOptions,
    QueueStrategy,
    build_queue,
    calculate_priority,
    get_queue_stats,
)
from cadence.study.session import (
    HistoricalLoadProvider,
    LoadReport,
    SessionResult,
    StaticLoadProvider,
    assemble_session,
    item_load_score,
)

__all__ = [
    # Eligibility
    "ConceptMastery",
    "EligibilityOptions",
    "check_eligibility",
    "is_due",
    "is_new",
    "is_learning",
    "is_review",
    # Queue
    "QueueOptions",
    "QueueStrategy",
    "build_queue",
    "calculate_priority",
    "get_queue_stats",
    # Interleaving
    "RecencyWindow",
    "interleave",
    "priority_index",
    "finalize_review_queue",
    # Session
    "HistoricalLoadProvider",
    "StaticLoadProvider",
    "LoadReport",
    "SessionResult",
    "assemble_session",
    "item_load_score",
    # Boost
    "BoostUpdate",
    "apply_boost",
    "boost_magnitude",
    # Explainability
    "QueueExplanation",
    "explain_queue_item",
    "explain_queue",
    "explain_queue_summary",
    "explain_priority",
    # Attention
    "calculate_afi",
]
