"""
Core data model shared by the scheduler and the queue pipeline.

Design:
- CardState: closed lifecycle enumeration with a single transition function
- Rating: four ordered review grades scored 0-3
- ScheduleState: per learner x item schedule, replaced (never mutated) on review
- EligibilityResult / QueueItem: per-request queue values, never persisted
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any

from cadence.core.timeutils import parse_timestamp


class CardState(IntEnum):
    """Lifecycle stage of a scheduled item."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3

    @classmethod
    def parse(cls, value: CardState | int | str) -> CardState:
        """Accept an enum member, its integer value, or its name."""
        if isinstance(value, CardState):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key.isdigit():
                return cls(int(key))
            return cls[key]
        return cls(int(value))

    @property
    def display_name(self) -> str:
        return self.name.lower()


class Rating(IntEnum):
    """
    Learner self-assessment for a review.

    The integer value is the review score (0 = total miss, 3 = total success).
    """

    AGAIN = 0  # Did Not Know
    HARD = 1  # Guessing
    GOOD = 2  # Think You Know It
    EASY = 3  # Definitely Know It

    @property
    def score(self) -> int:
        return int(self)

    @property
    def is_success(self) -> bool:
        return self is not Rating.AGAIN

    @property
    def label(self) -> str:
        return _RATING_LABELS[self]

    @classmethod
    def from_label(cls, label: Rating | int | str) -> Rating:
        """
        Convert an enum name, score, or learner-facing label to a Rating.

        Unrecognized labels count as a total miss.
        """
        if isinstance(label, Rating):
            return label
        if isinstance(label, int):
            return cls(label)
        key = label.strip()
        if key.upper() in cls.__members__:
            return cls[key.upper()]
        for rating, text in _RATING_LABELS.items():
            if text.lower() == key.lower():
                return rating
        return cls.AGAIN


_RATING_LABELS = {
    Rating.AGAIN: "Did Not Know",
    Rating.HARD: "Guessing",
    Rating.GOOD: "Think You Know It",
    Rating.EASY: "Definitely Know It",
}


class PrimaryReason(str, Enum):
    """Why an item is in a queue."""

    DUE = "due"
    NEW_CARD = "new_card"


def transition_state(current: CardState, rating: Rating, new_stability: float) -> CardState:
    """
    Next lifecycle stage after a review.

    NEW always moves to LEARNING. LEARNING graduates at stability >= 7,
    RELEARNING at stability >= 5. A lapse sends REVIEW to RELEARNING.
    """
    if current is CardState.NEW:
        return CardState.LEARNING
    if current is CardState.LEARNING:
        if rating.is_success and new_stability >= 7.0:
            return CardState.REVIEW
        return CardState.LEARNING
    if current is CardState.REVIEW:
        return CardState.REVIEW if rating.is_success else CardState.RELEARNING
    if current is CardState.RELEARNING:
        if rating.is_success and new_stability >= 5.0:
            return CardState.REVIEW
        return CardState.RELEARNING
    raise ValueError(f"Unhandled card state: {current!r}")


@dataclass(frozen=True)
class ScheduleState:
    """Schedule for one learner x item."""

    item_id: str
    stability: float
    difficulty: float
    state: CardState
    due_at: datetime
    reps: int = 0
    lapses: int = 0
    last_reviewed_at: datetime | None = None

    # Queue-only attributes
    concept_id: str | None = None
    item_type: str | None = None
    load_score: float | None = None

    @property
    def is_new(self) -> bool:
        return self.state is CardState.NEW

    def replace(self, **changes: Any) -> ScheduleState:
        """Return a superseding copy."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_id": self.item_id,
            "stability": self.stability,
            "difficulty": self.difficulty,
            "state": self.state.name,
            "due_at": self.due_at.isoformat(),
            "reps": self.reps,
            "lapses": self.lapses,
            "last_reviewed_at": self.last_reviewed_at.isoformat() if self.last_reviewed_at else None,
            "concept_id": self.concept_id,
            "item_type": self.item_type,
            "load_score": self.load_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleState:
        """Build from a JSON-style mapping (timestamps as ISO strings)."""
        due_at = parse_timestamp(data["due_at"])
        if due_at is None:
            raise ValueError(f"Item {data.get('item_id')!r} has no due_at")
        load_score = data.get("load_score")
        return cls(
            item_id=str(data["item_id"]),
            stability=float(data.get("stability", 0.0)),
            difficulty=float(data.get("difficulty", 0.0)),
            state=CardState.parse(data.get("state", CardState.NEW)),
            due_at=due_at,
            reps=int(data.get("reps", 0)),
            lapses=int(data.get("lapses", 0)),
            last_reviewed_at=parse_timestamp(data.get("last_reviewed_at")),
            concept_id=data.get("concept_id"),
            item_type=data.get("item_type"),
            load_score=float(load_score) if load_score is not None else None,
        )


@dataclass
class EligibilityContext:
    """Observability data attached to every eligibility decision."""

    days_until_due: int = 0
    is_new: bool = False
    is_overdue: bool = False
    retention_probability: float | None = None


@dataclass
class EligibilityResult:
    """Outcome of an eligibility check."""

    eligible: bool
    reason: PrimaryReason | None
    context: EligibilityContext = field(default_factory=EligibilityContext)


@dataclass
class QueueItem:
    """An eligible item with its priority and final queue position."""

    item_id: str
    schedule: ScheduleState
    eligibility: EligibilityResult
    priority: float
    position: int = 0

    @property
    def is_new(self) -> bool:
        return self.eligibility.context.is_new

    @property
    def concept_id(self) -> str | None:
        return self.schedule.concept_id
