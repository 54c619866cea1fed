"""
FSRS parameter vector (w0..w20) and its validation.

Parameters are supplied per deployment or per learner. A vector with the
wrong length or inconsistent relations is a caller bug and is rejected;
nothing here repairs a bad parameter set.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace

from cadence.core.errors import InvalidParameters

WEIGHT_COUNT = 21

# =============================================================================
# DEFAULT WEIGHTS
# =============================================================================

DEFAULT_WEIGHTS: tuple[float, ...] = (
    1.0,    # w0: initial stability (days)
    4.0,    # w1: initial difficulty, lower bound
    6.0,    # w2: initial difficulty, upper bound
    -0.8,   # w3: difficulty delta for Again (negative raises difficulty)
    -0.3,   # w4: difficulty delta for Hard
    0.3,    # w5: difficulty delta for Good
    0.6,    # w6: difficulty delta for Easy
    -0.1,   # w7: Again stability weight
    -3.5,   # w8: Hard stability growth weight
    -2.5,   # w9: Good stability growth weight
    -2.0,   # w10: Easy stability growth weight
    0.05,   # w11: elapsed-time damping
    0.0,    # w12: reps damper rate
    0.0,    # w13: lapses damper rate
    0.0,    # w14: learning-state damper rate
    10.0,   # w15: reference response time (seconds)
    0.0,    # w16: response-time sensitivity
    1.0,    # w17: hard penalty
    1.0,    # w18: easy bonus
    0.1,    # w19: decay lower bound
    0.5,    # w20: decay upper bound
)


@dataclass(frozen=True)
class FSRSParameters:
    """Weights plus the clamp bounds that travel with them."""

    w: tuple[float, ...] = DEFAULT_WEIGHTS
    min_stability: float = 0.1
    max_stability: float = 365.0
    min_difficulty: float = 1.0
    max_difficulty: float = 10.0
    # Interval ceiling for learning-phase ladders
    learning_interval_cap: int = 4

    def __post_init__(self):
        if len(self.w) != WEIGHT_COUNT:
            raise InvalidParameters(
                f"Parameter array must have exactly {WEIGHT_COUNT} values, got {len(self.w)}"
            )
        object.__setattr__(self, "w", tuple(float(v) for v in self.w))

    # -------------------------------------------------------------------------
    # Named accessors
    # -------------------------------------------------------------------------

    @property
    def initial_stability(self) -> float:
        return self.w[0]

    @property
    def initial_difficulty(self) -> float:
        """Midpoint of the [w1, w2] range."""
        return self.w[1] + (self.w[2] - self.w[1]) * 0.5

    @property
    def decay_min(self) -> float:
        return self.w[19]

    @property
    def decay_max(self) -> float:
        return self.w[20]

    # -------------------------------------------------------------------------
    # Import / export
    # -------------------------------------------------------------------------

    @classmethod
    def from_list(cls, values: Sequence[float], **bounds: float) -> FSRSParameters:
        """
        Build parameters from optimizer output.

        Raises:
            InvalidParameters: if ``values`` does not hold exactly 21 weights
        """
        if len(values) != WEIGHT_COUNT:
            raise InvalidParameters(
                f"Parameter array must have exactly {WEIGHT_COUNT} values, got {len(values)}"
            )
        return cls(w=tuple(values), **bounds)

    def to_list(self) -> list[float]:
        return list(self.w)

    def with_adjustments(self, adjustments: dict[int, float]) -> FSRSParameters:
        """Return a copy with selected weights replaced (index -> value)."""
        weights = list(self.w)
        for index, value in adjustments.items():
            weights[index] = value
        return replace(self, w=tuple(weights))

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> list[str]:
        """Hard errors that make the parameter set unusable."""
        errors: list[str] = []

        if not all(math.isfinite(v) for v in self.w):
            errors.append("all weights must be finite")
        if self.w[0] <= 0:
            errors.append("w0 (initial stability) must be > 0")
        if self.w[1] >= self.w[2]:
            errors.append("w1 must be < w2 (initial difficulty range)")
        if not 0 <= self.w[19] <= 1:
            errors.append("w19 (decay min) must be between 0 and 1")
        if not 0 <= self.w[20] <= 1:
            errors.append("w20 (decay max) must be between 0 and 1")
        if self.w[19] > self.w[20]:
            errors.append("w19 must be <= w20")
        if self.w[15] <= 0:
            errors.append("w15 (reference response time) must be > 0")
        if self.min_stability <= 0:
            errors.append("min_stability must be > 0")
        if self.max_stability <= self.min_stability:
            errors.append("max_stability must be > min_stability")
        if self.min_difficulty <= 0:
            errors.append("min_difficulty must be > 0")
        if self.max_difficulty <= self.min_difficulty:
            errors.append("max_difficulty must be > min_difficulty")

        return errors

    def ensure_valid(self) -> FSRSParameters:
        errors = self.validate()
        if errors:
            raise InvalidParameters("Invalid FSRS parameters: " + "; ".join(errors), errors)
        return self

    def bound_warnings(self) -> list[str]:
        """Advisory warnings for unusual but usable weights."""
        warnings: list[str] = []

        if self.w[0] < 0.1 or self.w[0] > 10:
            warnings.append("w0 (initial stability) should be between 0.1 and 10")
        if self.w[1] < 1 or self.w[2] > 10:
            warnings.append("Initial difficulty (w1-w2) should be between 1 and 10")
        if self.w[3] > 0:
            warnings.append("w3 (again difficulty) should typically be negative")
        if self.w[6] < 0:
            warnings.append("w6 (easy difficulty) should typically be positive")

        return warnings


DEFAULT_PARAMETERS = FSRSParameters()
