"""
FSRS Scheduling Engine.

Updates an item's stability, difficulty and lifecycle stage after a review,
and provides the retrievability / optimal-interval math used for reporting.

The engine never reads ambient time or randomness: a clock and a
``random.Random`` are injected so results are reproducible. Each call to
``next_schedule`` is one read-modify-write unit that returns a complete
replacement ``ScheduleState``; callers wrap it in their own transaction.

Based on:
- Ye (FSRS algorithm), power-law forgetting curve with bounded decay
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from cadence.core.errors import InvalidTargetRetention
from cadence.core.models import CardState, Rating, ScheduleState, transition_state
from cadence.core.timeutils import Clock, add_days, days_between, utc_now
from cadence.scheduler.normalization import (
    clamp,
    normalize_difficulty,
    normalize_interval,
    normalize_response_time,
    normalize_retention,
    normalize_stability,
)
from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters

# Lapse penalty: if the Again recompute keeps more than 90% of the prior
# stability, stability is forced down to half (never below w0).
LAPSE_MIN_REDUCTION = 0.10
LAPSE_FLOOR_FACTOR = 0.5

LEARNING_LADDER_REPS = 3
LEARNING_STABILITY_FACTOR = 0.3

OPTIMAL_INTERVAL_TOLERANCE = 0.001
OPTIMAL_INTERVAL_MAX_ITERATIONS = 50
OPTIMAL_INTERVAL_HORIZON = 365

SHORT_INTERVAL_DAYS = 30
SHORT_INTERVAL_FUZZ = 1.0
LONG_INTERVAL_FUZZ_RATIO = 0.05
LONG_INTERVAL_FUZZ_CAP = 2.0


@dataclass(frozen=True)
class ScheduleResult:
    """Outcome of one review."""

    state: ScheduleState
    interval_days: int
    retention: float
    elapsed_days: float
    previous_stability: float
    lapse_floor_applied: bool = False


# =============================================================================
# RETRIEVABILITY
# =============================================================================


def calculate_retention(
    stability: float,
    elapsed_days: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> float:
    """
    Probability of recall after ``elapsed_days``.

    decay = w19 + (w20 - w19) * exp(-t/S)
    R(t)  = (1 + t / (9S)) ^ -decay
    """
    if elapsed_days <= 0:
        return 1.0
    if stability <= 0:
        return 0.0

    decay = params.decay_min + (params.decay_max - params.decay_min) * math.exp(-elapsed_days / stability)
    retention = math.pow(1 + elapsed_days / (9 * stability), -decay)
    return normalize_retention(retention)


def calculate_optimal_interval(
    stability: float,
    target_retention: float = 0.9,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> int:
    """
    Days until retrievability falls to ``target_retention``.

    Binary search over [0, 365*S]; whole days, at least 1.

    Raises:
        InvalidTargetRetention: if the target is not strictly inside (0, 1)
    """
    if not (isinstance(target_retention, (int, float)) and 0 < target_retention < 1):
        raise InvalidTargetRetention(target_retention)

    stability = normalize_stability(stability, params)
    low, high = 0.0, OPTIMAL_INTERVAL_HORIZON * stability
    elapsed = high

    for _ in range(OPTIMAL_INTERVAL_MAX_ITERATIONS):
        elapsed = (low + high) / 2
        retention = calculate_retention(stability, elapsed, params)
        if abs(retention - target_retention) < OPTIMAL_INTERVAL_TOLERANCE:
            break
        if retention > target_retention:
            low = elapsed
        else:
            high = elapsed

    return normalize_interval(elapsed)


# =============================================================================
# SCHEDULER
# =============================================================================


class FSRSScheduler:
    """
    FSRS scheduler with injected time and randomness.

    Example:
        >>> scheduler = FSRSScheduler(clock=lambda: now, rng=random.Random(7))
        >>> result = scheduler.next_schedule(state, Rating.GOOD, response_time_ms=4200)
        >>> result.state.due_at, result.retention
    """

    def __init__(
        self,
        params: FSRSParameters | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        enable_fuzz: bool = False,
    ):
        self.params = (params or DEFAULT_PARAMETERS).ensure_valid()
        self.w = self.params.w
        self.clock = clock or utc_now
        self.rng = rng or random.Random()
        self.enable_fuzz = enable_fuzz

    def initialize_schedule(self, item_id: str, **attributes) -> ScheduleState:
        """Schedule for an item on first exposure: NEW, due now."""
        return ScheduleState(
            item_id=item_id,
            stability=self.params.initial_stability,
            difficulty=self.params.initial_difficulty,
            state=CardState.NEW,
            due_at=self.clock(),
            **attributes,
        )

    def retrievability(self, stability: float, elapsed_days: float) -> float:
        return calculate_retention(stability, elapsed_days, self.params)

    def optimal_interval(self, stability: float, target_retention: float = 0.9) -> int:
        return calculate_optimal_interval(stability, target_retention, self.params)

    def next_schedule(
        self,
        state: ScheduleState,
        rating: Rating,
        response_time_ms: float = 0,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """
        Apply one review to ``state``.

        Args:
            state: Current schedule (not modified)
            rating: Review grade
            response_time_ms: Time taken to answer, in milliseconds
            now: Review time (defaults to the injected clock)

        Returns:
            ScheduleResult with the replacement state, interval and the
            retrievability of the memory at review time
        """
        now = now or self.clock()
        rating = Rating.from_label(rating)
        response_time_ms = normalize_response_time(response_time_ms)

        if state.state is CardState.NEW:
            stability = self.params.initial_stability
            difficulty = self.params.initial_difficulty
            elapsed_days = 0.0
        else:
            stability = normalize_stability(state.stability, self.params)
            difficulty = normalize_difficulty(state.difficulty, self.params)
            elapsed_days = 0.0
            if state.last_reviewed_at is not None:
                elapsed_days = max(0.0, days_between(now, state.last_reviewed_at))

        retention = self.retrievability(stability, elapsed_days)
        new_difficulty = self._next_difficulty(difficulty, rating)

        lapses = state.lapses
        floor_applied = False
        if rating is Rating.AGAIN:
            lapses += 1
            new_stability, floor_applied = self._next_forget_stability(stability, state)
        else:
            new_stability = self._next_recall_stability(
                stability, new_difficulty, elapsed_days, rating, state, response_time_ms
            )

        new_state = transition_state(state.state, rating, new_stability)
        reps = state.reps + 1
        interval = self._next_interval(new_stability, new_state, reps)
        due_at = add_days(now, self._fuzzed_offset(interval))

        logger.debug(
            f"Reviewed {state.item_id}: {state.state.name}->{new_state.name} "
            f"rating={rating.name} S {stability:.2f}->{new_stability:.2f} "
            f"D {difficulty:.2f}->{new_difficulty:.2f} interval={interval}d"
        )

        return ScheduleResult(
            state=state.replace(
                stability=new_stability,
                difficulty=new_difficulty,
                state=new_state,
                reps=reps,
                lapses=lapses,
                due_at=due_at,
                last_reviewed_at=now,
            ),
            interval_days=interval,
            retention=retention,
            elapsed_days=elapsed_days,
            previous_stability=stability,
            lapse_floor_applied=floor_applied,
        )

    # -------------------------------------------------------------------------
    # Update rules
    # -------------------------------------------------------------------------

    def _next_difficulty(self, difficulty: float, rating: Rating) -> float:
        """D' = clamp(D - w[3 + score], min, max)."""
        new_d = difficulty - self.w[3 + rating.score]
        return clamp(new_d, self.params.min_difficulty, self.params.max_difficulty)

    def _dampers(self, state: ScheduleState) -> float:
        reps_factor = math.exp(-self.w[12] * max(0, state.reps))
        lapses_factor = math.exp(-self.w[13] * max(0, state.lapses))
        state_factor = 1.0
        if state.state in (CardState.LEARNING, CardState.RELEARNING):
            state_factor = math.exp(-self.w[14])
        return reps_factor * lapses_factor * state_factor

    def _response_time_factor(self, response_time_ms: float) -> float:
        reference_ms = self.w[15] * 1000
        factor = math.pow(reference_ms / (response_time_ms + 1), self.w[16])
        return clamp(factor, 0.5, 1.5)

    def _next_recall_stability(
        self,
        stability: float,
        new_difficulty: float,
        elapsed_days: float,
        rating: Rating,
        state: ScheduleState,
        response_time_ms: float,
    ) -> float:
        """S' = S * (1 + exp(w_g) * (11 - D') * elapsed * dampers)."""
        elapsed_factor = math.exp(-self.w[11] * elapsed_days / max(stability, 0.1))
        growth = (
            math.exp(self.w[7 + rating.score])
            * (11 - new_difficulty)
            * elapsed_factor
            * self._dampers(state)
            * self._response_time_factor(response_time_ms)
        )
        if rating is Rating.HARD:
            growth *= self.w[17]
        elif rating is Rating.EASY:
            growth *= self.w[18]

        return normalize_stability(stability * (1 + growth), self.params)

    def _next_forget_stability(self, stability: float, state: ScheduleState) -> tuple[float, bool]:
        """
        Stability after a lapse.

        The forced floor is a documented heuristic: it fires only when the
        recompute keeps more than 90% of the prior stability. The floor is
        ``max(w0, S * 0.5)``; when ``w0`` is not below the prior stability
        the halved value is used instead, so a lapse never raises stability.
        """
        recomputed = stability * math.exp(self.w[7]) * self._dampers(state)
        if recomputed > stability * (1 - LAPSE_MIN_REDUCTION):
            forced = max(self.params.initial_stability, stability * LAPSE_FLOOR_FACTOR)
            if forced >= stability:
                forced = stability * LAPSE_FLOOR_FACTOR
            logger.debug(
                f"Lapse floor applied to {state.item_id}: recompute {recomputed:.2f} "
                f"-> forced {forced:.2f}"
            )
            return normalize_stability(forced, self.params), True
        return normalize_stability(recomputed, self.params), False

    def _next_interval(self, stability: float, card_state: CardState, reps: int) -> int:
        if card_state in (CardState.LEARNING, CardState.RELEARNING) or reps <= LEARNING_LADDER_REPS:
            if reps <= LEARNING_LADDER_REPS:
                return max(1, reps)
            return int(clamp(
                math.floor(stability * LEARNING_STABILITY_FACTOR),
                1,
                self.params.learning_interval_cap,
            ))
        return normalize_interval(stability)

    def _fuzzed_offset(self, interval: int) -> float:
        """Interval plus bounded uniform jitter (never under one day)."""
        if not self.enable_fuzz:
            return float(interval)
        if interval < SHORT_INTERVAL_DAYS:
            max_fuzz = SHORT_INTERVAL_FUZZ
        else:
            max_fuzz = min(interval * LONG_INTERVAL_FUZZ_RATIO, LONG_INTERVAL_FUZZ_CAP)
        jitter = self.rng.uniform(-max_fuzz, max_fuzz)
        return max(1.0, interval + jitter)
