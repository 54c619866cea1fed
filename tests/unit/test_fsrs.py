"""
Unit tests for the FSRS scheduling engine.

All tests use a fixed clock; fuzz is off unless a test enables it with a
seeded random source.
"""

import math
import random
from datetime import timedelta

import pytest

from cadence.core.errors import InvalidParameters, InvalidTargetRetention
from cadence.core.models import CardState, Rating
from cadence.scheduler.fsrs import FSRSScheduler, calculate_optimal_interval, calculate_retention
from cadence.scheduler.parameters import DEFAULT_PARAMETERS, FSRSParameters


@pytest.fixture
def scheduler(clock):
    return FSRSScheduler(clock=clock)


class TestInitialization:
    def test_new_schedule_uses_parameter_defaults(self, scheduler, now):
        state = scheduler.initialize_schedule("net-101", concept_id="subnetting")

        assert state.state is CardState.NEW
        assert state.stability == DEFAULT_PARAMETERS.initial_stability
        assert state.difficulty == pytest.approx(5.0)
        assert state.due_at == now
        assert state.last_reviewed_at is None
        assert state.reps == 0 and state.lapses == 0
        assert state.concept_id == "subnetting"

    def test_invalid_parameters_rejected(self, clock):
        bad = DEFAULT_PARAMETERS.with_adjustments({1: 8.0, 2: 2.0})
        with pytest.raises(InvalidParameters):
            FSRSScheduler(params=bad, clock=clock)


class TestFirstReview:
    def test_new_item_enters_learning(self, scheduler, make_state, now):
        state = make_state(state=CardState.NEW)
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert result.state.state is CardState.LEARNING
        assert result.state.reps == 1
        assert result.interval_days == 1
        assert result.state.due_at == now + timedelta(days=1)
        assert result.state.last_reviewed_at == now
        assert result.retention == 1.0

    def test_new_item_seeded_before_update(self, scheduler, make_state):
        # Stored values on a NEW item are ignored in favour of w0 / midpoint
        state = make_state(state=CardState.NEW, stability=200.0, difficulty=9.0)
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert result.previous_stability == 1.0
        assert result.state.difficulty == pytest.approx(4.7)
        assert result.state.stability == pytest.approx(1.517, abs=1e-3)

    def test_again_on_new_item_still_learning(self, scheduler, make_state):
        result = scheduler.next_schedule(make_state(state=CardState.NEW), Rating.AGAIN)

        assert result.state.state is CardState.LEARNING
        assert result.state.lapses == 1
        assert result.state.stability == pytest.approx(1.0)


class TestLapse:
    def test_review_lapse_forces_half_stability(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=10.0, lapses=2)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.state.stability == pytest.approx(5.0)
        assert result.state.stability < state.stability
        assert result.state.lapses == 3
        assert result.state.state is CardState.RELEARNING
        assert result.lapse_floor_applied is True

    def test_lapse_floor_never_below_w0(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=1.2)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.state.stability == pytest.approx(1.0)

    @pytest.mark.parametrize("prior", [0.8, 1.0])
    def test_lapse_below_w0_still_reduces_stability(self, scheduler, make_state, prior):
        state = make_state(state=CardState.REVIEW, stability=prior)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.state.stability == pytest.approx(prior * 0.5)
        assert result.state.stability < state.stability
        assert result.lapse_floor_applied is True
        assert result.state.state is CardState.RELEARNING

    def test_strong_again_weight_skips_floor(self, clock, make_state):
        params = DEFAULT_PARAMETERS.with_adjustments({7: -1.0})
        scheduler = FSRSScheduler(params=params, clock=clock)
        state = make_state(state=CardState.REVIEW, stability=10.0)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.lapse_floor_applied is False
        assert result.state.stability == pytest.approx(10.0 * math.exp(-1.0))

    def test_lapse_raises_difficulty(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, difficulty=5.0)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.state.difficulty == pytest.approx(5.8)

    def test_relearning_uses_short_ladder(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=10.0, reps=6)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        # floor(5.0 * 0.3) = 1
        assert result.interval_days == 1


class TestSuccess:
    @pytest.mark.parametrize("rating", [Rating.GOOD, Rating.EASY])
    @pytest.mark.parametrize("stability", [0.5, 3.0, 10.0, 120.0, 365.0])
    def test_review_success_never_weakens_memory(self, scheduler, make_state, rating, stability):
        state = make_state(state=CardState.REVIEW, stability=stability, difficulty=6.0)
        result = scheduler.next_schedule(state, rating)

        assert result.state.stability >= state.stability
        assert result.state.difficulty <= state.difficulty
        assert result.state.state is CardState.REVIEW

    def test_good_review_values(self, scheduler, make_state, now):
        # S=10, D=5, reviewed 5 days after the last review
        state = make_state(state=CardState.REVIEW, stability=10.0, difficulty=5.0, reps=5)
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert result.elapsed_days == pytest.approx(5.0)
        assert result.retention == pytest.approx(0.9817, abs=1e-3)
        assert result.state.difficulty == pytest.approx(4.7)
        assert result.state.stability == pytest.approx(15.04, abs=0.01)
        assert result.interval_days == 15
        assert result.state.due_at == now + timedelta(days=15)

    def test_grade_ordering(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=10.0)
        hard = scheduler.next_schedule(state, Rating.HARD).state.stability
        good = scheduler.next_schedule(state, Rating.GOOD).state.stability
        easy = scheduler.next_schedule(state, Rating.EASY).state.stability

        assert state.stability < hard < good < easy

    def test_input_state_not_mutated(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW)
        before = state.to_dict()
        scheduler.next_schedule(state, Rating.EASY)

        assert state.to_dict() == before

    def test_reps_increment_on_every_review(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, reps=7)
        for rating in Rating:
            assert scheduler.next_schedule(state, rating).state.reps == 8

    def test_stability_capped(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=360.0, difficulty=1.0)
        result = scheduler.next_schedule(state, Rating.EASY)

        assert result.state.stability == pytest.approx(365.0)

    def test_rating_labels_accepted(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW)
        by_label = scheduler.next_schedule(state, "Definitely Know It")
        by_enum = scheduler.next_schedule(state, Rating.EASY)

        assert by_label.state.stability == pytest.approx(by_enum.state.stability)


class TestStateMachine:
    def test_learning_graduates_at_stability_seven(self, scheduler, make_state):
        state = make_state(state=CardState.LEARNING, stability=5.0, reps=2, interval=1.0)
        result = scheduler.next_schedule(state, Rating.EASY)

        assert result.state.stability >= 7.0
        assert result.state.state is CardState.REVIEW
        # Third rep still uses the ladder
        assert result.interval_days == 3

    def test_learning_stays_below_threshold(self, scheduler, make_state):
        state = make_state(state=CardState.LEARNING, stability=1.0, reps=1, interval=1.0)
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert result.state.state is CardState.LEARNING
        assert result.interval_days == 2

    def test_learning_ladder_after_three_reps(self, scheduler, make_state):
        state = make_state(state=CardState.LEARNING, stability=2.0, reps=5, interval=1.0)
        result = scheduler.next_schedule(state, Rating.HARD)

        assert result.state.state is CardState.LEARNING
        assert 1 <= result.interval_days <= 4

    def test_relearning_returns_to_review(self, scheduler, make_state):
        state = make_state(state=CardState.RELEARNING, stability=5.0, difficulty=5.8, reps=7, interval=1.0)
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert result.state.stability >= 5.0
        assert result.state.state is CardState.REVIEW
        assert result.interval_days == math.floor(result.state.stability)

    def test_relearning_lapse_stays(self, scheduler, make_state):
        state = make_state(state=CardState.RELEARNING, stability=5.0, reps=7, interval=1.0)
        result = scheduler.next_schedule(state, Rating.AGAIN)

        assert result.state.state is CardState.RELEARNING


class TestNormalizationInEngine:
    def test_non_finite_stability_replaced(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW, stability=float("nan"))
        result = scheduler.next_schedule(state, Rating.GOOD)

        assert math.isfinite(result.state.stability)
        assert result.previous_stability == 1.0

    def test_negative_response_time_ignored(self, scheduler, make_state):
        state = make_state(state=CardState.REVIEW)
        baseline = scheduler.next_schedule(state, Rating.GOOD, response_time_ms=0)
        negative = scheduler.next_schedule(state, Rating.GOOD, response_time_ms=-500)

        assert negative.state.stability == pytest.approx(baseline.state.stability)

    def test_response_time_factor_when_enabled(self, clock, make_state):
        params = DEFAULT_PARAMETERS.with_adjustments({16: 1.0})
        scheduler = FSRSScheduler(params=params, clock=clock)
        state = make_state(state=CardState.REVIEW)

        fast = scheduler.next_schedule(state, Rating.GOOD, response_time_ms=1000)
        slow = scheduler.next_schedule(state, Rating.GOOD, response_time_ms=40000)

        assert fast.state.stability > slow.state.stability


class TestFuzz:
    def test_short_interval_jitter_within_one_day(self, clock, make_state, now):
        state = make_state(state=CardState.REVIEW, stability=10.0, reps=5)
        for seed in range(20):
            scheduler = FSRSScheduler(clock=clock, rng=random.Random(seed), enable_fuzz=True)
            result = scheduler.next_schedule(state, Rating.GOOD)
            offset = (result.state.due_at - now).total_seconds() / 86400

            assert result.interval_days == 15
            assert 14.0 <= offset <= 16.0

    def test_long_interval_jitter_capped_at_two_days(self, clock, make_state, now):
        state = make_state(state=CardState.REVIEW, stability=100.0, reps=9)
        for seed in range(20):
            scheduler = FSRSScheduler(clock=clock, rng=random.Random(seed), enable_fuzz=True)
            result = scheduler.next_schedule(state, Rating.GOOD)
            offset = (result.state.due_at - now).total_seconds() / 86400

            assert abs(offset - result.interval_days) <= 2.0

    def test_fuzzed_offset_at_least_one_day(self, clock, make_state, now):
        state = make_state(state=CardState.NEW)
        for seed in range(20):
            scheduler = FSRSScheduler(clock=clock, rng=random.Random(seed), enable_fuzz=True)
            result = scheduler.next_schedule(state, Rating.GOOD)

            assert result.state.due_at - now >= timedelta(days=1)

    def test_seeded_fuzz_is_reproducible(self, clock, make_state):
        state = make_state(state=CardState.REVIEW)
        first = FSRSScheduler(clock=clock, rng=random.Random(7), enable_fuzz=True)
        second = FSRSScheduler(clock=clock, rng=random.Random(7), enable_fuzz=True)

        assert first.next_schedule(state, Rating.GOOD).state.due_at == \
            second.next_schedule(state, Rating.GOOD).state.due_at

    def test_fuzz_disabled_is_exact(self, scheduler, make_state, now):
        result = scheduler.next_schedule(make_state(state=CardState.REVIEW), Rating.GOOD)

        assert result.state.due_at == now + timedelta(days=result.interval_days)


class TestRetrievability:
    def test_full_retention_at_zero_elapsed(self):
        for stability in (0.1, 1.0, 10.0, 365.0):
            assert calculate_retention(stability, 0) == 1.0

    def test_strictly_decreasing(self):
        points = [0, 0.5, 1, 2, 5, 10, 30, 100, 365, 3650]
        values = [calculate_retention(10.0, t) for t in points]

        assert all(a > b for a, b in zip(values, values[1:]))

    def test_zero_stability_means_forgotten(self):
        assert calculate_retention(0.0, 3) == 0.0
        assert calculate_retention(-1.0, 3) == 0.0

    def test_bounded(self):
        for t in (0.1, 1, 50, 10_000):
            assert 0.0 <= calculate_retention(2.0, t) <= 1.0

    def test_known_value(self):
        assert calculate_retention(10.0, 5.0) == pytest.approx(0.9817, abs=1e-3)


class TestOptimalInterval:
    def test_positive_integer_days(self):
        days = calculate_optimal_interval(10.0, 0.9)

        assert isinstance(days, int)
        assert 160 <= days <= 176

    def test_lower_target_gives_longer_interval(self):
        assert calculate_optimal_interval(10.0, 0.8) > calculate_optimal_interval(10.0, 0.95)

    @pytest.mark.parametrize("target", [0.0, 1.0, -0.1, 1.5])
    def test_target_outside_open_interval_rejected(self, target):
        with pytest.raises(InvalidTargetRetention):
            calculate_optimal_interval(10.0, target)

    def test_rejection_is_a_value_error(self):
        with pytest.raises(ValueError):
            calculate_optimal_interval(10.0, 1.0)

    def test_scheduler_uses_its_parameters(self, clock):
        params = FSRSParameters.from_list(DEFAULT_PARAMETERS.to_list())
        scheduler = FSRSScheduler(params=params, clock=clock)

        assert scheduler.optimal_interval(10.0) == calculate_optimal_interval(10.0, 0.9)
