"""
Unit tests for FSRS parameter vectors and validation.
"""

import pytest

from cadence.core.errors import InvalidParameters
from cadence.scheduler.parameters import (
    DEFAULT_PARAMETERS,
    DEFAULT_WEIGHTS,
    WEIGHT_COUNT,
    FSRSParameters,
)


class TestParameterVector:
    def test_default_has_21_weights(self):
        assert WEIGHT_COUNT == 21
        assert len(DEFAULT_PARAMETERS.to_list()) == 21

    def test_from_list_round_trips_defaults(self):
        params = FSRSParameters.from_list(list(DEFAULT_WEIGHTS))
        assert params == DEFAULT_PARAMETERS

    @pytest.mark.parametrize("length", [0, 17, 20, 22])
    def test_wrong_length_rejected(self, length):
        with pytest.raises(InvalidParameters, match="exactly 21"):
            FSRSParameters.from_list([1.0] * length)

    def test_constructor_rejects_wrong_length(self):
        with pytest.raises(InvalidParameters):
            FSRSParameters(w=(1.0, 2.0, 3.0))

    def test_named_accessors(self):
        assert DEFAULT_PARAMETERS.initial_stability == 1.0
        assert DEFAULT_PARAMETERS.initial_difficulty == pytest.approx(5.0)
        assert DEFAULT_PARAMETERS.decay_min == 0.1
        assert DEFAULT_PARAMETERS.decay_max == 0.5

    def test_with_adjustments_returns_copy(self):
        adjusted = DEFAULT_PARAMETERS.with_adjustments({0: 1.5})

        assert adjusted.w[0] == 1.5
        assert DEFAULT_PARAMETERS.w[0] == 1.0
        assert adjusted.w[1:] == DEFAULT_PARAMETERS.w[1:]


class TestValidation:
    def test_defaults_are_valid(self):
        assert DEFAULT_PARAMETERS.validate() == []
        assert DEFAULT_PARAMETERS.ensure_valid() is DEFAULT_PARAMETERS

    def test_inverted_difficulty_range(self):
        params = DEFAULT_PARAMETERS.with_adjustments({1: 7.0, 2: 3.0})
        assert any("w1" in e for e in params.validate())

    def test_non_positive_initial_stability(self):
        params = DEFAULT_PARAMETERS.with_adjustments({0: 0.0})
        assert any("w0" in e for e in params.validate())

    def test_inverted_decay_bounds(self):
        params = DEFAULT_PARAMETERS.with_adjustments({19: 0.6, 20: 0.2})
        assert any("w19 must be <= w20" in e for e in params.validate())

    def test_non_finite_weight(self):
        params = DEFAULT_PARAMETERS.with_adjustments({5: float("nan")})
        assert "all weights must be finite" in params.validate()

    def test_inverted_bounds(self):
        params = FSRSParameters(min_stability=10.0, max_stability=5.0)
        assert any("max_stability" in e for e in params.validate())

    def test_ensure_valid_raises_with_errors(self):
        params = DEFAULT_PARAMETERS.with_adjustments({0: -1.0, 1: 9.0, 2: 2.0})
        with pytest.raises(InvalidParameters) as exc_info:
            params.ensure_valid()

        assert len(exc_info.value.errors) == 2


class TestBoundWarnings:
    def test_defaults_have_no_warnings(self):
        assert DEFAULT_PARAMETERS.bound_warnings() == []

    def test_unusual_weights_warn_without_failing(self):
        params = DEFAULT_PARAMETERS.with_adjustments({0: 20.0, 3: 0.5, 6: -0.2})
        warnings = params.bound_warnings()

        assert len(warnings) == 3
        assert params.validate() == []
