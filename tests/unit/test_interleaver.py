"""
Unit tests for concept/similarity interleaving.
"""

import pytest

from cadence.study.interleaver import (
    RecencyWindow,
    finalize_review_queue,
    interleave,
    priority_index,
)


def _ids(items):
    return [item.item_id for item in items]


@pytest.fixture
def with_concepts(make_state):
    def _build(*pairs):
        return [make_state(item_id, concept_id=concept) for item_id, concept in pairs]
    return _build


class TestRecencyWindow:
    def test_evicts_oldest(self):
        window = RecencyWindow(2)
        for value in ("a", "b", "c"):
            window.push(value)

        assert len(window) == 2
        assert "a" not in window
        assert "c" in window

    def test_repush_refreshes_entry(self):
        window = RecencyWindow(2)
        for value in ("a", "b", "a", "c"):
            window.push(value)

        assert "a" in window
        assert "b" not in window

    def test_zero_size_records_nothing(self):
        window = RecencyWindow(0)
        window.push("a")

        assert len(window) == 0
        assert not window.contains_any(["a"])

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            RecencyWindow(-1)


class TestInterleave:
    def test_alternates_concepts(self, with_concepts):
        items = with_concepts(("A1", "A"), ("A2", "A"), ("B1", "B"), ("B2", "B"))

        assert _ids(interleave(items)) == ["A1", "B1", "A2", "B2"]

    def test_concept_leaves_window_after_three_others(self, with_concepts):
        items = with_concepts(("a1", "a"), ("a2", "a"), ("b1", "b"), ("c1", "c"), ("d1", "d"))

        assert _ids(interleave(items)) == ["a1", "b1", "c1", "d1", "a2"]

    def test_similar_item_deferred(self, with_concepts):
        items = with_concepts(("x", "cx"), ("y", "cy"), ("z", "cz"))
        similarity = {"y": ["x"]}

        assert _ids(interleave(items, similarity=similarity)) == ["x", "z", "y"]

    def test_stall_appends_rest_in_priority_order(self, with_concepts):
        items = with_concepts(("a1", "a"), ("a2", "a"), ("a3", "a"))

        assert _ids(interleave(items)) == ["a1", "a2", "a3"]

    def test_zero_windows_keep_order(self, with_concepts):
        items = with_concepts(("a1", "a"), ("a2", "a"), ("b1", "b"))
        similarity = {"a2": ["a1"]}

        result = interleave(items, similarity=similarity, concept_window=0, item_window=0)
        assert _ids(result) == ["a1", "a2", "b1"]

    def test_missing_concept_is_its_own_value(self, with_concepts):
        items = with_concepts(("n1", None), ("n2", None), ("c1", "c"))

        assert _ids(interleave(items)) == ["n1", "c1", "n2"]

    def test_concept_map_overrides_item_concept(self, with_concepts):
        items = with_concepts(("a1", "same"), ("a2", "same"), ("a3", "same"))
        concept_map = {"a1": "x", "a2": "y", "a3": "z"}

        assert _ids(interleave(items, concept_map=concept_map)) == ["a1", "a2", "a3"]

    def test_output_is_permutation(self, with_concepts):
        pairs = [(f"i{n}", f"c{n % 3}") for n in range(12)]
        items = with_concepts(*pairs)
        similarity = {"i4": ["i1", "i2"], "i7": ["i6"]}

        result = interleave(items, similarity=similarity)
        assert sorted(_ids(result)) == sorted(_ids(items))
        assert len(result) == len(items)

    def test_input_not_modified(self, with_concepts):
        items = with_concepts(("A1", "A"), ("A2", "A"), ("B1", "B"))
        before = list(items)

        interleave(items)
        assert items == before

    def test_empty(self):
        assert interleave([]) == []


class TestPriorityIndex:
    def test_overdue_by_full_interval(self, make_state, now):
        assert priority_index(make_state(due_in=-5, interval=5), now) == pytest.approx(1.0)

    def test_not_yet_due_is_zero(self, make_state, now):
        assert priority_index(make_state(due_in=2), now) == 0.0

    def test_never_reviewed_assumes_three_day_interval(self, make_state, now):
        state = make_state(due_in=-3, interval=None)
        assert priority_index(state, now) == pytest.approx(1.0)

    def test_zero_interval_does_not_divide_by_zero(self, make_state, now):
        state = make_state(due_in=-1, interval=0)
        assert priority_index(state, now) > 0


class TestFinalizeReviewQueue:
    def test_sorted_by_priority_index(self, make_state, now):
        states = [
            make_state("a", due_in=-1, interval=10, concept_id="ca"),
            make_state("b", due_in=-4, interval=2, concept_id="cb"),
            make_state("c", due_in=-3, interval=3, concept_id="cc"),
        ]

        assert _ids(finalize_review_queue(states, now=now)) == ["b", "c", "a"]

    def test_similarity_applied_after_ranking(self, make_state, now):
        states = [
            make_state("a", due_in=-1, interval=10, concept_id="ca"),
            make_state("b", due_in=-4, interval=2, concept_id="cb"),
            make_state("c", due_in=-3, interval=3, concept_id="cc"),
        ]

        result = finalize_review_queue(states, similarity={"c": ["b"]}, now=now)
        assert _ids(result) == ["b", "a", "c"]
