"""Tests for cosine-similarity ranking."""

import math

import pytest

from .ranker import clamp_limit, cosine_similarity, rank


class TestCosineSimilarity:
    @pytest.mark.parametrize("vec", [[1.0, 0.0], [0.3, -0.7, 2.5], [5.0]])
    def test_equal_vectors_score_one(self, vec):
        assert cosine_similarity(vec, list(vec)) == pytest.approx(1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    @pytest.mark.parametrize("a,b", [([1.0, 0.0], [0.0, 1.0]), ([1.0, 1.0, 0.0], [1.0, -1.0, 5.0])])
    def test_orthogonal_vectors_score_zero(self, a, b):
        assert cosine_similarity(a, b) == pytest.approx(0.0)

    def test_opposite_vectors_score_minus_one(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_zero_norm_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0
        assert cosine_similarity([1.0, 1.0], [0.0, 0.0]) == 0.0

    def test_empty_vectors_score_zero(self):
        assert cosine_similarity([], [1.0]) == 0.0

    def test_uses_shorter_length_on_dimension_mismatch(self):
        # Only the first two components are compared.
        assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 99.0]) == pytest.approx(1.0)

    def test_known_angle(self):
        assert cosine_similarity([1.0, 0.0], [1.0, 1.0]) == pytest.approx(1 / math.sqrt(2))


class TestClampLimit:
    def test_none_uses_default(self):
        assert clamp_limit(None) == 5

    @pytest.mark.parametrize("raw,expected", [(0, 1), (-3, 1), (1, 1), (7, 7), (20, 20), (500, 20)])
    def test_clamps_into_range(self, raw, expected):
        assert clamp_limit(raw) == expected

    def test_custom_bounds(self):
        assert clamp_limit(None, default=3, maximum=10) == 3
        assert clamp_limit(50, default=3, maximum=10) == 10


class TestRank:
    def test_filters_below_threshold(self):
        candidates = [("a", [1.0, 0.0]), ("b", [0.0, 1.0])]
        assert [item for item, _ in rank([1.0, 0.0], candidates)] == ["a"]

    def test_threshold_is_inclusive(self):
        candidates = [("a", [1.0, 0.0])]
        result = rank([1.0, 0.0], candidates, threshold=1.0)
        assert [item for item, _ in result] == ["a"]

    def test_sorted_descending(self):
        candidates = [
            ("low", [1.0, 1.0]),
            ("high", [1.0, 0.0]),
            ("mid", [2.0, 1.0]),
        ]
        result = rank([1.0, 0.0], candidates, limit=10)
        assert [item for item, _ in result] == ["high", "mid", "low"]
        scores = [score for _, score in result]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_candidate_order(self):
        candidates = [
            ("first", [1.0, 0.0]),
            ("other", [0.0, 1.0]),
            ("second", [2.0, 0.0]),
            ("third", [0.5, 0.0]),
        ]
        result = rank([1.0, 0.0], candidates, limit=10)
        assert [item for item, _ in result] == ["first", "second", "third"]

    def test_truncates_to_limit(self):
        candidates = [(str(i), [1.0, 0.1 * i]) for i in range(10)]
        result = rank([1.0, 0.0], candidates, limit=3, threshold=0.0)
        assert len(result) == 3
        assert [item for item, _ in result] == ["0", "1", "2"]

    def test_every_score_meets_threshold(self):
        candidates = [(i, [1.0, 0.2 * i]) for i in range(20)]
        result = rank([1.0, 0.0], candidates, limit=20, threshold=0.6)
        assert result
        assert all(score >= 0.6 for _, score in result)

    def test_empty_candidates(self):
        assert rank([1.0, 0.0], []) == []
