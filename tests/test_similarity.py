"""Tests for the cosine similarity function."""

from __future__ import annotations

import math

import pytest

from support_agent.knowledge.matcher import cosine_similarity


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([1, 0], [1, 0]) == 1.0

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1, 0], [0, 1]) == 0.0

    def test_opposite_vectors(self):
        assert cosine_similarity([1, 0], [-1, 0]) == -1.0

    def test_zero_vector_scores_zero_not_nan(self):
        result = cosine_similarity([0, 0], [1, 0])
        assert result == 0.0
        assert not math.isnan(result)

    def test_both_zero_vectors(self):
        assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0

    def test_scale_invariant(self):
        assert cosine_similarity([3, 4], [6, 8]) == pytest.approx(1.0)

    def test_known_angle(self):
        # 45 degrees apart
        assert cosine_similarity([1, 0], [1, 1]) == pytest.approx(math.sqrt(2) / 2)

    def test_returns_builtin_float(self):
        assert type(cosine_similarity([1.0, 2.0], [2.0, 1.0])) is float

    def test_accepts_tuples(self):
        assert cosine_similarity((0.6, 0.8), (0.6, 0.8)) == pytest.approx(1.0)

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValueError, match="dimension mismatch"):
            cosine_similarity([1, 0, 0], [1, 0])
