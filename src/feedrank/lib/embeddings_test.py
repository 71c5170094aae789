"""Tests for the shared vector helpers."""

import math

import pytest

from .embeddings import (
    cosine_similarity,
    decode_float32_b64,
    encode_float32_b64,
    normalize,
)


class TestCosineSimilarity:
    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4], [0.3, 0.4]) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 5.0]) == 0.0

    @pytest.mark.parametrize(
        "a, b",
        [
            ([1.0, 2.0], [1.0, 2.0, 3.0]),
            ([], []),
            ([], [1.0]),
        ],
    )
    def test_mismatched_or_empty_is_zero(self, a, b):
        assert cosine_similarity(a, b) == 0.0

    def test_zero_magnitude_is_zero_not_nan(self):
        result = cosine_similarity([0.0, 0.0], [1.0, 1.0])
        assert result == 0.0
        assert not math.isnan(result)

    def test_bounded(self):
        vectors = [[0.2, -1.5, 3.0], [4.0, 0.1, -0.3], [-2.0, -2.0, 7.5]]
        for a in vectors:
            for b in vectors:
                assert -1.0 - 1e-9 <= cosine_similarity(a, b) <= 1.0 + 1e-9


class TestNormalize:
    def test_unit_norm(self):
        out = normalize([3.0, 4.0])
        assert out == pytest.approx([0.6, 0.8])

    def test_zero_vector_stays_zero(self):
        assert normalize([0.0, 0.0, 0.0]) == [0.0, 0.0, 0.0]


class TestFloat32Encoding:
    def test_decode_recovers_float32_values(self):
        encoded = encode_float32_b64([0.5, -1.25, 3.0])
        assert decode_float32_b64(encoded) == [0.5, -1.25, 3.0]

    def test_encode_rejects_none(self):
        with pytest.raises(TypeError):
            encode_float32_b64(None)

    def test_decode_rejects_truncated_bytes(self):
        with pytest.raises(ValueError):
            decode_float32_b64("AAA=")
