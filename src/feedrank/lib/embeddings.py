"""Shared embedding utilities (vector math and compact encoding).

These helpers are used by the content scorer, the interest-vector updater
and the Redis cache.
"""

import base64
import math
import struct


def cosine_similarity(vec1: list[float], vec2: list[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ, either vector is empty, or either
    vector has zero magnitude.
    """
    if len(vec1) != len(vec2) or not vec1:
        return 0.0
    dot = sum(a * b for a, b in zip(vec1, vec2))
    mag1 = math.sqrt(sum(a * a for a in vec1))
    mag2 = math.sqrt(sum(b * b for b in vec2))
    if mag1 == 0.0 or mag2 == 0.0:
        return 0.0
    return dot / (mag1 * mag2)


def normalize(vec: list[float]) -> list[float]:
    """Scale *vec* to unit Euclidean norm; a zero vector is returned unchanged."""
    magnitude = math.sqrt(sum(v * v for v in vec))
    if magnitude == 0.0:
        return [0.0] * len(vec)
    return [v / magnitude for v in vec]


def encode_float32_b64(vec: list[float]) -> str:
    """Encode a list of floats as little-endian float32 bytes, then base64."""
    if vec is None:
        raise TypeError("vec must not be None")
    if not isinstance(vec, (list, tuple)):
        raise TypeError("vec must be a list or tuple of floats")
    packed = struct.pack(f"<{len(vec)}f", *vec)
    return base64.b64encode(packed).decode("ascii")


def decode_float32_b64(b64: str) -> list[float]:
    """Decode a base64 float32 little-endian encoded vector to ``list[float]``."""
    raw = base64.b64decode(b64)
    if len(raw) % 4 != 0:
        raise ValueError("invalid float32 byte length")
    count = len(raw) // 4
    return list(struct.unpack(f"<{count}f", raw))
