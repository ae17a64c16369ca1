"""
Vector Similarity for Mindrift

Plain-Python cosine similarity and normalization over equal-length
numeric sequences. Embeddings in this system have a few hundred
dimensions and are compared one pair at a time, so no array library is
involved.

Degenerate inputs never raise: empty or zero-norm vectors have
similarity 0, and normalizing a zero vector returns it unchanged.
Mismatched dimensions are a caller error and raise ValueError.
"""

import math
from typing import Sequence


def _check_dimensions(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise ValueError(
            f"Vectors must have the same length (got {len(a)} and {len(b)})"
        )


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Compute the cosine similarity of two vectors.

    Args:
        a: First vector
        b: Second vector, same length as a

    Returns:
        Similarity in [-1, 1], or 0.0 when either vector has zero norm

    Raises:
        ValueError: If the vectors differ in length
    """
    _check_dimensions(a, b)

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    if denominator == 0:
        return 0.0

    # Floating point error can push the ratio slightly past +-1
    return max(-1.0, min(1.0, dot / denominator))


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Return 1 - cosine_similarity(a, b)."""
    return 1.0 - cosine_similarity(a, b)


def l2_norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(v * v for v in vector))


def normalize(vector: Sequence[float]) -> list[float]:
    """
    Scale a vector to unit length.

    A zero vector is returned unchanged (as a list) instead of dividing by zero.
    """
    norm = l2_norm(vector)
    if norm == 0:
        return list(vector)
    return [v / norm for v in vector]


def difference(a: Sequence[float], b: Sequence[float]) -> list[float]:
    """Element-wise b - a."""
    _check_dimensions(a, b)
    return [y - x for x, y in zip(a, b)]
