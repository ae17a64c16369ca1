"""
Similarity module for Mindrift.

Cosine similarity, distance and normalization for embedding vectors.
"""

from mindrift.similarity.vectors import (
    cosine_similarity,
    cosine_distance,
    difference,
    l2_norm,
    normalize,
)

__all__ = [
    "cosine_similarity",
    "cosine_distance",
    "difference",
    "l2_norm",
    "normalize",
]
