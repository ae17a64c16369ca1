"""
Change classification module for Mindrift.

This module classifies individual note edits (expansion, contraction,
pivot, deepening, refinement), serializes the results and derives the
phase of a day from them.
"""

from mindrift.change.classifier import (
    classify_change,
    classify_change_type,
    calculate_structural_similarity,
    calculate_vocabulary_overlap,
    ChangeSignals,
    tokenize,
)
from mindrift.change.embedder import Embedder, SemanticChangeClassifier
from mindrift.change.phase import daily_phases, dominant_phase, phase_for_change
from mindrift.change.serialization import (
    deserialize_change_detail,
    serialize_change_detail,
)

__all__ = [
    "classify_change",
    "classify_change_type",
    "calculate_structural_similarity",
    "calculate_vocabulary_overlap",
    "ChangeSignals",
    "tokenize",
    "Embedder",
    "SemanticChangeClassifier",
    "daily_phases",
    "dominant_phase",
    "phase_for_change",
    "deserialize_change_detail",
    "serialize_change_detail",
]
