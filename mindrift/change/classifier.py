"""
Semantic Change Classification for Mindrift

This module classifies a single note edit into one of five qualitative
change types, based on the edit's before/after text and embeddings.

Change Types:
    REFINEMENT:  almost no semantic change (wording, typos)
    PIVOT:       the topic itself moved
    EXPANSION:   content grew substantially
    CONTRACTION: content shrank substantially
    DEEPENING:   similar size, mostly the same vocabulary

Metrics:
    vocabulary_overlap    = Jaccard(tokens_old, tokens_new), 1.0 for two empty sets
    structural_similarity = 0.6 * Jaccard(headings) + 0.4 * min/max(paragraphs)
    magnitude             = supplied value, else 1 - cosine(old, new)
    topic_shift           = min(1, 0.7 * (1 - cosine) + 0.3 * (1 - overlap))
    direction             = normalize(new_embedding - old_embedding)
    content_length_ratio  = len(new) / len(old), 1.0 for empty old text

Academic Context:
    Input: Old/new text and old/new embedding of one edit
    Transformation: Lexical + structural + embedding metrics, then an
                    ordered rule cascade (first match wins)
    Output: SemanticChangeDetail
    Limitation: Thresholds are tuned for personal notes, not general prose

Design Decisions:
    - Deterministic: identical inputs always produce identical output
    - Rules are an explicit ordered table; later rules are never reached
      once an earlier one fires
    - The final fallback is a deliberate low-confidence (0.5) bucket
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from mindrift.models import ChangeMetrics, SemanticChangeDetail, SemanticChangeType
from mindrift.rules import Rule, always, first_match
from mindrift.similarity import cosine_similarity, difference, normalize
from mindrift.timeline.aggregator import round_to

logger = logging.getLogger(__name__)

REFINEMENT_THRESHOLD = 0.05
PIVOT_THRESHOLD = 0.4
EXPANSION_RATIO = 1.3
CONTRACTION_RATIO = 0.7
DEEPENING_VOCAB_THRESHOLD = 0.7
DEEPENING_STRUCTURE_THRESHOLD = 0.6

HEADING_WEIGHT = 0.6
PARAGRAPH_WEIGHT = 0.4
TOPIC_COSINE_WEIGHT = 0.7
TOPIC_VOCAB_WEIGHT = 0.3

# Hiragana, katakana and CJK unified ideographs
_CJK_PATTERN = re.compile(r"[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FFF]+")
_LATIN_PATTERN = re.compile(r"[a-zA-Z]{2,}")
_HEADING_PATTERN = re.compile(r"^#{1,6}[ \t]+(.+)$", re.MULTILINE)
_PARAGRAPH_SPLIT = re.compile(r"\n[ \t]*\n")


def tokenize(text: str) -> list[str]:
    """
    Extract tokens from text.

    CJK runs are kept as-is; Latin runs of two or more letters are
    lowercased. Everything else separates tokens.
    """
    cjk = _CJK_PATTERN.findall(text)
    latin = [word.lower() for word in _LATIN_PATTERN.findall(text)]
    return cjk + latin


def extract_headings(text: str) -> list[str]:
    """Return the text of every Markdown heading line (# to ######)."""
    return [match.strip() for match in _HEADING_PATTERN.findall(text)]


def count_paragraphs(text: str) -> int:
    """Count non-empty blocks separated by blank lines."""
    return sum(1 for block in _PARAGRAPH_SPLIT.split(text) if block.strip())


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two collections, 1.0 when both are empty."""
    set_a = set(a)
    set_b = set(b)
    union = set_a | set_b
    if not union:
        return 1.0
    return len(set_a & set_b) / len(union)


def calculate_vocabulary_overlap(old_tokens: Iterable[str], new_tokens: Iterable[str]) -> float:
    return jaccard(old_tokens, new_tokens)


def calculate_structural_similarity(old_text: str, new_text: str) -> float:
    """
    Compare heading structure and paragraph count of two texts.

    Returns:
        0.6 * heading Jaccard + 0.4 * (min paragraphs / max paragraphs)
    """
    heading_overlap = jaccard(extract_headings(old_text), extract_headings(new_text))

    old_paragraphs = count_paragraphs(old_text)
    new_paragraphs = count_paragraphs(new_text)
    paragraph_similarity = min(old_paragraphs, new_paragraphs) / max(
        old_paragraphs, new_paragraphs, 1
    )

    return HEADING_WEIGHT * heading_overlap + PARAGRAPH_WEIGHT * paragraph_similarity


def calculate_topic_shift(cosine: float, vocabulary_overlap: float) -> float:
    shift = TOPIC_COSINE_WEIGHT * (1 - cosine) + TOPIC_VOCAB_WEIGHT * (1 - vocabulary_overlap)
    return _clamp(min(1.0, shift))


def calculate_direction_vector(
    old_embedding: Sequence[float],
    new_embedding: Sequence[float],
) -> tuple[float, ...]:
    """
    Unit vector pointing from the old embedding to the new one.

    A zero difference is returned unchanged.

    Raises:
        ValueError: If the embeddings differ in length
    """
    return tuple(normalize(difference(old_embedding, new_embedding)))


def content_length_ratio(old_text: str, new_text: str) -> float:
    if len(old_text) == 0:
        return 1.0
    return len(new_text) / len(old_text)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ChangeSignals:
    """Unrounded inputs of the change-type cascade."""

    magnitude: float
    content_length_ratio: float
    topic_shift: float
    vocabulary_overlap: float
    structural_similarity: float


ChangeResult = tuple[SemanticChangeType, float]


def _deepening_confidence(s: ChangeSignals) -> float:
    bonus = 0.1 if s.structural_similarity > DEEPENING_STRUCTURE_THRESHOLD else 0.0
    return min(0.9, 0.6 + bonus)


def _fallback(s: ChangeSignals) -> ChangeResult:
    if s.content_length_ratio >= 1.0:
        return SemanticChangeType.EXPANSION, 0.5
    return SemanticChangeType.CONTRACTION, 0.5


CHANGE_RULES: list[Rule[ChangeSignals, ChangeResult]] = [
    Rule(
        "refinement",
        lambda s: s.magnitude < REFINEMENT_THRESHOLD,
        (SemanticChangeType.REFINEMENT, 0.95),
    ),
    Rule(
        "pivot",
        lambda s: s.topic_shift > PIVOT_THRESHOLD,
        lambda s: (SemanticChangeType.PIVOT, min(0.95, 0.5 + 0.5 * s.topic_shift)),
    ),
    Rule(
        "expansion",
        lambda s: s.content_length_ratio > EXPANSION_RATIO,
        lambda s: (
            SemanticChangeType.EXPANSION,
            min(0.9, 0.5 + 0.4 * (s.content_length_ratio - 1)),
        ),
    ),
    Rule(
        "contraction",
        lambda s: s.content_length_ratio < CONTRACTION_RATIO,
        lambda s: (
            SemanticChangeType.CONTRACTION,
            min(0.9, 0.5 + 0.4 * (1 - s.content_length_ratio)),
        ),
    ),
    Rule(
        "deepening",
        lambda s: s.vocabulary_overlap > DEEPENING_VOCAB_THRESHOLD,
        lambda s: (SemanticChangeType.DEEPENING, _deepening_confidence(s)),
    ),
    Rule("uncertain", always, _fallback),
]


def classify_change_type(signals: ChangeSignals) -> ChangeResult:
    """
    Run the ordered change-type cascade.

    Rules (first match wins):
        1. magnitude < 0.05          -> REFINEMENT, 0.95
        2. topic_shift > 0.4         -> PIVOT, min(0.95, 0.5 + 0.5 * shift)
        3. length ratio > 1.3        -> EXPANSION, min(0.9, 0.5 + 0.4 * (ratio - 1))
        4. length ratio < 0.7        -> CONTRACTION, min(0.9, 0.5 + 0.4 * (1 - ratio))
        5. vocabulary overlap > 0.7  -> DEEPENING, 0.6 (+0.1 if structure > 0.6)
        6. otherwise                 -> EXPANSION if ratio >= 1 else CONTRACTION, 0.5
    """
    rule, (change_type, confidence) = first_match(CHANGE_RULES, signals)
    logger.debug("Change classified by rule '%s'", rule)
    return change_type, _clamp(confidence)


def classify_change(
    old_text: str,
    new_text: str,
    old_embedding: Sequence[float],
    new_embedding: Sequence[float],
    magnitude: Optional[float] = None,
) -> SemanticChangeDetail:
    """
    Classify a single edit.

    Args:
        old_text: Text before the edit
        new_text: Text after the edit
        old_embedding: Embedding of old_text
        new_embedding: Embedding of new_text, same length as old_embedding
        magnitude: Precomputed semantic diff; computed from the embeddings if None

    Returns:
        SemanticChangeDetail with metrics, confidence and magnitude rounded
        to 3 decimals

    Raises:
        ValueError: If the embeddings differ in length

    Example:
        >>> detail = classify_change(old, new, old_vec, new_vec)
        >>> detail.type
        <SemanticChangeType.DEEPENING: 'deepening'>
    """
    cosine = cosine_similarity(old_embedding, new_embedding)

    ratio = content_length_ratio(old_text, new_text)
    overlap = calculate_vocabulary_overlap(tokenize(old_text), tokenize(new_text))
    structural = calculate_structural_similarity(old_text, new_text)

    if magnitude is None:
        magnitude = 1 - cosine
    magnitude = _clamp(magnitude)

    signals = ChangeSignals(
        magnitude=magnitude,
        content_length_ratio=ratio,
        topic_shift=calculate_topic_shift(cosine, overlap),
        vocabulary_overlap=overlap,
        structural_similarity=_clamp(structural),
    )
    change_type, confidence = classify_change_type(signals)

    return SemanticChangeDetail(
        type=change_type,
        confidence=round_to(confidence, 3),
        magnitude=round_to(magnitude, 3),
        direction=calculate_direction_vector(old_embedding, new_embedding),
        metrics=ChangeMetrics(
            content_length_ratio=round_to(signals.content_length_ratio, 3),
            topic_shift=round_to(signals.topic_shift, 3),
            vocabulary_overlap=round_to(signals.vocabulary_overlap, 3),
            structural_similarity=round_to(signals.structural_similarity, 3),
        ),
    )
