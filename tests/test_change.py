"""
Tests for the change classification module.

Tests tokenization, the change-type cascade, phase detection,
serialization and the injectable embedder.
"""

import json
from datetime import date

import pytest

from mindrift.change import (
    ChangeSignals,
    Embedder,
    SemanticChangeClassifier,
    calculate_structural_similarity,
    calculate_vocabulary_overlap,
    classify_change,
    classify_change_type,
    daily_phases,
    deserialize_change_detail,
    dominant_phase,
    phase_for_change,
    serialize_change_detail,
    tokenize,
)
from mindrift.change.classifier import count_paragraphs, extract_headings, jaccard
from mindrift.models import DriftPhase, SemanticChangeType
from mindrift.similarity import l2_norm
from tests.fixtures import (
    GREEK_NOTE,
    REPEATED_WORD_NOTE,
    RESTRUCTURED_NOTE,
    STRUCTURED_NOTE,
    make_detail,
    make_record,
)

SAME = [1.0, 0.0, 0.0]


class FakeEmbedder:
    """Embedder that maps texts to fixed vectors and records its lifecycle."""

    def __init__(self, vectors):
        self.vectors = vectors
        self.open_calls = 0
        self.close_calls = 0
        self.embedded = []

    def open(self):
        self.open_calls += 1

    def close(self):
        self.close_calls += 1

    def embed(self, text):
        self.embedded.append(text)
        return self.vectors[text]


class TestTokenize:
    """Tests for token extraction."""

    def test_latin_words_lowercased(self):
        """Test that Latin words are lowercased and single letters dropped."""
        assert tokenize("Hello World a b") == ["hello", "world"]

    def test_cjk_runs_kept(self):
        """Test that CJK runs are kept as whole tokens."""
        assert tokenize("東京タワー is tall") == ["東京タワー", "is", "tall"]

    def test_punctuation_and_digits_separate(self):
        """Test that non-letters split tokens."""
        assert tokenize("one,two 3three") == ["one", "two", "three"]

    def test_empty(self):
        """Test that empty text has no tokens."""
        assert tokenize("") == []


class TestTextMetrics:
    """Tests for vocabulary and structure metrics."""

    def test_jaccard_of_empty_sets(self):
        """Test that two empty sets are identical."""
        assert jaccard([], []) == 1.0

    def test_jaccard_disjoint(self):
        """Test that disjoint sets have zero overlap."""
        assert jaccard(["a"], ["b"]) == 0.0

    def test_vocabulary_overlap(self):
        """Test Jaccard on token lists with duplicates."""
        overlap = calculate_vocabulary_overlap(["a", "b", "b"], ["b", "c"])

        assert overlap == pytest.approx(1 / 3)

    def test_extract_headings(self):
        """Test that heading levels one to six are found."""
        text = "# Title\nbody\n## Sub\n####### too deep\n#nospace"

        assert extract_headings(text) == ["Title", "Sub"]

    def test_count_paragraphs(self):
        """Test that blank lines, including whitespace-only ones, separate paragraphs."""
        assert count_paragraphs("a\n\nb\n  \nc") == 3
        assert count_paragraphs("") == 0

    def test_structural_similarity_identical(self):
        """Test that identical texts are structurally identical."""
        assert calculate_structural_similarity(STRUCTURED_NOTE, STRUCTURED_NOTE) == pytest.approx(1.0)

    def test_structural_similarity_changed_heading(self):
        """Test that a renamed section lowers the heading overlap."""
        similarity = calculate_structural_similarity(STRUCTURED_NOTE, RESTRUCTURED_NOTE)

        # Headings: 2 shared of 4 total, paragraphs: 6 vs 6
        assert similarity == pytest.approx(0.6 * 0.5 + 0.4)


class TestChangeClassification:
    """Tests for the change-type cascade."""

    def test_expansion(self):
        """Test that 35% more content with the same meaning is an expansion."""
        old = REPEATED_WORD_NOTE
        new = old + "word " * 7

        detail = classify_change(old, new, SAME, SAME, magnitude=0.3)

        assert detail.type == SemanticChangeType.EXPANSION
        assert detail.confidence == pytest.approx(0.64)
        assert detail.magnitude == pytest.approx(0.3)
        assert detail.metrics.content_length_ratio == pytest.approx(1.35)
        assert detail.metrics.topic_shift == 0.0
        assert detail.metrics.vocabulary_overlap == 1.0

    def test_refinement(self):
        """Test that a tiny magnitude is a refinement."""
        detail = classify_change("teh note", "the note", SAME, SAME, magnitude=0.02)

        assert detail.type == SemanticChangeType.REFINEMENT
        assert detail.confidence == 0.95

    def test_pivot(self):
        """Test that unrelated text and embeddings are a pivot."""
        detail = classify_change(
            "apple banana cherry",
            "quantum physics theory",
            [1.0, 0.0],
            [0.0, 1.0],
        )

        assert detail.type == SemanticChangeType.PIVOT
        assert detail.magnitude == 1.0
        assert detail.metrics.topic_shift == 1.0
        assert detail.confidence == 0.95

    def test_refinement_checked_before_pivot(self):
        """Test that a tiny magnitude wins even when the topic moved."""
        detail = classify_change(
            "apple banana cherry",
            "quantum physics theory",
            [1.0, 0.0],
            [0.0, 1.0],
            magnitude=0.01,
        )

        assert detail.type == SemanticChangeType.REFINEMENT

    def test_contraction(self):
        """Test that halving the content is a contraction."""
        detail = classify_change(REPEATED_WORD_NOTE, "word " * 10, SAME, SAME, magnitude=0.3)

        assert detail.type == SemanticChangeType.CONTRACTION
        assert detail.confidence == pytest.approx(0.7)

    def test_deepening(self):
        """Test that similar size with shared vocabulary is deepening."""
        detail = classify_change(GREEK_NOTE, GREEK_NOTE + " kappa", SAME, SAME, magnitude=0.3)

        assert detail.type == SemanticChangeType.DEEPENING
        # Same (absent) headings and one paragraph each: structure bonus applies
        assert detail.confidence == pytest.approx(0.7)
        assert detail.metrics.vocabulary_overlap == pytest.approx(0.9)

    def test_fallback_expansion(self):
        """Test the low-confidence bucket for a slightly longer text."""
        detail = classify_change(
            "alpha beta gamma delta", "omega sigma kappa theta", SAME, SAME, magnitude=0.3
        )

        assert detail.type == SemanticChangeType.EXPANSION
        assert detail.confidence == 0.5

    def test_fallback_contraction(self):
        """Test the low-confidence bucket for a slightly shorter text."""
        detail = classify_change(
            "alpha beta gamma delta", "omega sigma kappa", SAME, SAME, magnitude=0.3
        )

        assert detail.type == SemanticChangeType.CONTRACTION
        assert detail.confidence == 0.5

    def test_empty_old_text(self):
        """Test that an empty old text has a length ratio of 1."""
        detail = classify_change("", "new words here", SAME, SAME, magnitude=0.3)

        assert detail.metrics.content_length_ratio == 1.0

    def test_magnitude_defaults_to_cosine_distance(self):
        """Test that magnitude is computed from the embeddings and clamped."""
        detail = classify_change("a note", "a note", [1.0, 0.0], [-1.0, 0.0])

        assert detail.magnitude == 1.0

    def test_direction_is_unit_vector(self):
        """Test that the direction points from old to new with unit length."""
        detail = classify_change("one", "two", [1.0, 0.0], [0.0, 1.0])

        assert l2_norm(detail.direction) == pytest.approx(1.0)
        assert detail.direction[0] < 0 < detail.direction[1]

    def test_zero_direction_for_identical_embeddings(self):
        """Test that identical embeddings give a zero direction, not an error."""
        detail = classify_change("note", "note!", SAME, SAME, magnitude=0.01)

        assert detail.direction == (0.0, 0.0, 0.0)

    def test_mismatched_dimensions(self):
        """Test that embeddings of different length raise ValueError."""
        with pytest.raises(ValueError):
            classify_change("a", "b", [1.0, 0.0], [1.0, 0.0, 0.0])

    def test_deterministic(self):
        """Test that identical inputs give identical results."""
        args = (STRUCTURED_NOTE, RESTRUCTURED_NOTE, [0.6, 0.8], [0.8, 0.6])

        assert classify_change(*args) == classify_change(*args)

    def test_cascade_on_signals(self):
        """Test the cascade directly on precomputed signals."""
        signals = ChangeSignals(
            magnitude=0.5,
            content_length_ratio=2.0,
            topic_shift=0.1,
            vocabulary_overlap=0.9,
            structural_similarity=0.2,
        )

        change_type, confidence = classify_change_type(signals)

        # Expansion is checked before deepening
        assert change_type == SemanticChangeType.EXPANSION
        assert confidence == pytest.approx(0.9)


class TestPhase:
    """Tests for phase detection."""

    @pytest.mark.parametrize(
        "change_type,expected",
        [
            (SemanticChangeType.EXPANSION, DriftPhase.CREATION),
            (SemanticChangeType.PIVOT, DriftPhase.CREATION),
            (SemanticChangeType.CONTRACTION, DriftPhase.DESTRUCTION),
            (SemanticChangeType.DEEPENING, DriftPhase.NEUTRAL),
            (SemanticChangeType.REFINEMENT, DriftPhase.NEUTRAL),
        ],
    )
    def test_phase_mapping(self, change_type, expected):
        """Test the change type to phase mapping."""
        assert phase_for_change(change_type) == expected

    @pytest.mark.parametrize(
        "counts,expected",
        [
            ({}, DriftPhase.NEUTRAL),
            ({DriftPhase.CREATION: 0}, DriftPhase.NEUTRAL),
            ({DriftPhase.CREATION: 2, DriftPhase.DESTRUCTION: 2}, DriftPhase.CREATION),
            ({DriftPhase.DESTRUCTION: 1, DriftPhase.NEUTRAL: 1}, DriftPhase.DESTRUCTION),
            ({DriftPhase.NEUTRAL: 3, DriftPhase.CREATION: 1}, DriftPhase.NEUTRAL),
        ],
    )
    def test_dominant_phase(self, counts, expected):
        """Test majority selection and tie-breaks."""
        assert dominant_phase(counts) == expected

    def test_daily_phases(self):
        """Test that phases are computed per day from classified records only."""
        records = [
            make_record(date(2024, 5, 8), 0.1, change_type=SemanticChangeType.CONTRACTION),
            make_record(date(2024, 5, 9), 0.1, change_type=SemanticChangeType.REFINEMENT),
            make_record(date(2024, 5, 9), 0.1, hour=13, change_type=SemanticChangeType.DEEPENING),
            make_record(date(2024, 5, 9), 0.1, hour=14, change_type=SemanticChangeType.PIVOT),
            make_record(date(2024, 5, 10), 0.1),
        ]

        phases = daily_phases(records)

        assert phases == {
            date(2024, 5, 8): DriftPhase.DESTRUCTION,
            date(2024, 5, 9): DriftPhase.NEUTRAL,
        }


class TestSerialization:
    """Tests for change detail JSON."""

    def test_direction_omitted_by_default(self):
        """Test that the direction vector is not persisted by default."""
        detail = make_detail(direction=(0.6, 0.8))

        data = json.loads(serialize_change_detail(detail))

        assert "direction" not in data
        assert data["metrics"]["contentLengthRatio"] == 1.35

    def test_round_trip_without_direction(self):
        """Test that a persisted detail reloads with direction None."""
        detail = make_detail(direction=(0.6, 0.8))

        restored = deserialize_change_detail(serialize_change_detail(detail))

        assert restored == detail.without_direction()
        assert restored.direction is None

    def test_direction_kept_on_request(self):
        """Test that include_direction keeps the vector."""
        detail = make_detail(direction=(0.6, 0.8))

        restored = deserialize_change_detail(
            serialize_change_detail(detail, include_direction=True)
        )

        assert restored.direction == (0.6, 0.8)

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "[1, 2]",
            '{"type": "expansion"}',
            '{"type": "growing", "confidence": 0.5, "magnitude": 0.5, "metrics": {}}',
        ],
    )
    def test_malformed_input(self, text):
        """Test that malformed details raise ValueError."""
        with pytest.raises(ValueError):
            deserialize_change_detail(text)


class TestSemanticChangeClassifier:
    """Tests for the embedder-backed classifier."""

    def test_fake_satisfies_protocol(self):
        """Test that a duck-typed embedder matches the protocol."""
        assert isinstance(FakeEmbedder({}), Embedder)

    def test_context_manager_lifecycle(self):
        """Test that the embedder is opened on enter and closed on exit."""
        embedder = FakeEmbedder({"old": [1.0, 0.0], "new": [0.0, 1.0]})

        with SemanticChangeClassifier(embedder) as classifier:
            assert classifier.is_open
            detail = classifier.classify("old", "new")

        assert detail.type == SemanticChangeType.PIVOT
        assert embedder.open_calls == 1
        assert embedder.close_calls == 1
        assert embedder.embedded == ["old", "new"]

    def test_lazy_open(self):
        """Test that classify opens the embedder on first use only."""
        embedder = FakeEmbedder({"a note": SAME, "a note.": SAME})
        classifier = SemanticChangeClassifier(embedder)

        assert not classifier.is_open
        classifier.classify("a note", "a note.", magnitude=0.01)
        classifier.classify("a note", "a note.", magnitude=0.01)

        assert embedder.open_calls == 1

    def test_close_is_idempotent(self):
        """Test that closing twice closes the embedder once."""
        embedder = FakeEmbedder({})
        classifier = SemanticChangeClassifier(embedder)
        classifier.open()

        classifier.close()
        classifier.close()

        assert embedder.close_calls == 1
        assert not classifier.is_open
