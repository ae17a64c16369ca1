"""
Core Data Models for Mindrift

This module defines the canonical value types used throughout the engine:
- EditRecord: A single note edit with its semantic diff
- DailyDrift: One day of aggregated drift plus its smoothed (EMA) value
- GrowthAngle / DriftForecast / DriftWarning / DriftInsight: Insight results
- SemanticChangeDetail: Qualitative classification of a single edit
- DriftAnnotation: A user's subjective label for a calendar day

These models are designed to be:
- Immutable where possible (using frozen dataclasses)
- Closed over small Enums so invalid states are unrepresentable
- Free of I/O, so every computation can be tested in memory
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class Trend(Enum):
    """Direction of the most recent EMA movement."""

    RISING = "rising"
    FALLING = "falling"
    FLAT = "flat"


class Confidence(Enum):
    """Forecast confidence, driven only by how many days are available."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class WarningState(Enum):
    """
    Classification of today's EMA against the recent distribution.

    States:
        STABLE: Today's EMA is within the normal band.
        OVERHEAT: Today's EMA is unusually high (mean + 1.5 sigma).
        STAGNATION: Today's EMA is unusually low (mean - 1.0 sigma).
    """

    STABLE = "stable"
    OVERHEAT = "overheat"
    STAGNATION = "stagnation"


class Severity(Enum):
    NONE = "none"
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class DriftMode(Enum):
    """Behavioral mode derived from trend and warning state."""

    EXPLORATION = "exploration"
    CONSOLIDATION = "consolidation"
    GROWTH = "growth"
    REST = "rest"


class DriftPhase(Enum):
    """
    Coarse direction of recent edits.

    CREATION: Edits mostly add or redirect content.
    DESTRUCTION: Edits mostly cut or condense content.
    NEUTRAL: Edits mostly polish or deepen without changing size.
    """

    CREATION = "creation"
    DESTRUCTION = "destruction"
    NEUTRAL = "neutral"


class ExtendedWarningType(Enum):
    """Warning state qualified by the day's phase."""

    CREATIVE_OVERHEAT = "creative_overheat"
    DESTRUCTIVE_OVERHEAT = "destructive_overheat"
    NEUTRAL_OVERHEAT = "neutral_overheat"
    EXPLORATORY_STAGNATION = "exploratory_stagnation"
    REST_STAGNATION = "rest_stagnation"
    DEEPENING_STAGNATION = "deepening_stagnation"
    STABLE = "stable"


class SemanticChangeType(Enum):
    """
    Qualitative type of a single edit.

    Types:
        EXPANSION: Information was added or scope widened.
        CONTRACTION: Content was narrowed or summarized.
        PIVOT: The topic itself moved.
        DEEPENING: Same topic, same vocabulary, more detail.
        REFINEMENT: Wording fixes with almost no semantic change.
    """

    EXPANSION = "expansion"
    CONTRACTION = "contraction"
    PIVOT = "pivot"
    DEEPENING = "deepening"
    REFINEMENT = "refinement"


class AnnotationLabel(Enum):
    """Subjective labels a user can attach to a day."""

    BREAKTHROUGH = "breakthrough"
    EXPLORATION = "exploration"
    DEEPENING = "deepening"
    CONFUSION = "confusion"
    REST = "rest"
    ROUTINE = "routine"


@dataclass(frozen=True)
class ChangeMetrics:
    """
    Structural metrics computed for an edit.

    Attributes:
        content_length_ratio: len(new_text) / len(old_text), 1.0 for empty old text
        topic_shift: Blend of embedding distance and vocabulary change, in [0, 1]
        vocabulary_overlap: Jaccard index of the token sets, in [0, 1]
        structural_similarity: Heading and paragraph similarity, in [0, 1]
    """

    content_length_ratio: float
    topic_shift: float
    vocabulary_overlap: float
    structural_similarity: float


@dataclass(frozen=True)
class SemanticChangeDetail:
    """
    Classification result for a single edit.

    Attributes:
        type: The detected change type
        confidence: How sure the classifier is, in [0, 1]
        magnitude: Size of the semantic change, in [0, 1]
        direction: Unit vector of (new - old) embedding, or None when it was
                   not persisted
        metrics: The structural metrics the classification was based on

    Invariants:
        - 0 <= confidence <= 1
        - 0 <= magnitude <= 1
    """

    type: SemanticChangeType
    confidence: float
    magnitude: float
    metrics: ChangeMetrics
    direction: Optional[tuple[float, ...]] = None

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")
        if not 0.0 <= self.magnitude <= 1.0:
            raise ValueError(f"magnitude must be in [0, 1], got {self.magnitude}")

    def without_direction(self) -> "SemanticChangeDetail":
        """Return a copy with the direction vector dropped."""
        return SemanticChangeDetail(
            type=self.type,
            confidence=self.confidence,
            magnitude=self.magnitude,
            metrics=self.metrics,
            direction=None,
        )


@dataclass(frozen=True)
class EditRecord:
    """
    A single edit-history row as supplied by the host application.

    Attributes:
        timestamp: When the edit happened (naive values are treated as UTC)
        semantic_diff: Scalar semantic distance of the edit, None if unknown
        note_id: Identifier of the edited note, if known
        change_detail: Classification of the edit, if one was stored
    """

    timestamp: datetime
    semantic_diff: Optional[float]
    note_id: Optional[str] = None
    change_detail: Optional[SemanticChangeDetail] = None


@dataclass(frozen=True)
class DailyDrift:
    """
    One calendar day of drift.

    Attributes:
        date: The calendar day
        drift: Sum of all semantic diffs recorded on that day
        ema: Exponentially smoothed value of the series at that day

    Invariants:
        - drift >= 0
        - ema >= 0
    """

    date: date
    drift: float
    ema: float

    def __post_init__(self) -> None:
        if self.drift < 0 or self.ema < 0:
            raise ValueError(
                f"drift and ema must be non-negative (drift={self.drift}, ema={self.ema})"
            )


@dataclass(frozen=True)
class GrowthAngle:
    """
    Direction and speed of the latest EMA change.

    Attributes:
        angle: atan(ema[today] - ema[yesterday]) in radians
        angle_degrees: The same angle in degrees
        trend: Ternary classification of the relative change
        velocity: Raw EMA difference per day
    """

    angle: float
    angle_degrees: float
    trend: Trend
    velocity: float

    @classmethod
    def flat(cls) -> "GrowthAngle":
        """The angle reported when there is not enough data."""
        return cls(angle=0.0, angle_degrees=0.0, trend=Trend.FLAT, velocity=0.0)


@dataclass(frozen=True)
class DriftForecast:
    """
    Linear extrapolation of the EMA series.

    Invariants:
        - forecast_3d >= 0 and forecast_7d >= 0
    """

    forecast_3d: float
    forecast_7d: float
    confidence: Confidence

    def __post_init__(self) -> None:
        if self.forecast_3d < 0 or self.forecast_7d < 0:
            raise ValueError("forecast values must be non-negative")


@dataclass(frozen=True)
class DriftWarning:
    state: WarningState
    severity: Severity
    recommendation: str


@dataclass(frozen=True)
class ExtendedWarning:
    """
    A warning qualified by the phase of the day.

    Attributes:
        base_state: The underlying warning state
        extended_type: Combined state/phase classification
        phase: The phase used, None if unknown
        severity: Copied from the base warning
        is_creative_overheat: True only for overheat during a creation phase
        recommendation: Phase-aware suggestion
        insight: One-sentence interpretation of the state
    """

    base_state: WarningState
    extended_type: ExtendedWarningType
    phase: Optional[DriftPhase]
    severity: Severity
    is_creative_overheat: bool
    recommendation: str
    insight: str


@dataclass(frozen=True)
class DriftInsight:
    """
    The composed result for one request.

    Attributes:
        angle: Growth angle of the latest EMA movement
        forecast: 3 and 7 day forecast
        warning: Overheat / stagnation detection
        mode: Behavioral mode
        advice: Human-readable advice
        today_drift: Drift of the most recent day (0 when empty)
        today_ema: EMA of the most recent day (0 when empty)
        extended_warning: Phase-aware warning, when computed
    """

    angle: GrowthAngle
    forecast: DriftForecast
    warning: DriftWarning
    mode: DriftMode
    advice: str
    today_drift: float
    today_ema: float
    extended_warning: Optional[ExtendedWarning] = None


@dataclass(frozen=True)
class TimelineSummary:
    today_drift: float
    today_ema: float
    state: WarningState
    trend: Trend
    mean: float
    std_dev: float


@dataclass(frozen=True)
class DriftTimeline:
    """Daily series plus a summary, used for charting."""

    range_days: int
    days: list[DailyDrift]
    summary: TimelineSummary


@dataclass(frozen=True)
class DriftAnnotation:
    """
    A user's subjective label for one calendar day.

    Attributes:
        date: The annotated day (unique key)
        label: One of the six subjective labels
        note: Free text, optional
        auto_phase: Phase computed by the host for that day, informational only
        created_at: When the annotation was first written
        updated_at: When the annotation was last written
    """

    date: date
    label: AnnotationLabel
    note: Optional[str] = None
    auto_phase: Optional[DriftPhase] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class PhaseMatch:
    matched: int = 0
    mismatched: int = 0
    unknown: int = 0


@dataclass
class AnnotationStats:
    """
    Summary of annotations over a trailing window.

    Attributes:
        total: Number of annotations in the window
        by_label: Count per label (every label present)
        phase_match: Agreement between labels and auto phases
    """

    total: int = 0
    by_label: dict[AnnotationLabel, int] = field(
        default_factory=lambda: {label: 0 for label in AnnotationLabel}
    )
    phase_match: PhaseMatch = field(default_factory=PhaseMatch)

    @property
    def match_rate(self) -> float:
        """Share of annotations with a known phase that agree with it."""
        known = self.phase_match.matched + self.phase_match.mismatched
        if known == 0:
            return 0.0
        return self.phase_match.matched / known
