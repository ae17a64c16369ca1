"""
Drift Annotations for Mindrift

Users can attach one subjective label per calendar day (breakthrough,
exploration, deepening, confusion, rest, routine). This module validates
and merges annotation upserts and compares labels with the phase the
host computed for the same day.

Phase Agreement:
    breakthrough -> {creation}
    exploration  -> {creation, neutral}
    deepening    -> {destruction, neutral}
    confusion    -> {creation, destruction}
    rest         -> {neutral}
    routine      -> {neutral}

    An annotation without an auto phase is "unknown". Agreement is
    descriptive only: a mismatch never changes the user's label.

Design Decisions:
    - Invalid input is rejected with AnnotationValidationError, never
      coerced; nothing is written on failure
    - Upserts are keyed by date: an existing annotation keeps its
      created_at and its auto phase when the new input omits one
    - Pure functions over in-memory values; persistence lives in
      mindrift.storage
"""

import datetime as dt
import re
from typing import Iterable, Optional, Union

from mindrift.models import (
    AnnotationLabel,
    AnnotationStats,
    DriftAnnotation,
    DriftPhase,
)

DEFAULT_STATS_WINDOW_DAYS = 90

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

EXPECTED_PHASES: dict[AnnotationLabel, frozenset[DriftPhase]] = {
    AnnotationLabel.BREAKTHROUGH: frozenset({DriftPhase.CREATION}),
    AnnotationLabel.EXPLORATION: frozenset({DriftPhase.CREATION, DriftPhase.NEUTRAL}),
    AnnotationLabel.DEEPENING: frozenset({DriftPhase.DESTRUCTION, DriftPhase.NEUTRAL}),
    AnnotationLabel.CONFUSION: frozenset({DriftPhase.CREATION, DriftPhase.DESTRUCTION}),
    AnnotationLabel.REST: frozenset({DriftPhase.NEUTRAL}),
    AnnotationLabel.ROUTINE: frozenset({DriftPhase.NEUTRAL}),
}


class AnnotationValidationError(ValueError):
    """Raised when an annotation upsert has an invalid date, label or phase."""


def is_valid_date(value: str) -> bool:
    """Check that a string is YYYY-MM-DD and names a real calendar day."""
    if not _DATE_PATTERN.match(value):
        return False
    try:
        dt.date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_date(value: Union[str, dt.date]) -> dt.date:
    """
    Parse an annotation date.

    Raises:
        AnnotationValidationError: If the value is not a real YYYY-MM-DD date
    """
    if isinstance(value, dt.datetime):
        raise AnnotationValidationError(f"Invalid date: {value!r}. Use YYYY-MM-DD.")
    if isinstance(value, dt.date):
        return value
    if not isinstance(value, str) or not is_valid_date(value):
        raise AnnotationValidationError(f"Invalid date format: {value!r}. Use YYYY-MM-DD.")
    return dt.date.fromisoformat(value)


def parse_label(value: Union[str, AnnotationLabel]) -> AnnotationLabel:
    """
    Parse an annotation label.

    Raises:
        AnnotationValidationError: If the value is not one of the six labels
    """
    if isinstance(value, AnnotationLabel):
        return value
    try:
        return AnnotationLabel(value)
    except ValueError:
        valid = ", ".join(label.value for label in AnnotationLabel)
        raise AnnotationValidationError(
            f"Invalid label: {value!r}. Valid labels: {valid}"
        ) from None


def parse_phase(value: Union[str, DriftPhase, None]) -> Optional[DriftPhase]:
    """Parse an optional phase, raising AnnotationValidationError for unknown values."""
    if value is None or isinstance(value, DriftPhase):
        return value
    try:
        return DriftPhase(value)
    except ValueError:
        valid = ", ".join(phase.value for phase in DriftPhase)
        raise AnnotationValidationError(
            f"Invalid phase: {value!r}. Valid phases: {valid}"
        ) from None


def upsert_annotation(
    date: Union[str, dt.date],
    label: Union[str, AnnotationLabel],
    note: Optional[str] = None,
    auto_phase: Union[str, DriftPhase, None] = None,
    existing: Optional[DriftAnnotation] = None,
    now: Optional[dt.datetime] = None,
) -> DriftAnnotation:
    """
    Validate an annotation and merge it with the existing one for its date.

    Args:
        date: Day being annotated, as YYYY-MM-DD or a date
        label: One of the six annotation labels
        note: Free text; replaces any previous note
        auto_phase: Phase computed by the host; kept from `existing` if omitted
        existing: The currently stored annotation for the same date, if any
        now: Timestamp for created_at / updated_at (defaults to the current time)

    Returns:
        The annotation to store

    Raises:
        AnnotationValidationError: If the date, label or phase is invalid, or
            `existing` belongs to a different date
    """
    day = parse_date(date)
    parsed_label = parse_label(label)
    parsed_phase = parse_phase(auto_phase)
    now = now or dt.datetime.now(dt.timezone.utc)

    if existing is None:
        return DriftAnnotation(
            date=day,
            label=parsed_label,
            note=note,
            auto_phase=parsed_phase,
            created_at=now,
            updated_at=now,
        )

    if existing.date != day:
        raise AnnotationValidationError(
            f"Existing annotation is for {existing.date.isoformat()}, not {day.isoformat()}"
        )

    return DriftAnnotation(
        date=day,
        label=parsed_label,
        note=note,
        auto_phase=parsed_phase if parsed_phase is not None else existing.auto_phase,
        created_at=existing.created_at or now,
        updated_at=now,
    )


def check_phase_match(label: AnnotationLabel, phase: DriftPhase) -> bool:
    """Return True when the phase is one the label is expected to co-occur with."""
    return phase in EXPECTED_PHASES[label]


def get_annotation_stats(
    annotations: Iterable[DriftAnnotation],
    window_days: int = DEFAULT_STATS_WINDOW_DAYS,
    today: Optional[dt.date] = None,
) -> AnnotationStats:
    """
    Summarize annotations dated within the trailing window.

    Args:
        annotations: Annotations in any order
        window_days: Size of the trailing window; today - window_days through
                     today are included
        today: End of the window (defaults to the current UTC date)

    Returns:
        AnnotationStats with per-label counts and phase agreement totals

    Example:
        >>> stats = get_annotation_stats(annotations, window_days=30)
        >>> stats.phase_match.mismatched
        2
    """
    today = today or dt.datetime.now(dt.timezone.utc).date()
    start = today - dt.timedelta(days=window_days)

    stats = AnnotationStats()
    match = stats.phase_match

    for annotation in annotations:
        if not start <= annotation.date <= today:
            continue

        stats.total += 1
        stats.by_label[annotation.label] += 1

        if annotation.auto_phase is None:
            match.unknown += 1
        elif check_phase_match(annotation.label, annotation.auto_phase):
            match.matched += 1
        else:
            match.mismatched += 1

    return stats
