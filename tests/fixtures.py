"""
Test fixtures for Mindrift.

This module provides sample note texts and helper functions
for building drift series, edit records and change details.
"""

from datetime import date, datetime, timedelta, timezone

from mindrift.models import (
    ChangeMetrics,
    DailyDrift,
    EditRecord,
    SemanticChangeDetail,
    SemanticChangeType,
)

# Sample note texts
REPEATED_WORD_NOTE = "word " * 20

GREEK_NOTE = "alpha beta gamma delta epsilon zeta eta theta iota"

STRUCTURED_NOTE = """# Reading list

Books I want to read this year.

## Fiction

A few novels.

## Science

Popular science titles.
"""

RESTRUCTURED_NOTE = """# Reading list

Books I want to read this year.

## Fiction

A few novels.

## History

Some history titles.
"""

START_DAY = date(2024, 5, 1)


def make_series(emas, start=START_DAY):
    """Build a DailyDrift series where drift equals ema, one row per day."""
    return [
        DailyDrift(date=start + timedelta(days=i), drift=value, ema=value)
        for i, value in enumerate(emas)
    ]


def make_detail(change_type=SemanticChangeType.EXPANSION, direction=None):
    """Build a valid SemanticChangeDetail of the given type."""
    return SemanticChangeDetail(
        type=change_type,
        confidence=0.64,
        magnitude=0.3,
        metrics=ChangeMetrics(
            content_length_ratio=1.35,
            topic_shift=0.0,
            vocabulary_overlap=1.0,
            structural_similarity=1.0,
        ),
        direction=direction,
    )


def make_record(day, diff, hour=12, change_type=None, note_id="note-1"):
    """Build an EditRecord at noon UTC (by default) on the given day."""
    return EditRecord(
        timestamp=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
        semantic_diff=diff,
        note_id=note_id,
        change_detail=make_detail(change_type) if change_type else None,
    )
