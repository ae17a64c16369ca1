"""
Annotation module for Mindrift.

This module validates daily subjective annotations and reports how well
they agree with the automatically computed phase.
"""

from mindrift.annotation.matcher import (
    AnnotationValidationError,
    EXPECTED_PHASES,
    check_phase_match,
    get_annotation_stats,
    is_valid_date,
    parse_date,
    parse_label,
    parse_phase,
    upsert_annotation,
)

__all__ = [
    "AnnotationValidationError",
    "EXPECTED_PHASES",
    "check_phase_match",
    "get_annotation_stats",
    "is_valid_date",
    "parse_date",
    "parse_label",
    "parse_phase",
    "upsert_annotation",
]
