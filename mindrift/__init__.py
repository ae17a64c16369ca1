"""
Mindrift Engine

Thought-drift analytics for a personal note-taking tool: daily drift
aggregation and smoothing, growth angle, forecast, warnings, behavioral
mode, per-edit change classification and daily annotations.
"""

from mindrift.annotation import get_annotation_stats, upsert_annotation
from mindrift.change import classify_change
from mindrift.insight import compute_insight
from mindrift.models import DailyDrift, DriftInsight, EditRecord, SemanticChangeDetail
from mindrift.timeline import aggregate_daily_drift

__all__ = [
    "aggregate_daily_drift",
    "compute_insight",
    "classify_change",
    "upsert_annotation",
    "get_annotation_stats",
    "DailyDrift",
    "DriftInsight",
    "EditRecord",
    "SemanticChangeDetail",
]
__version__ = "0.1.0"
