"""
Timeline module for Mindrift.

This module turns raw edit records into a smoothed daily drift series
and summarizes it for charting.
"""

from mindrift.timeline.aggregator import (
    DEFAULT_WINDOW_DAYS,
    EMA_ALPHA,
    aggregate_daily_drift,
    build_daily_series,
    calc_ema,
    calc_stats,
    sum_by_day,
)
from mindrift.timeline.summary import (
    build_timeline,
    classify_drift_state,
    classify_trend,
    describe_timeline,
)

__all__ = [
    "DEFAULT_WINDOW_DAYS",
    "EMA_ALPHA",
    "aggregate_daily_drift",
    "build_daily_series",
    "calc_ema",
    "calc_stats",
    "sum_by_day",
    "build_timeline",
    "classify_drift_state",
    "classify_trend",
    "describe_timeline",
]
