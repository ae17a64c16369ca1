"""
Drift Timeline Summary for Mindrift

Builds the chart-oriented view of a daily drift series: the rows
themselves plus a summary of today's values, the recent mean and
standard deviation, the state of today's EMA and a short lookback trend.

This is a descriptive companion to the insight pipeline. It uses the
same thresholds, but it compares against a bounded statistics window and
treats a flat series (zero deviation) as stable.
"""

from typing import Sequence

from mindrift.models import DailyDrift, DriftTimeline, TimelineSummary, Trend, WarningState
from mindrift.timeline.aggregator import (
    OVERHEAT_SIGMA,
    STAGNATION_SIGMA,
    TREND_THRESHOLD,
    calc_stats,
    round4,
)

DEFAULT_RANGE_DAYS = 90
DEFAULT_STATS_WINDOW = 30
DEFAULT_TREND_LOOKBACK = 3


def classify_drift_state(current_ema: float, mean: float, std_dev: float) -> WarningState:
    """
    Classify today's EMA against the distribution of recent EMA values.

    Args:
        current_ema: Today's EMA
        mean: Mean of recent EMA values
        std_dev: Population standard deviation of recent EMA values

    Returns:
        STABLE when std_dev is zero or the EMA is within the band,
        otherwise OVERHEAT or STAGNATION
    """
    if std_dev == 0:
        return WarningState.STABLE
    if current_ema > mean + OVERHEAT_SIGMA * std_dev:
        return WarningState.OVERHEAT
    if current_ema < mean - STAGNATION_SIGMA * std_dev:
        return WarningState.STAGNATION
    return WarningState.STABLE


def classify_trend(
    series: Sequence[DailyDrift],
    lookback: int = DEFAULT_TREND_LOOKBACK,
) -> Trend:
    """
    Classify the trend over the last `lookback` days.

    Compares the first and last EMA of the lookback slice; a change larger
    than 5% of the first value is rising or falling.
    """
    recent = list(series)[-lookback:]
    if len(recent) < 2:
        return Trend.FLAT

    first_ema = recent[0].ema
    diff = recent[-1].ema - first_ema
    threshold = first_ema * TREND_THRESHOLD

    if diff > threshold:
        return Trend.RISING
    if diff < -threshold:
        return Trend.FALLING
    return Trend.FLAT


def build_timeline(
    series: Sequence[DailyDrift],
    range_days: int = DEFAULT_RANGE_DAYS,
    stats_window: int = DEFAULT_STATS_WINDOW,
) -> DriftTimeline:
    """
    Build the timeline view of a daily drift series.

    Args:
        series: Daily drift rows, oldest first
        range_days: The window the series was aggregated over (reported only)
        stats_window: Number of most recent days used for mean / std_dev

    Returns:
        DriftTimeline with rows and summary
    """
    days = list(series)
    mean, std_dev = calc_stats([d.ema for d in days[-stats_window:]])

    today = days[-1] if days else None
    today_drift = today.drift if today else 0.0
    today_ema = today.ema if today else 0.0

    summary = TimelineSummary(
        today_drift=round4(today_drift),
        today_ema=round4(today_ema),
        state=classify_drift_state(today_ema, mean, std_dev),
        trend=classify_trend(days),
        mean=round4(mean),
        std_dev=round4(std_dev),
    )
    return DriftTimeline(range_days=range_days, days=days, summary=summary)


_STATE_DESCRIPTIONS = {
    WarningState.OVERHEAT: (
        "Thinking is running hot. Some time to settle and organize may help."
    ),
    WarningState.STAGNATION: (
        "Thinking has slowed down. New input or a change of perspective may help."
    ),
    WarningState.STABLE: "Growth is at a steady pace.",
}

_TREND_DESCRIPTIONS = {
    Trend.RISING: "The pace of change is increasing.",
    Trend.FALLING: "The pace of change is settling down.",
    Trend.FLAT: "The pace of change is level.",
}


def describe_timeline(summary: TimelineSummary) -> str:
    """Return a one-line description of the timeline state and trend."""
    return f"{_STATE_DESCRIPTIONS[summary.state]} {_TREND_DESCRIPTIONS[summary.trend]}"
