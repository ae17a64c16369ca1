"""
Drift Insight Composition for Mindrift

Orchestrates the insight pipeline over an already aggregated series:

    series -> growth angle -> forecast
           -> warning -> mode -> advice
           -> extended warning (with today's phase)

Advice rule: when the warning is not stable its recommendation is used
verbatim, otherwise the mode's advice. The extended warning is reported
alongside but does not change the advice.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from mindrift.change.phase import daily_phases
from mindrift.insight.mode import detect_drift_mode, generate_advice
from mindrift.insight.signals import calc_drift_forecast, calc_growth_angle
from mindrift.insight.warning import detect_extended_warning, detect_warning
from mindrift.models import DailyDrift, DriftInsight, DriftPhase, EditRecord
from mindrift.timeline.aggregator import DEFAULT_WINDOW_DAYS, aggregate_daily_drift

logger = logging.getLogger(__name__)


def compute_insight(
    series: Sequence[DailyDrift],
    today_phase: Optional[DriftPhase] = None,
) -> DriftInsight:
    """
    Compose the full insight for a daily drift series.

    Args:
        series: Daily drift rows, oldest first
        today_phase: Phase of the most recent day, if known

    Returns:
        DriftInsight; an empty series yields zeros, a flat angle, low
        confidence and a stable warning
    """
    angle = calc_growth_angle(series)
    forecast = calc_drift_forecast(series, angle)
    warning = detect_warning(series)
    mode = detect_drift_mode(angle, warning)

    today = series[-1] if series else None
    logger.debug(
        "Insight over %d day(s): trend=%s warning=%s mode=%s",
        len(series),
        angle.trend.value,
        warning.state.value,
        mode.value,
    )

    return DriftInsight(
        angle=angle,
        forecast=forecast,
        warning=warning,
        mode=mode,
        advice=generate_advice(mode, warning),
        today_drift=today.drift if today else 0.0,
        today_ema=today.ema if today else 0.0,
        extended_warning=detect_extended_warning(warning, today_phase),
    )


def generate_insight(
    records: Iterable[EditRecord],
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> DriftInsight:
    """
    Aggregate raw edit records and compose the insight.

    Today's phase is derived from the change details of the most recent
    day's records, when any are present.

    Args:
        records: Edit-history records
        window_days: Size of the trailing window in days
        now: End of the window (defaults to the current time)
        tz: Timezone that defines calendar day boundaries

    Returns:
        DriftInsight for the window
    """
    records = list(records)
    series = aggregate_daily_drift(records, window_days=window_days, now=now, tz=tz)

    today_phase = None
    if series:
        today_phase = daily_phases(records, tz=tz).get(series[-1].date)

    return compute_insight(series, today_phase=today_phase)
