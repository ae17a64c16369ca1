"""
Daily Drift Aggregation for Mindrift

This module reduces raw per-edit semantic diffs into one drift value per
calendar day and smooths the resulting series with an exponential moving
average (EMA).

Pipeline:
    EditRecords -> window filter -> group by calendar day -> sum
                -> EMA (alpha = 0.3) -> rounded DailyDrift rows

Design Decisions:
    - Days without edits are not synthesized: the series only contains
      days that had at least one edit
    - The smoothing constant is a module constant, not a parameter of the
      public entry point, so historical advice stays comparable
    - EMA is computed on unrounded sums; only the emitted rows are rounded
      (half up) to 4 decimals
    - Everything is recomputed per call, no state is carried between calls

Academic Context:
    Input: Edit records with a timestamp and a semantic diff
    Transformation: Daily summation followed by exponential smoothing
    Output: Ascending list of DailyDrift
    Limitation: Calendar day boundaries depend on the caller's timezone
"""

import logging
import math
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence

from mindrift.models import DailyDrift, EditRecord

logger = logging.getLogger(__name__)

# Smoothing constant of the EMA
EMA_ALPHA = 0.3

# Warning thresholds, in standard deviations from the mean
OVERHEAT_SIGMA = 1.5
STAGNATION_SIGMA = 1.0

# Relative EMA change needed to call a trend rising or falling
TREND_THRESHOLD = 0.05

# Default trailing window for insight computation
DEFAULT_WINDOW_DAYS = 30


def round_to(value: float, places: int) -> float:
    """Round half up to a fixed number of decimal places."""
    factor = 10**places
    return math.floor(value * factor + 0.5) / factor


def round4(value: float) -> float:
    return round_to(value, 4)


def calc_ema(values: Sequence[float], alpha: float = EMA_ALPHA) -> list[float]:
    """
    Compute the exponential moving average of a series.

    ema[0] = values[0]
    ema[i] = alpha * values[i] + (1 - alpha) * ema[i - 1]

    Args:
        values: Raw series, oldest first
        alpha: Smoothing constant in (0, 1]

    Returns:
        Unrounded EMA values, same length as the input
    """
    if not values:
        return []

    ema = values[0]
    result = [ema]
    for value in values[1:]:
        ema = alpha * value + (1 - alpha) * ema
        result.append(ema)
    return result


def calc_stats(values: Sequence[float]) -> tuple[float, float]:
    """
    Compute the population mean and standard deviation.

    Returns:
        (mean, std_dev), both 0.0 for an empty input
    """
    if not values:
        return 0.0, 0.0

    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, math.sqrt(variance)


def build_daily_series(daily_totals: Iterable[tuple[date, float]]) -> list[DailyDrift]:
    """
    Turn per-day drift totals into DailyDrift rows with EMA.

    Args:
        daily_totals: (day, total drift) pairs, in ascending day order

    Returns:
        DailyDrift rows with drift and ema rounded to 4 decimals
    """
    totals = list(daily_totals)
    emas = calc_ema([total for _, total in totals])

    return [
        DailyDrift(date=day, drift=round4(total), ema=round4(ema))
        for (day, total), ema in zip(totals, emas)
    ]


def ensure_aware(timestamp: datetime) -> datetime:
    """Return the timestamp, treating a naive value as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def sum_by_day(
    records: Iterable[EditRecord],
    tz: tzinfo = timezone.utc,
    since: Optional[datetime] = None,
) -> list[tuple[date, float]]:
    """
    Sum semantic diffs per calendar day.

    Records without a diff, or with a negative diff, contribute nothing and
    do not create a day on their own.

    Args:
        records: Edit records in any order
        tz: Timezone that defines calendar day boundaries
        since: Only records at or after this instant are counted

    Returns:
        (day, total) pairs in ascending day order
    """
    totals: dict[date, float] = defaultdict(float)
    since = ensure_aware(since) if since is not None else None

    for record in records:
        if record.semantic_diff is None or record.semantic_diff < 0:
            continue
        timestamp = ensure_aware(record.timestamp)
        if since is not None and timestamp < since:
            continue
        totals[timestamp.astimezone(tz).date()] += record.semantic_diff

    return sorted(totals.items())


def aggregate_daily_drift(
    records: Iterable[EditRecord],
    window_days: int = DEFAULT_WINDOW_DAYS,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> list[DailyDrift]:
    """
    Aggregate edit records into a smoothed daily drift series.

    Args:
        records: Edit-history records with timestamps and semantic diffs
        window_days: Size of the trailing window in days
        now: End of the window (defaults to the current time)
        tz: Timezone that defines calendar day boundaries

    Returns:
        Ascending list of DailyDrift, one row per day that had edits

    Example:
        >>> series = aggregate_daily_drift(records, window_days=30)
        >>> series[-1].ema
        0.4213
    """
    if window_days <= 0:
        raise ValueError(f"window_days must be positive, got {window_days}")

    now = ensure_aware(now) if now is not None else datetime.now(timezone.utc)
    since = now - timedelta(days=window_days)

    series = build_daily_series(sum_by_day(records, tz=tz, since=since))
    logger.debug("Aggregated %d day(s) of drift since %s", len(series), since.isoformat())
    return series
