"""
Growth Angle and Drift Forecast for Mindrift

Two small signals derived from the tail of the EMA series:

    Growth angle: angle = atan(ema[today] - ema[yesterday])
    Forecast:     forecast[n] = max(0, ema[today] + velocity * n), n in {3, 7}

Design Decisions:
    - Fewer than two days is a defined floor (flat, zero velocity),
      not an error
    - Forecast confidence depends only on the number of days available.
      It is not a statistical interval; this is a known simplification
    - Forecasts are floored at zero because drift cannot be negative
"""

import math
from typing import Sequence

from mindrift.models import Confidence, DailyDrift, DriftForecast, GrowthAngle, Trend
from mindrift.timeline.aggregator import TREND_THRESHOLD, round4

FORECAST_HORIZONS = (3, 7)
HIGH_CONFIDENCE_DAYS = 14
MEDIUM_CONFIDENCE_DAYS = 7


def calc_growth_angle(series: Sequence[DailyDrift]) -> GrowthAngle:
    """
    Compute the growth angle from the last two EMA points.

    Args:
        series: Daily drift rows, oldest first

    Returns:
        GrowthAngle with angle, degrees, trend and velocity rounded to 4
        decimals. With fewer than 2 points: angle 0, FLAT, velocity 0.
    """
    if len(series) < 2:
        return GrowthAngle.flat()

    today = series[-1]
    yesterday = series[-2]

    diff = today.ema - yesterday.ema
    angle = math.atan(diff)
    angle_degrees = angle * 180 / math.pi

    relative_change = diff / yesterday.ema if yesterday.ema > 0 else 0.0
    if relative_change > TREND_THRESHOLD:
        trend = Trend.RISING
    elif relative_change < -TREND_THRESHOLD:
        trend = Trend.FALLING
    else:
        trend = Trend.FLAT

    return GrowthAngle(
        angle=round4(angle),
        angle_degrees=round4(angle_degrees),
        trend=trend,
        velocity=round4(diff),
    )


def forecast_confidence(day_count: int) -> Confidence:
    """Map the number of available days to a confidence label."""
    if day_count >= HIGH_CONFIDENCE_DAYS:
        return Confidence.HIGH
    if day_count >= MEDIUM_CONFIDENCE_DAYS:
        return Confidence.MEDIUM
    return Confidence.LOW


def calc_drift_forecast(series: Sequence[DailyDrift], angle: GrowthAngle) -> DriftForecast:
    """
    Linearly extrapolate today's EMA by the growth-angle velocity.

    Args:
        series: Daily drift rows, oldest first
        angle: Growth angle computed from the same series

    Returns:
        DriftForecast for 3 and 7 days ahead, never negative
    """
    if not series:
        return DriftForecast(forecast_3d=0.0, forecast_7d=0.0, confidence=Confidence.LOW)

    today_ema = series[-1].ema
    forecast_3d, forecast_7d = (
        max(0.0, round4(today_ema + angle.velocity * days)) for days in FORECAST_HORIZONS
    )

    return DriftForecast(
        forecast_3d=forecast_3d,
        forecast_7d=forecast_7d,
        confidence=forecast_confidence(len(series)),
    )
