"""
Insight module for Mindrift.

This module derives growth angle, forecast, warnings and behavioral mode
from a daily drift series and composes them into one DriftInsight.
"""

from mindrift.insight.composer import compute_insight, generate_insight
from mindrift.insight.mode import detect_drift_mode, generate_advice
from mindrift.insight.signals import calc_drift_forecast, calc_growth_angle
from mindrift.insight.warning import detect_extended_warning, detect_warning

__all__ = [
    "compute_insight",
    "generate_insight",
    "detect_drift_mode",
    "generate_advice",
    "calc_drift_forecast",
    "calc_growth_angle",
    "detect_extended_warning",
    "detect_warning",
]
