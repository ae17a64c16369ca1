"""
Tests for the insight module.

Tests growth angle, forecast, warnings, mode selection, advice and
the composed insight.
"""

import math
import random
from datetime import date, datetime, timedelta, timezone

import pytest

from mindrift.insight import (
    calc_drift_forecast,
    calc_growth_angle,
    compute_insight,
    detect_drift_mode,
    detect_extended_warning,
    detect_warning,
    generate_advice,
    generate_insight,
)
from mindrift.insight.mode import MODE_ADVICE
from mindrift.insight.signals import forecast_confidence
from mindrift.insight.warning import (
    INSUFFICIENT_DATA_RECOMMENDATION,
    OVERHEAT_RECOMMENDATION,
    STABLE_RECOMMENDATION,
    STAGNATION_RECOMMENDATION,
)
from mindrift.models import (
    Confidence,
    DriftMode,
    DriftPhase,
    DriftWarning,
    ExtendedWarningType,
    GrowthAngle,
    SemanticChangeType,
    Severity,
    Trend,
    WarningState,
)
from mindrift.timeline import build_daily_series
from tests.fixtures import make_record, make_series

# Twenty alternating values keep mean and deviation stable around the last day
BACKGROUND = [8.0, 12.0] * 10


def _warning(state, severity=Severity.NONE, recommendation="rec"):
    return DriftWarning(state=state, severity=severity, recommendation=recommendation)


def _angle(trend):
    return GrowthAngle(angle=0.0, angle_degrees=0.0, trend=trend, velocity=0.0)


class TestGrowthAngle:
    """Tests for calc_growth_angle."""

    @pytest.mark.parametrize("emas", [[], [1.0]])
    def test_floor_below_two_days(self, emas):
        """Test that fewer than two days give a flat zero angle."""
        angle = calc_growth_angle(make_series(emas))

        assert angle == GrowthAngle.flat()

    def test_rising(self):
        """Test angle, degrees and velocity for a rising EMA."""
        angle = calc_growth_angle(make_series([1.0, 1.5]))

        assert angle.trend == Trend.RISING
        assert angle.velocity == 0.5
        assert angle.angle == pytest.approx(math.atan(0.5), abs=1e-4)
        assert angle.angle_degrees == pytest.approx(math.degrees(math.atan(0.5)), abs=1e-4)

    def test_falling(self):
        """Test that a drop of more than 5% is falling."""
        angle = calc_growth_angle(make_series([1.0, 0.9]))

        assert angle.trend == Trend.FALLING
        assert angle.angle < 0

    def test_small_change_is_flat(self):
        """Test that a change within 5% is flat."""
        angle = calc_growth_angle(make_series([1.0, 1.02]))

        assert angle.trend == Trend.FLAT

    def test_zero_yesterday_is_flat(self):
        """Test that a zero previous EMA cannot produce a relative trend."""
        angle = calc_growth_angle(make_series([0.0, 0.5]))

        assert angle.trend == Trend.FLAT
        assert angle.velocity == 0.5


class TestForecast:
    """Tests for calc_drift_forecast."""

    def test_empty_series(self):
        """Test that no data forecasts zero with low confidence."""
        forecast = calc_drift_forecast([], GrowthAngle.flat())

        assert forecast.forecast_3d == 0.0
        assert forecast.forecast_7d == 0.0
        assert forecast.confidence == Confidence.LOW

    def test_linear_extrapolation(self):
        """Test ema + velocity * days."""
        series = make_series([1.0, 1.5])

        forecast = calc_drift_forecast(series, calc_growth_angle(series))

        assert forecast.forecast_3d == 3.0
        assert forecast.forecast_7d == 5.0

    def test_never_negative(self):
        """Test that a steep fall is floored at zero."""
        series = make_series([1.0, 0.2])

        forecast = calc_drift_forecast(series, calc_growth_angle(series))

        assert forecast.forecast_3d == 0.0
        assert forecast.forecast_7d == 0.0

    @pytest.mark.parametrize(
        "days,expected",
        [
            (0, Confidence.LOW),
            (6, Confidence.LOW),
            (7, Confidence.MEDIUM),
            (13, Confidence.MEDIUM),
            (14, Confidence.HIGH),
            (60, Confidence.HIGH),
        ],
    )
    def test_confidence_steps(self, days, expected):
        """Test that confidence depends only on the number of days."""
        assert forecast_confidence(days) == expected

    @pytest.mark.parametrize("seed", range(10))
    def test_never_negative_for_random_series(self, seed):
        """Test that forecasts stay non-negative for arbitrary daily totals."""
        rng = random.Random(seed)
        start = date(2024, 1, 1)
        totals = [(start + timedelta(days=i), rng.uniform(0, 3)) for i in range(rng.randint(2, 30))]
        series = build_daily_series(totals)

        forecast = calc_drift_forecast(series, calc_growth_angle(series))

        assert forecast.forecast_3d >= 0
        assert forecast.forecast_7d >= 0


class TestWarning:
    """Tests for detect_warning."""

    @pytest.mark.parametrize("emas", [[], [1.0], [1.0, 50.0]])
    def test_floor_below_three_days(self, emas):
        """Test that fewer than three days is stable with insufficient data."""
        warning = detect_warning(make_series(emas))

        assert warning.state == WarningState.STABLE
        assert warning.severity == Severity.NONE
        assert warning.recommendation == INSUFFICIENT_DATA_RECOMMENDATION

    def test_constant_series_is_stable(self):
        """Test that zero deviation is stable."""
        warning = detect_warning(make_series([1.0, 1.0, 1.0]))

        assert warning.state == WarningState.STABLE
        assert warning.severity == Severity.NONE
        assert warning.recommendation == STABLE_RECOMMENDATION

    def test_overheat_high(self):
        """Test that a spike past two sigma is a HIGH overheat."""
        warning = detect_warning(make_series([1.0] * 9 + [10.0]))

        assert warning.state == WarningState.OVERHEAT
        assert warning.severity == Severity.HIGH
        assert warning.recommendation == OVERHEAT_RECOMMENDATION

    def test_overheat_mid(self):
        """Test that a value between 1.5 and 2 sigma is a MID overheat."""
        warning = detect_warning(make_series(BACKGROUND + [13.5]))

        assert warning.state == WarningState.OVERHEAT
        assert warning.severity == Severity.MID

    def test_stagnation_high(self):
        """Test that a drop past two sigma is a HIGH stagnation."""
        warning = detect_warning(make_series([10.0] * 9 + [1.0]))

        assert warning.state == WarningState.STAGNATION
        assert warning.severity == Severity.HIGH
        assert warning.recommendation == STAGNATION_RECOMMENDATION

    def test_stagnation_mid(self):
        """Test that a value between 1.5 and 2 sigma below is a MID stagnation."""
        warning = detect_warning(make_series(BACKGROUND + [6.5]))

        assert warning.state == WarningState.STAGNATION
        assert warning.severity == Severity.MID

    def test_stagnation_low(self):
        """Test that a value between 1 and 1.5 sigma below is a LOW stagnation."""
        warning = detect_warning(make_series(BACKGROUND + [7.0]))

        assert warning.state == WarningState.STAGNATION
        assert warning.severity == Severity.LOW

    def test_within_band_is_stable(self):
        """Test that a typical value is stable."""
        warning = detect_warning(make_series(BACKGROUND + [10.0]))

        assert warning.state == WarningState.STABLE


class TestMode:
    """Tests for detect_drift_mode and generate_advice."""

    @pytest.mark.parametrize(
        "trend,state,expected",
        [
            (Trend.RISING, WarningState.OVERHEAT, DriftMode.REST),
            (Trend.FLAT, WarningState.OVERHEAT, DriftMode.REST),
            (Trend.RISING, WarningState.STAGNATION, DriftMode.EXPLORATION),
            (Trend.FALLING, WarningState.STAGNATION, DriftMode.EXPLORATION),
            (Trend.RISING, WarningState.STABLE, DriftMode.GROWTH),
            (Trend.FALLING, WarningState.STABLE, DriftMode.CONSOLIDATION),
            (Trend.FLAT, WarningState.STABLE, DriftMode.CONSOLIDATION),
        ],
    )
    def test_mode_table(self, trend, state, expected):
        """Test that warnings take priority over the trend."""
        assert detect_drift_mode(_angle(trend), _warning(state)) == expected

    def test_advice_uses_warning_recommendation(self):
        """Test that a non-stable warning's recommendation is used verbatim."""
        warning = _warning(WarningState.OVERHEAT, Severity.HIGH, OVERHEAT_RECOMMENDATION)

        assert generate_advice(DriftMode.REST, warning) == OVERHEAT_RECOMMENDATION

    @pytest.mark.parametrize("mode", list(DriftMode))
    def test_advice_uses_mode_when_stable(self, mode):
        """Test that a stable warning falls back to the mode's advice."""
        warning = _warning(WarningState.STABLE, recommendation=STABLE_RECOMMENDATION)

        assert generate_advice(mode, warning) == MODE_ADVICE[mode]


class TestExtendedWarning:
    """Tests for detect_extended_warning."""

    @pytest.mark.parametrize(
        "state,phase,expected",
        [
            (WarningState.OVERHEAT, DriftPhase.CREATION, ExtendedWarningType.CREATIVE_OVERHEAT),
            (WarningState.OVERHEAT, DriftPhase.DESTRUCTION, ExtendedWarningType.DESTRUCTIVE_OVERHEAT),
            (WarningState.OVERHEAT, DriftPhase.NEUTRAL, ExtendedWarningType.NEUTRAL_OVERHEAT),
            (WarningState.OVERHEAT, None, ExtendedWarningType.NEUTRAL_OVERHEAT),
            (WarningState.STAGNATION, DriftPhase.CREATION, ExtendedWarningType.EXPLORATORY_STAGNATION),
            (WarningState.STAGNATION, DriftPhase.DESTRUCTION, ExtendedWarningType.DEEPENING_STAGNATION),
            (WarningState.STAGNATION, DriftPhase.NEUTRAL, ExtendedWarningType.REST_STAGNATION),
            (WarningState.STAGNATION, None, ExtendedWarningType.REST_STAGNATION),
            (WarningState.STABLE, DriftPhase.CREATION, ExtendedWarningType.STABLE),
        ],
    )
    def test_type_table(self, state, phase, expected):
        """Test the (state, phase) to extended type mapping."""
        extended = detect_extended_warning(_warning(state, Severity.MID), phase)

        assert extended.extended_type == expected
        assert extended.base_state == state
        assert extended.phase == phase

    def test_creative_overheat_flag(self):
        """Test that only overheat during creation is flagged creative."""
        creative = detect_extended_warning(
            _warning(WarningState.OVERHEAT, Severity.HIGH), DriftPhase.CREATION
        )
        neutral = detect_extended_warning(
            _warning(WarningState.OVERHEAT, Severity.HIGH), DriftPhase.NEUTRAL
        )

        assert creative.is_creative_overheat is True
        assert creative.severity == Severity.HIGH
        assert neutral.is_creative_overheat is False

    def test_stable_has_no_severity(self):
        """Test that a stable warning stays stable regardless of phase."""
        extended = detect_extended_warning(
            _warning(WarningState.STABLE, recommendation=STABLE_RECOMMENDATION),
            DriftPhase.DESTRUCTION,
        )

        assert extended.severity == Severity.NONE
        assert extended.recommendation == STABLE_RECOMMENDATION
        assert extended.is_creative_overheat is False


class TestComputeInsight:
    """Tests for the composed insight."""

    def test_three_equal_days(self):
        """Test that three days of equal drift give a flat, stable insight."""
        days = [date(2024, 5, 1) + timedelta(days=i) for i in range(3)]
        series = build_daily_series([(day, 1.0) for day in days])

        result = compute_insight(series)

        assert [d.ema for d in series] == [1.0, 1.0, 1.0]
        assert result.angle.trend == Trend.FLAT
        assert result.warning.state == WarningState.STABLE
        assert result.warning.severity == Severity.NONE
        assert result.mode == DriftMode.CONSOLIDATION

    def test_empty_series(self):
        """Test the defined result for no data."""
        result = compute_insight([])

        assert result.today_drift == 0.0
        assert result.today_ema == 0.0
        assert result.angle == GrowthAngle.flat()
        assert result.forecast.confidence == Confidence.LOW
        assert result.warning.state == WarningState.STABLE
        assert result.mode == DriftMode.CONSOLIDATION
        assert result.advice == MODE_ADVICE[DriftMode.CONSOLIDATION]
        assert result.extended_warning.extended_type == ExtendedWarningType.STABLE

    def test_today_values(self):
        """Test that today's drift and EMA come from the last row."""
        result = compute_insight(make_series([1.0, 1.5]))

        assert result.today_drift == 1.5
        assert result.today_ema == 1.5
        assert result.mode == DriftMode.GROWTH

    def test_overheat_advice_ignores_extended_warning(self):
        """Test that the extended warning does not change the advice."""
        result = compute_insight(make_series([1.0] * 9 + [10.0]), today_phase=DriftPhase.CREATION)

        assert result.mode == DriftMode.REST
        assert result.advice == OVERHEAT_RECOMMENDATION
        assert result.extended_warning.is_creative_overheat is True

    def test_generate_insight_derives_today_phase(self):
        """Test that today's phase comes from the last day's change details."""
        records = [
            make_record(date(2024, 5, 8), 0.5, change_type=SemanticChangeType.CONTRACTION),
            make_record(date(2024, 5, 9), 0.5, change_type=SemanticChangeType.EXPANSION),
            make_record(date(2024, 5, 9), 0.2, hour=14, change_type=SemanticChangeType.PIVOT),
        ]

        result = generate_insight(records, now=datetime(2024, 5, 9, 20, tzinfo=timezone.utc))

        assert result.extended_warning.phase == DriftPhase.CREATION
        assert result.today_drift == 0.7

    def test_generate_insight_without_details(self):
        """Test that records without change details leave the phase unknown."""
        records = [make_record(date(2024, 5, 9), 0.5)]

        result = generate_insight(records, now=datetime(2024, 5, 9, 20, tzinfo=timezone.utc))

        assert result.extended_warning.phase is None
