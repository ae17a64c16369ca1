"""
Warning Detection for Mindrift

Flags today's EMA as stable, overheating or stagnating by comparing it
with the mean and population standard deviation of the EMA series.

Warning States:
    OVERHEAT:   today > mean + 1.5 sigma
                severity HIGH above mean + 2 sigma, else MID above
                mean + 1.5 sigma, else LOW
    STAGNATION: today < mean - 1.0 sigma
                severity HIGH below mean - 2 sigma, else MID below
                mean - 1.5 sigma, else LOW
    STABLE:     otherwise, severity NONE

With fewer than three days no statistics are computed and the result is
STABLE / NONE with an "insufficient data" recommendation.

Severity tiers are ordered rule tables: HIGH is always checked before MID,
so a value past both bounds is HIGH. Because the overheat band starts at
exactly 1.5 sigma, its LOW tier cannot be reached; the table keeps it so
both directions share one shape.

The extended warning qualifies a non-stable state with the phase of the
day (creation / destruction / neutral). It is informational and never
changes the base warning.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from mindrift.models import (
    DailyDrift,
    DriftPhase,
    DriftWarning,
    ExtendedWarning,
    ExtendedWarningType,
    Severity,
    WarningState,
)
from mindrift.rules import Rule, always, first_match
from mindrift.timeline.aggregator import OVERHEAT_SIGMA, STAGNATION_SIGMA, calc_stats

logger = logging.getLogger(__name__)

MIN_WARNING_DAYS = 3
HIGH_SEVERITY_SIGMA = 2.0
MID_SEVERITY_SIGMA = 1.5

STABLE_RECOMMENDATION = "Your growth rhythm is steady. Keep it up."
OVERHEAT_RECOMMENDATION = (
    "Intellectual activity is running too high. Pause and take time to "
    "organize and integrate what you have learned."
)
STAGNATION_RECOMMENDATION = (
    "Thinking activity has stalled. Try new information or approach the "
    "topic from a different angle."
)
INSUFFICIENT_DATA_RECOMMENDATION = (
    "Not enough data yet. Keep recording notes."
)


@dataclass(frozen=True)
class _Band:
    today: float
    mean: float
    std_dev: float

    def above(self, sigmas: float) -> bool:
        return self.today > self.mean + sigmas * self.std_dev

    def below(self, sigmas: float) -> bool:
        return self.today < self.mean - sigmas * self.std_dev


OVERHEAT_SEVERITY_RULES: list[Rule[_Band, Severity]] = [
    Rule("high", lambda b: b.above(HIGH_SEVERITY_SIGMA), Severity.HIGH),
    Rule("mid", lambda b: b.above(MID_SEVERITY_SIGMA), Severity.MID),
    Rule("low", always, Severity.LOW),
]

STAGNATION_SEVERITY_RULES: list[Rule[_Band, Severity]] = [
    Rule("high", lambda b: b.below(HIGH_SEVERITY_SIGMA), Severity.HIGH),
    Rule("mid", lambda b: b.below(MID_SEVERITY_SIGMA), Severity.MID),
    Rule("low", always, Severity.LOW),
]


def detect_warning(series: Sequence[DailyDrift]) -> DriftWarning:
    """
    Detect overheat or stagnation of today's EMA.

    Args:
        series: Daily drift rows, oldest first

    Returns:
        DriftWarning with state, severity and a fixed recommendation
    """
    if len(series) < MIN_WARNING_DAYS:
        return DriftWarning(
            state=WarningState.STABLE,
            severity=Severity.NONE,
            recommendation=INSUFFICIENT_DATA_RECOMMENDATION,
        )

    ema_values = [d.ema for d in series]
    mean, std_dev = calc_stats(ema_values)
    band = _Band(today=ema_values[-1], mean=mean, std_dev=std_dev)

    if band.above(OVERHEAT_SIGMA):
        tier, severity = first_match(OVERHEAT_SEVERITY_RULES, band)
        logger.debug("Overheat (%s): ema=%s mean=%s sd=%s", tier, band.today, mean, std_dev)
        return DriftWarning(
            state=WarningState.OVERHEAT,
            severity=severity,
            recommendation=OVERHEAT_RECOMMENDATION,
        )

    if band.below(STAGNATION_SIGMA):
        tier, severity = first_match(STAGNATION_SEVERITY_RULES, band)
        logger.debug("Stagnation (%s): ema=%s mean=%s sd=%s", tier, band.today, mean, std_dev)
        return DriftWarning(
            state=WarningState.STAGNATION,
            severity=severity,
            recommendation=STAGNATION_RECOMMENDATION,
        )

    return DriftWarning(
        state=WarningState.STABLE,
        severity=Severity.NONE,
        recommendation=STABLE_RECOMMENDATION,
    )


# (state, phase) -> (type, recommendation, insight); None phase behaves as NEUTRAL
_EXTENDED_TABLE: dict[tuple[WarningState, DriftPhase], tuple[ExtendedWarningType, str, str]] = {
    (WarningState.OVERHEAT, DriftPhase.CREATION): (
        ExtendedWarningType.CREATIVE_OVERHEAT,
        "Creative activity is high. Ride the momentum, but build in some rest.",
        "Many new ideas are appearing. Record what you find so you do not burn out.",
    ),
    (WarningState.OVERHEAT, DriftPhase.DESTRUCTION): (
        ExtendedWarningType.DESTRUCTIVE_OVERHEAT,
        "Your thinking is over-converging. Step away and bring in a fresh perspective.",
        "Pruning and condensing existing knowledge is taking over. More input is recommended.",
    ),
    (WarningState.OVERHEAT, DriftPhase.NEUTRAL): (
        ExtendedWarningType.NEUTRAL_OVERHEAT,
        "Activity is high. Check your direction: are you creating or integrating?",
        "Lots of activity without a clear direction. A clearer goal will help.",
    ),
    (WarningState.STAGNATION, DriftPhase.CREATION): (
        ExtendedWarningType.EXPLORATORY_STAGNATION,
        "You are reaching for new ground but the pace has dropped. Start with small steps.",
        "The will to explore is there but action is lagging. Lower the bar and start small.",
    ),
    (WarningState.STAGNATION, DriftPhase.DESTRUCTION): (
        ExtendedWarningType.DEEPENING_STAGNATION,
        "Organizing existing knowledge has stalled. Look for links to other fields.",
        "Convergence has stalled. New stimulus will get it moving again.",
    ),
    (WarningState.STAGNATION, DriftPhase.NEUTRAL): (
        ExtendedWarningType.REST_STAGNATION,
        "A resting period continues. Ease back in with whatever interests you.",
        "Thinking is at rest. This may be a natural part of the cycle.",
    ),
}


def detect_extended_warning(
    warning: DriftWarning,
    phase: Optional[DriftPhase],
) -> ExtendedWarning:
    """
    Qualify a warning with the phase of the day.

    Args:
        warning: Base warning from detect_warning
        phase: Dominant phase of today's edits, None if unknown

    Returns:
        ExtendedWarning; a stable warning is reported as STABLE regardless of phase
    """
    if warning.state == WarningState.STABLE:
        return ExtendedWarning(
            base_state=WarningState.STABLE,
            extended_type=ExtendedWarningType.STABLE,
            phase=phase,
            severity=Severity.NONE,
            is_creative_overheat=False,
            recommendation=warning.recommendation,
            insight="Your growth rhythm is holding steady.",
        )

    extended_type, recommendation, insight = _EXTENDED_TABLE[
        (warning.state, phase or DriftPhase.NEUTRAL)
    ]
    return ExtendedWarning(
        base_state=warning.state,
        extended_type=extended_type,
        phase=phase,
        severity=warning.severity,
        is_creative_overheat=extended_type == ExtendedWarningType.CREATIVE_OVERHEAT,
        recommendation=recommendation,
        insight=insight,
    )
