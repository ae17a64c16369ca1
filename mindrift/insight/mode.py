"""
Drift Mode Classification for Mindrift

Maps (trend, warning state) to a behavioral mode. Warning takes priority
over trend:

    overheat            -> REST
    stagnation          -> EXPLORATION
    stable + rising     -> GROWTH
    stable + falling    -> CONSOLIDATION
    stable + flat       -> CONSOLIDATION
"""

from mindrift.models import DriftMode, DriftWarning, GrowthAngle, Trend, WarningState
from mindrift.rules import Rule, always, first_match

ModeContext = tuple[GrowthAngle, DriftWarning]

MODE_RULES: list[Rule[ModeContext, DriftMode]] = [
    Rule("overheat", lambda c: c[1].state == WarningState.OVERHEAT, DriftMode.REST),
    Rule("stagnation", lambda c: c[1].state == WarningState.STAGNATION, DriftMode.EXPLORATION),
    Rule("rising", lambda c: c[0].trend == Trend.RISING, DriftMode.GROWTH),
    Rule("falling", lambda c: c[0].trend == Trend.FALLING, DriftMode.CONSOLIDATION),
    Rule("flat", always, DriftMode.CONSOLIDATION),
]

MODE_ADVICE = {
    DriftMode.EXPLORATION: (
        "Exploration phase. Writing notes on new themes will speed up your growth."
    ),
    DriftMode.CONSOLIDATION: (
        "Consolidation phase. Revisit existing notes and look for connections."
    ),
    DriftMode.GROWTH: (
        "Growth phase. Use the current momentum to keep digging deeper."
    ),
    DriftMode.REST: (
        "Rest phase. Take a short break so what you learned can settle."
    ),
}


def detect_drift_mode(angle: GrowthAngle, warning: DriftWarning) -> DriftMode:
    """Return the behavioral mode for a growth angle and warning."""
    _, mode = first_match(MODE_RULES, (angle, warning))
    return mode


def generate_advice(mode: DriftMode, warning: DriftWarning) -> str:
    """
    Select the advice text.

    A non-stable warning's recommendation is used verbatim; otherwise the
    advice sentence of the mode is returned.
    """
    if warning.state != WarningState.STABLE:
        return warning.recommendation
    return MODE_ADVICE[mode]
