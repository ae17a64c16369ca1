"""
Phase Detection for Mindrift

Derives a coarse phase (creation / destruction / neutral) from classified
edits:

    EXPANSION, PIVOT        -> CREATION
    CONTRACTION             -> DESTRUCTION
    DEEPENING, REFINEMENT   -> NEUTRAL

The phase of a day is the most frequent phase among that day's edits.
Ties prefer CREATION, then DESTRUCTION; a day with no classified edits
is NEUTRAL.
"""

from collections import Counter
from datetime import date, timezone, tzinfo
from typing import Iterable, Mapping

from mindrift.models import DriftPhase, EditRecord, SemanticChangeType
from mindrift.timeline.aggregator import ensure_aware

_PHASE_BY_CHANGE = {
    SemanticChangeType.EXPANSION: DriftPhase.CREATION,
    SemanticChangeType.PIVOT: DriftPhase.CREATION,
    SemanticChangeType.CONTRACTION: DriftPhase.DESTRUCTION,
    SemanticChangeType.DEEPENING: DriftPhase.NEUTRAL,
    SemanticChangeType.REFINEMENT: DriftPhase.NEUTRAL,
}

# Tie-break order
_PHASE_PRIORITY = (DriftPhase.CREATION, DriftPhase.DESTRUCTION, DriftPhase.NEUTRAL)


def phase_for_change(change_type: SemanticChangeType) -> DriftPhase:
    """Map a change type to its phase."""
    return _PHASE_BY_CHANGE[change_type]


def dominant_phase(counts: Mapping[DriftPhase, int]) -> DriftPhase:
    """
    Pick the most frequent phase.

    Args:
        counts: Number of edits per phase; missing phases count as zero

    Returns:
        The phase with the highest count, ties resolved in the order
        CREATION, DESTRUCTION, NEUTRAL. All zero gives NEUTRAL.
    """
    best = max(counts.get(phase, 0) for phase in _PHASE_PRIORITY)
    if best == 0:
        return DriftPhase.NEUTRAL
    for phase in _PHASE_PRIORITY:
        if counts.get(phase, 0) == best:
            return phase
    return DriftPhase.NEUTRAL


def daily_phases(
    records: Iterable[EditRecord],
    tz: tzinfo = timezone.utc,
) -> dict[date, DriftPhase]:
    """
    Compute the dominant phase of every day that has classified edits.

    Records without a change detail are ignored.
    """
    per_day: dict[date, Counter] = {}
    for record in records:
        if record.change_detail is None:
            continue
        day = ensure_aware(record.timestamp).astimezone(tz).date()
        per_day.setdefault(day, Counter())[phase_for_change(record.change_detail.type)] += 1

    return {day: dominant_phase(counts) for day, counts in sorted(per_day.items())}
