"""
What-If Overlay
===============

Evaluate a draft duty without saving it. Session assumptions become
ghost duties placed a number of days before the draft; ghosts, the
draft and the recorded duties are merged into a new list (the recorded
collection is never touched) and fed through the ordinary evaluators.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from models.data_models import (
    Assumption, AssumptionKind, Duty, DutyKind, DutyOrigin, Finding, LegalityResult,
    RollingSnapshot,
)
from core.parameters import EngineConfig
from core.classifier import DutyClassifier
from core.compliance import DutyLegalityEvaluator
from core.rolling import RollingAggregator
from core.timeutils import add_minutes


@dataclass(frozen=True)
class WhatIfResult:
    """Outcome of one simulation; discard it to close the simulation"""
    duties: Tuple[Duty, ...]  # merged, newest first
    draft: Duty
    previous: Optional[Duty]
    legality: LegalityResult
    snapshot: RollingSnapshot
    rolling_findings: List[Finding] = field(default_factory=list)
    trigger: Optional[Finding] = None

    @property
    def ghosts(self) -> List[Duty]:
        return [d for d in self.duties if d.origin is DutyOrigin.ASSUMPTION]


def sort_newest_first(duties: Iterable[Duty]) -> List[Duty]:
    """
    Sort by primary instant, newest first.

    Duties without an instant sink to the bottom. On equal instants a
    draft stays on top; otherwise the input order is kept.
    """
    def key(duty: Duty):
        instant = duty.primary_instant
        return (
            instant is not None,
            instant or datetime.min,
            duty.origin is DutyOrigin.DRAFT,
        )
    return sorted(duties, key=key, reverse=True)


def previous_of(sorted_duties: Sequence[Duty], target: Duty) -> Optional[Duty]:
    """Next-older entry after ``target`` in a newest-first sequence"""
    for index, duty in enumerate(sorted_duties):
        if duty is target:
            return sorted_duties[index + 1] if index + 1 < len(sorted_duties) else None
    return None


class WhatIfOverlay:
    """Build and evaluate what-if overlays"""

    def __init__(self, config: EngineConfig = None):
        self.config = config or EngineConfig.default_config()
        self.classifier = DutyClassifier(self.config.framework)
        self.legality = DutyLegalityEvaluator(self.config.framework)
        self.rolling = RollingAggregator(self.config)

    def ghosts_for(self, draft: Duty, assumptions: Iterable[Assumption]) -> List[Duty]:
        """Ghost duties for work/standby assumptions relative to the draft's day"""
        draft_day = draft.calendar_day
        if draft_day is None:
            return []
        ghosts = []
        for index, assumption in enumerate(assumptions):
            if assumption.kind is AssumptionKind.OFF:
                continue
            day = draft_day - timedelta(days=int(assumption.days_before))
            start = datetime.combine(day, assumption.start)
            end = add_minutes(start, float(assumption.duration_hours) * 60, self.config.timezone)
            if end <= start:
                continue
            if assumption.kind is AssumptionKind.STANDBY:
                ghost = Duty(
                    duty_id=f"assumption-{index}",
                    kind=DutyKind.STANDBY,
                    location=assumption.location,
                    duty_date=day,
                    standby_type=assumption.standby_type,
                    standby_start=start,
                    standby_end=end,
                    origin=DutyOrigin.ASSUMPTION,
                )
            else:
                ghost = Duty(
                    duty_id=f"assumption-{index}",
                    kind=DutyKind.FDP,
                    report=start,
                    off=end,
                    sectors=int(assumption.sectors),
                    location=assumption.location,
                    duty_date=day,
                    origin=DutyOrigin.ASSUMPTION,
                )
            ghosts.append(ghost)
        return ghosts

    def off_days(self, draft: Duty, assumptions: Iterable[Assumption]) -> List[date]:
        """Calendar days the assumptions declare off"""
        draft_day = draft.calendar_day
        if draft_day is None:
            return []
        return [
            draft_day - timedelta(days=int(a.days_before))
            for a in assumptions if a.kind is AssumptionKind.OFF
        ]

    def build(self, duties: Iterable[Duty], draft: Duty,
              assumptions: Iterable[Assumption] = ()) -> Tuple[List[Duty], Duty]:
        """
        Merged newest-first list and the draft as placed in it.

        Recorded duties on a day an OFF assumption covers are left out
        of the overlay.
        """
        assumptions = list(assumptions)
        draft = replace(draft, origin=DutyOrigin.DRAFT)
        masked = set(self.off_days(draft, assumptions))
        kept = [
            d for d in duties
            if not masked or not (self.classifier.days_occupied(d) & masked)
        ]
        merged = sort_newest_first(self.ghosts_for(draft, assumptions) + kept + [draft])
        return merged, draft

    def simulate(self, duties: Iterable[Duty], draft: Duty,
                 assumptions: Iterable[Assumption] = ()) -> WhatIfResult:
        """Evaluate the draft through the ordinary single-duty and rolling evaluators"""
        merged, placed = self.build(duties, draft, assumptions)
        previous = previous_of(merged, placed)
        evaluation = self.rolling.evaluate(merged, placed.primary_instant)
        return WhatIfResult(
            duties=tuple(merged),
            draft=placed,
            previous=previous,
            legality=self.legality.evaluate(placed, previous),
            snapshot=evaluation.snapshot,
            rolling_findings=evaluation.findings,
            trigger=self.rolling.cumulative_trigger(placed, previous, merged),
        )
