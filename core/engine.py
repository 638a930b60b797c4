"""
Duty Compliance Engine
======================

Facade over the evaluators for one render pass: given the duty log,
a selected duty and (optionally) sleep history and settings, produce
the selected duty's legality badges, the rolling picture anchored at
that duty, the cumulative trigger outcome and the fatigue score.

The engine holds configuration only; every call is a pure function of
its arguments, so one instance can be shared freely.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence

from models.data_models import (
    Assumption, Duty, FatigueAssessment, Finding, LegalityResult, RollingSnapshot,
    Settings, SleepEntry,
)
from core.parameters import EngineConfig
from core.compliance import DutyLegalityEvaluator
from core.rolling import RollingAggregator
from core.fatigue import FatigueScorer
from core.whatif import WhatIfOverlay, WhatIfResult, sort_newest_first, previous_of
from core.flags import FlagBuilder
from core.timeutils import now_local, parse_instant


@dataclass
class DutyReport:
    """Everything shown for one selected duty"""
    duty: Optional[Duty]
    previous: Optional[Duty]
    anchor: Optional[datetime]
    legality: LegalityResult
    snapshot: RollingSnapshot
    rolling_findings: List[Finding] = field(default_factory=list)
    trigger: Optional[Finding] = None
    fatigue: Optional[FatigueAssessment] = None

    @property
    def badges(self) -> List[Finding]:
        """Single-duty badges followed by rolling badges"""
        combined = list(self.legality.badges)
        if self.trigger is not None:
            combined.append(self.trigger)
        combined.extend(self.rolling_findings)
        return combined


class DutyComplianceEngine:
    """Advisory FTL compliance and fatigue engine"""

    def __init__(self, config: EngineConfig = None):
        self.config = config or EngineConfig.default_config()
        self.legality = DutyLegalityEvaluator(self.config.framework)
        self.rolling = RollingAggregator(self.config)
        self.fatigue = FatigueScorer(self.config)
        self.whatif = WhatIfOverlay(self.config)
        self.flags = FlagBuilder(self.config)

    def report(self, duties: Iterable[Duty], selected: Optional[Duty] = None,
               sleeps: Optional[Iterable[SleepEntry]] = None, settings: Optional[Settings] = None,
               now: Any = None) -> DutyReport:
        """
        Evaluate ``selected`` (default: newest duty) against the log.

        The rolling picture is anchored at the selected duty's start;
        with nothing selected it is anchored at ``now`` (default: the
        current local time). An unparseable ``now`` yields no rolling
        findings.
        """
        ordered = sort_newest_first(duties)
        if selected is None and ordered:
            selected = ordered[0]

        duty = next((d for d in ordered if d is selected or d == selected), None) if selected else None
        previous = previous_of(ordered, duty) if duty is not None else None

        if duty is not None:
            anchor = duty.primary_instant
        elif now is None:
            anchor = now_local(self.config.timezone)
        else:
            anchor = parse_instant(now, self.config.timezone)

        legality = self.legality.evaluate(duty, previous) if duty is not None else LegalityResult()
        evaluation = self.rolling.evaluate(ordered, anchor)

        fatigue = None
        if duty is not None and sleeps is not None:
            fatigue = self.fatigue.assess(duty, sleeps, settings or Settings())

        return DutyReport(
            duty=duty,
            previous=previous,
            anchor=anchor,
            legality=legality,
            snapshot=evaluation.snapshot,
            rolling_findings=evaluation.findings,
            trigger=self.rolling.cumulative_trigger(duty, previous, ordered) if duty is not None else None,
            fatigue=fatigue,
        )

    def simulate(self, duties: Iterable[Duty], draft: Duty,
                 assumptions: Sequence[Assumption] = ()) -> WhatIfResult:
        return self.whatif.simulate(duties, draft, assumptions)

    def flag_feed(self, duties: Iterable[Duty], since: Any = None):
        return self.flags.build_feed(duties, since)
