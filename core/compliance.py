"""
Single-Duty Legality Evaluation
===============================

Checks one duty against its immediate predecessor:
- FDP against the acclimatised two-pilot table (OM Table 9-1)
- Minimum rest before the duty (9.2.8.5)
- Standby cap (12h) and standby + FDP cap (20h) for called standby
- Discretion usage

Outputs are advisory badges (ok/warn/bad, info for neutral notices)
plus free-text notes for breaches and discretion use.
"""

from typing import List, Optional
import logging

from models.data_models import (
    Duty, Finding, Severity, LegalityResult,
    NoSchedule, FlightDuty, StandbyOnly, StandbyCalledOut, StandbyWindow,
)
from core.parameters import FTLFramework
from core.fdp_limits import FDPLimitTable
from core.rest import RestRequirementResolver
from core.timeutils import minutes_to_hm, signed_minutes

logger = logging.getLogger(__name__)


class DutyLegalityEvaluator:
    """Validate a single duty against FTL limits"""

    def __init__(self, framework: FTLFramework = None):
        self.framework = framework or FTLFramework()
        self.fdp_table = FDPLimitTable(self.framework)
        self.rest_resolver = RestRequirementResolver(self.framework)

    def evaluate(self, duty: Duty, previous: Optional[Duty] = None) -> LegalityResult:
        """Badges and notes for ``duty`` given the duty before it"""
        result = LegalityResult()
        if duty.report is not None and duty.off is not None and not duty.has_fdp:
            logger.warning(f"[{duty.duty_id}] Off is not after report. FDP not evaluated.")

        shape = duty.shape

        if not duty.kind.counts_toward_limits:
            self._neutral(duty, result)
            return result

        if isinstance(shape, (StandbyOnly, StandbyCalledOut)):
            self._standby_only(shape.window, result)
            result.badges.append(Finding('rest', Severity.INFO, "Rest: — (no FDP)"))
            self._discretion(duty, result)
            return result

        if isinstance(shape, NoSchedule):
            result.badges.append(
                Finding('fdp', Severity.INFO, f"{duty.kind.value}: — (no times logged)")
            )
            return result

        self._flight_duty(duty, shape, previous, result)
        return result

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    def _neutral(self, duty: Duty, result: LegalityResult):
        # Non-counting kinds are never held to FDP or standby caps, whatever times they carry
        tz = self.framework.timezone
        if duty.has_fdp:
            logged = duty.fdp_minutes(tz)
        elif duty.has_standby_window:
            logged = duty.standby_window.nominal_minutes(tz)
        else:
            logged = None
        if logged is None:
            text = f"{duty.kind.value}: logged (not counted)"
        else:
            text = f"{duty.kind.value}: {minutes_to_hm(logged)} logged (not counted)"
        result.badges.append(Finding('kind', Severity.INFO, text))

    def _standby_only(self, window: StandbyWindow, result: LegalityResult):
        result.badges.append(self._standby_cap(window, result))
        if window.called:
            result.notes.append("Called from standby; no FDP logged.")

    def _flight_duty(self, duty: Duty, shape: FlightDuty, previous: Optional[Duty],
                     result: LegalityResult):
        fw = self.framework
        actual = shape.minutes(fw.timezone)

        limit = self.fdp_table.lookup(shape.report, duty.sectors)
        if limit is None:
            result.badges.append(
                Finding('fdp', Severity.INFO, f"FDP {minutes_to_hm(actual)} / — (no table band)")
            )
        else:
            if actual > limit.limit_minutes:
                severity = Severity.BAD
                result.notes.append(
                    f"FDP exceeds limit by {minutes_to_hm(actual - limit.limit_minutes)}."
                )
            elif actual >= limit.limit_minutes - fw.fdp_caution_minutes:
                severity = Severity.WARN
            else:
                severity = Severity.OK
            result.badges.append(Finding(
                'fdp', severity,
                f"FDP {minutes_to_hm(actual)} / {minutes_to_hm(limit.limit_minutes)} "
                f"({limit.band_label}, {limit.sectors_used} sector{'s' if limit.sectors_used != 1 else ''})"
            ))

        sectors = int(duty.sectors or 0)
        result.badges.append(Finding(
            'sectors',
            Severity.WARN if sectors == 0 else Severity.OK,
            f"Sectors: {sectors}",
        ))

        if previous is not None:
            result.badges.append(self._rest(duty, previous, result))

        if shape.standby is not None:
            result.badges.append(self._standby_cap(shape.standby, result))
            if shape.standby.called:
                result.badges.append(self._standby_plus_fdp(shape.standby, actual, result))

        self._discretion(duty, result)

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def _rest(self, duty: Duty, previous: Duty, result: LegalityResult) -> Finding:
        fw = self.framework
        rest_start = previous.end_instant
        actual = signed_minutes(rest_start, duty.primary_instant, fw.timezone)
        if actual is None:
            return Finding('rest', Severity.INFO, "Rest: — (previous duty has no times)")

        requirement = self.rest_resolver.resolve(previous, duty)
        shortfall = requirement.required_minutes - actual
        if shortfall >= fw.rest_shortfall_bad_minutes:
            severity = Severity.BAD
            result.notes.append(f"Rest short by {minutes_to_hm(shortfall)} ({requirement.basis}).")
        elif shortfall > 0:
            severity = Severity.WARN
        else:
            severity = Severity.OK
        return Finding(
            'rest', severity,
            f"Rest {minutes_to_hm(actual)} / min {minutes_to_hm(requirement.required_minutes)} "
            f"({requirement.basis})"
        )

    def _standby_cap(self, window: StandbyWindow, result: LegalityResult) -> Finding:
        fw = self.framework
        minutes = window.effective_minutes(fw.timezone)
        if minutes > fw.standby_cap_minutes:
            severity = Severity.BAD
            result.notes.append(
                f"Standby exceeds {minutes_to_hm(fw.standby_cap_minutes)} by "
                f"{minutes_to_hm(minutes - fw.standby_cap_minutes)}."
            )
        elif minutes > fw.standby_caution_minutes:
            severity = Severity.WARN
        else:
            severity = Severity.OK
        return Finding(
            'standby', severity,
            f"Standby {minutes_to_hm(minutes)} / {minutes_to_hm(fw.standby_cap_minutes)}"
        )

    def _standby_plus_fdp(self, window: StandbyWindow, fdp_minutes: float,
                          result: LegalityResult) -> Finding:
        fw = self.framework
        combined = window.effective_minutes(fw.timezone) + fdp_minutes
        cap = fw.standby_plus_fdp_cap_minutes
        if combined > cap:
            severity = Severity.BAD
            result.notes.append(
                f"Standby + FDP exceeds {minutes_to_hm(cap)} by {minutes_to_hm(combined - cap)}."
            )
        elif combined >= cap - fw.standby_plus_fdp_caution_minutes:
            severity = Severity.WARN
        else:
            severity = Severity.OK
        return Finding(
            'standby_fdp', severity,
            f"Standby + FDP {minutes_to_hm(combined)} / {minutes_to_hm(cap)}"
        )

    def _discretion(self, duty: Duty, result: LegalityResult):
        used = int(duty.discretion_minutes or 0)
        if used <= 0:
            return
        severity = Severity.WARN if used > self.framework.discretion_caution_minutes else Severity.OK
        result.badges.append(Finding('discretion', severity, f"Discretion {minutes_to_hm(used)}"))

        note = f"Discretion used: {minutes_to_hm(used)}."
        if duty.discretion_reason:
            note += f" Reason: {duty.discretion_reason}."
        if duty.discretion_by:
            note += f" Authorised by: {duty.discretion_by}."
        result.notes.append(note)


def worst_severity(findings: List[Finding]) -> Optional[Severity]:
    """Most severe level present (info < ok < warn < bad)"""
    if not findings:
        return None
    return max((f.severity for f in findings), key=lambda s: s.rank)
