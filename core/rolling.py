"""
Rolling Aggregation
===================

Trailing-window picture of cumulative duty and days off, anchored at an
arbitrary instant (usually a selected duty's report, so a historical
duty shows its contemporaneous compliance picture).

Duty-minute sums use sliding windows of whole 24h multiples ending at
the anchor. Day-based statistics use local calendar days ending on the
anchor's day. Each calendar day is WORK (any working entry), SICK
(only sick entries) or OFF (no entries at all).
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence
import logging

from models.data_models import Duty, Finding, RollingSnapshot, Severity
from core.parameters import EngineConfig
from core.classifier import DutyClassifier
from core.timeutils import TimeInterval, add_minutes, minutes_to_hm, parse_instant, signed_minutes

logger = logging.getLogger(__name__)


class DayState(Enum):
    WORK = "work"
    SICK = "sick"
    OFF = "off"


@dataclass(frozen=True)
class RollingEvaluation:
    snapshot: RollingSnapshot
    findings: List[Finding]


class RollingAggregator:
    """Cumulative duty & days-off statistics"""

    def __init__(self, config: EngineConfig = None):
        self.config = config or EngineConfig.default_config()
        self.limits = self.config.cumulative
        self.classifier = DutyClassifier(self.config.framework)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def counted_intervals(self, duties: Iterable[Duty]) -> List[TimeInterval]:
        """FDP and effective standby intervals of duties that count toward limits"""
        intervals = []
        for duty in duties:
            if self.classifier.counts_toward_limits(duty):
                intervals.extend(self.classifier.intervals(duty))
        return intervals

    def rolling_minutes(self, duties: Iterable[Duty], anchor: Any, days: int) -> float:
        """Counted duty minutes inside [anchor - days x 24h, anchor]"""
        anchor = self._anchor(anchor)
        if anchor is None:
            return 0.0
        return self._window_minutes(self.counted_intervals(duties), anchor, days)

    def _trailing_window(self, anchor: datetime, days: int) -> TimeInterval:
        """[anchor - days x 24h elapsed, anchor]"""
        tz = self.config.timezone
        return TimeInterval(add_minutes(anchor, -days * 24 * 60, tz), anchor, tz)

    def _window_minutes(self, intervals: Sequence[TimeInterval], anchor: datetime, days: int) -> float:
        window = self._trailing_window(anchor, days)
        return sum(window.overlap_minutes(interval) for interval in intervals)

    def day_states(self, duties: Iterable[Duty]) -> Dict[date, DayState]:
        """State of every calendar day holding at least one entry"""
        states: Dict[date, DayState] = {}
        for duty in duties:
            working = self.classifier.is_working_day(duty)
            for day in self.classifier.days_occupied(duty):
                if working:
                    states[day] = DayState.WORK
                else:
                    states.setdefault(day, DayState.SICK)
        return states

    @staticmethod
    def trailing_days(anchor_day: date, count: int) -> List[date]:
        """``count`` calendar days ending on ``anchor_day``, oldest first"""
        return [anchor_day - timedelta(days=offset) for offset in range(count - 1, -1, -1)]

    @staticmethod
    def count_off(states: Dict[date, DayState], days: Iterable[date]) -> int:
        return sum(1 for day in days if states.get(day, DayState.OFF) is DayState.OFF)

    def consecutive_work_days(self, states: Dict[date, DayState], anchor_day: date) -> int:
        """
        Working days in a row ending on ``anchor_day``.

        Sick days are neutral: they neither extend nor break the streak.
        The scan stops at the first off day or after the scan cap.
        """
        streak = 0
        day = anchor_day
        for _ in range(self.limits.streak_scan_days):
            state = states.get(day, DayState.OFF)
            if state is DayState.OFF:
                break
            if state is DayState.WORK:
                streak += 1
            day -= timedelta(days=1)
        return streak

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, duties: Iterable[Duty], anchor: Any) -> RollingSnapshot:
        """Rolling picture anchored at ``anchor``"""
        anchor = self._anchor(anchor)
        if anchor is None:
            return RollingSnapshot()

        duties = list(duties)
        intervals = self.counted_intervals(duties)
        minutes7 = self._window_minutes(intervals, anchor, 7)
        minutes28 = self._window_minutes(intervals, anchor, 28)

        states = self.day_states(duties)
        anchor_day = anchor.date()

        last14 = self.trailing_days(anchor_day, 14)
        has_two_off = any(
            states.get(a, DayState.OFF) is DayState.OFF and states.get(b, DayState.OFF) is DayState.OFF
            for a, b in zip(last14, last14[1:])
        )

        last84 = self.trailing_days(anchor_day, 84)
        buckets = [last84[i:i + 28] for i in range(0, 84, 28)]
        avg_off = round(sum(self.count_off(states, bucket) for bucket in buckets) / 3, 1)

        year_start = date(anchor_day.year, 1, 1)
        ytd_days = self.trailing_days(anchor_day, (anchor_day - year_start).days + 1)

        discretion_window = self._trailing_window(anchor, 28)
        discretion_count = sum(
            1 for duty in duties
            if self.classifier.counts_toward_limits(duty)
            and int(duty.discretion_minutes or 0) > 0
            and duty.primary_instant is not None
            and discretion_window.start <= duty.primary_instant <= discretion_window.end
        )

        return RollingSnapshot(
            minutes7=minutes7,
            minutes28=minutes28,
            avg_weekly_hours28=minutes28 / 4 / 60,
            consecutive_work_days=self.consecutive_work_days(states, anchor_day),
            has_two_off_in_14=has_two_off,
            off_in_28=self.count_off(states, self.trailing_days(anchor_day, 28)),
            avg_off_per_28_over_84=avg_off,
            discretion_count28=discretion_count,
            off_ytd=self.count_off(states, ytd_days),
        )

    # ------------------------------------------------------------------
    # Findings
    # ------------------------------------------------------------------

    def findings(self, snap: RollingSnapshot) -> List[Finding]:
        """Badges derived from a rolling snapshot"""
        lim = self.limits
        out = []

        hours7 = snap.minutes7 / 60
        if hours7 > lim.max_7day_hours:
            sev = Severity.BAD
        elif hours7 >= lim.max_7day_hours - lim.avg_weekly_caution_hours:
            sev = Severity.WARN
        else:
            sev = Severity.OK
        out.append(Finding('hours7', sev, f"7d duty {hours7:.1f}h / {lim.max_7day_hours:g}h"))

        trigger = lim.trigger_hours_7day * 60
        if snap.minutes7 >= trigger:
            out.append(Finding(
                'cumulative_trigger', Severity.WARN,
                f"7d duty {hours7:.1f}h ≥ {lim.trigger_hours_7day:g}h: "
                f"{minutes_to_hm(lim.trigger_rest_minutes)} rest required before next duty"
            ))
        elif snap.minutes7 >= trigger - lim.trigger_caution_minutes:
            out.append(Finding(
                'cumulative_trigger', Severity.WARN,
                f"7d duty {hours7:.1f}h approaching {lim.trigger_hours_7day:g}h trigger"
            ))

        avg = snap.avg_weekly_hours28
        if avg > lim.max_avg_weekly_hours_28:
            sev = Severity.BAD
        elif avg >= lim.max_avg_weekly_hours_28 - lim.avg_weekly_caution_hours:
            sev = Severity.WARN
        else:
            sev = Severity.OK
        out.append(Finding('avg_weekly28', sev, f"28d avg {avg:.1f}h/wk / {lim.max_avg_weekly_hours_28:g}h"))

        streak = snap.consecutive_work_days
        if streak >= lim.consecutive_days_hard:
            sev = Severity.BAD
        elif streak >= lim.consecutive_days_soft:
            sev = Severity.WARN
        else:
            sev = Severity.OK
        out.append(Finding('consecutive_days', sev, f"Consecutive duty days: {streak}"))

        out.append(Finding(
            'two_off_in_14',
            Severity.OK if snap.has_two_off_in_14 else Severity.BAD,
            "2 consecutive days off in 14: " + ("yes" if snap.has_two_off_in_14 else "no"),
        ))

        out.append(Finding(
            'off_in_28',
            Severity.OK if snap.off_in_28 >= lim.min_off_in_28 else Severity.BAD,
            f"Days off in 28: {snap.off_in_28} / min {lim.min_off_in_28}",
        ))

        out.append(Finding(
            'avg_off_per_28',
            Severity.OK if snap.avg_off_per_28_over_84 >= lim.min_avg_off_per_28 else Severity.WARN,
            f"Avg days off per 28 (84d): {snap.avg_off_per_28_over_84:.1f} / min {lim.min_avg_off_per_28:g}",
        ))

        out.append(Finding('off_ytd', Severity.INFO, f"Days off this year: {snap.off_ytd}"))

        out.append(Finding(
            'discretion28',
            Severity.WARN if snap.discretion_count28 > 0 else Severity.OK,
            f"Discretion used (28d): {snap.discretion_count28}",
        ))
        return out

    def evaluate(self, duties: Iterable[Duty], anchor: Any) -> RollingEvaluation:
        """Snapshot and its findings; no findings without a usable anchor"""
        if self._anchor(anchor) is None:
            return RollingEvaluation(snapshot=RollingSnapshot(), findings=[])
        snap = self.snapshot(duties, anchor)
        return RollingEvaluation(snapshot=snap, findings=self.findings(snap))

    # ------------------------------------------------------------------
    # Cumulative trigger
    # ------------------------------------------------------------------

    def cumulative_trigger(self, duty: Duty, previous: Optional[Duty],
                           duties: Iterable[Duty]) -> Optional[Finding]:
        """
        Extended-rest rule after a heavy rolling week.

        The 7-day counted sum is taken at the end of ``previous``. At or
        over the threshold the rest before ``duty`` must reach the
        trigger rest; within the caution margin below it a warning is
        raised. Returns None when the rule does not apply.
        """
        lim = self.limits
        if previous is None or not self.classifier.counts_toward_limits(duty):
            return None
        rest_start = previous.end_instant
        rest = signed_minutes(rest_start, duty.primary_instant, self.config.timezone)
        if rest is None:
            return None

        minutes7 = self.rolling_minutes(duties, rest_start, 7)
        trigger = lim.trigger_hours_7day * 60
        hours7 = minutes7 / 60
        if minutes7 >= trigger:
            if rest < lim.trigger_rest_minutes:
                return Finding(
                    'cumulative_trigger', Severity.BAD,
                    f"7d duty {hours7:.1f}h ≥ {lim.trigger_hours_7day:g}h: rest {minutes_to_hm(rest)} "
                    f"< required {minutes_to_hm(lim.trigger_rest_minutes)}"
                )
            return Finding(
                'cumulative_trigger', Severity.INFO,
                f"7d duty {hours7:.1f}h triggered {minutes_to_hm(lim.trigger_rest_minutes)} rest: satisfied"
            )
        if minutes7 >= trigger - lim.trigger_caution_minutes:
            return Finding(
                'cumulative_trigger', Severity.WARN,
                f"7d duty {hours7:.1f}h approaching {lim.trigger_hours_7day:g}h trigger"
            )
        return None

    def _anchor(self, anchor: Any) -> Optional[datetime]:
        parsed = parse_instant(anchor, self.config.timezone)
        if parsed is None:
            logger.debug(f"Invalid rolling anchor {anchor!r}; returning empty snapshot")
        return parsed
