"""
Duty Classifier
===============

Per-duty attributes used by the evaluators: whether a duty counts
toward cumulative limits, whether its day is a working day, effective
standby minutes, the time intervals it occupies, and disruptive
schedule tags (early start, late finish, night duty).
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Set

from models.data_models import Duty
from core.parameters import FTLFramework
from core.timeutils import TimeInterval, band_overlap_minutes


EARLY_START = "Early start"
LATE_FINISH = "Late finish"
NIGHT_DUTY = "Night duty"


@dataclass(frozen=True)
class DisruptiveClassification:
    tags: List[str] = field(default_factory=list)

    @property
    def early_start(self) -> bool:
        return EARLY_START in self.tags

    @property
    def late_finish(self) -> bool:
        return LATE_FINISH in self.tags

    @property
    def night_duty(self) -> bool:
        return NIGHT_DUTY in self.tags

    @property
    def any(self) -> bool:
        return bool(self.tags)


class DutyClassifier:
    """Classify duties for limit, streak and disruptive purposes"""

    def __init__(self, framework: FTLFramework = None):
        self.framework = framework or FTLFramework()

    @staticmethod
    def counts_toward_limits(duty: Duty) -> bool:
        return duty.kind.counts_toward_limits

    @staticmethod
    def is_working_day(duty: Duty) -> bool:
        return duty.kind.is_working_day

    def standby_minutes(self, duty: Duty) -> float:
        """Effective standby minutes (clipped to the call-out when called)"""
        window = duty.standby_window
        return window.effective_minutes(self.framework.timezone) if window is not None else 0.0

    def intervals(self, duty: Duty) -> List[TimeInterval]:
        """FDP interval and effective standby interval, where present"""
        tz = self.framework.timezone
        result = []
        if duty.has_fdp:
            result.append(TimeInterval(duty.report, duty.off, tz))
        window = duty.standby_window
        if window is not None:
            standby = TimeInterval.of(window.start, window.effective_end, tz)
            if standby is not None:
                result.append(standby)
        return result

    def days_occupied(self, duty: Duty) -> Set[date]:
        """
        Calendar days holding an entry for this duty.

        The logged date plus every day touched by its FDP or nominal
        standby window. A duty with no usable times still occupies its
        logged day.
        """
        days: Set[date] = set()
        if duty.duty_date is not None:
            days.add(duty.duty_date)
        spans = []
        if duty.has_fdp:
            spans.append(TimeInterval(duty.report, duty.off))
        if duty.has_standby_window:
            spans.append(TimeInterval(duty.standby_start, duty.standby_end))
        for span in spans:
            days.update(span.days())
        if not days and duty.calendar_day is not None:
            days.add(duty.calendar_day)
        return days

    def classify_disruptive(self, report: Optional[datetime], off: Optional[datetime]) -> DisruptiveClassification:
        """Early start / late finish / night duty tags for an FDP"""
        fw = self.framework
        interval = TimeInterval.of(report, off)
        if interval is None:
            return DisruptiveClassification()

        tags = []
        if report.hour in fw.early_start_hours:
            tags.append(EARLY_START)
        if off.hour >= fw.late_finish_from_hour or off.hour <= fw.late_finish_until_hour:
            tags.append(LATE_FINISH)
        if band_overlap_minutes(interval, fw.night_duty_start, fw.night_duty_end) > 0:
            tags.append(NIGHT_DUTY)
        return DisruptiveClassification(tags=tags)

    def classify_duty(self, duty: Duty) -> DisruptiveClassification:
        if not duty.has_fdp:
            return DisruptiveClassification()
        return self.classify_disruptive(duty.report, duty.off)
