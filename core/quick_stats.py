"""
Quick Stats
===========

Summary figures over the whole duty log for the overview panel.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from models.data_models import Duty, DutyKind, Location, StandbyType
from core.parameters import FTLFramework
from core.classifier import DutyClassifier
from core.fdp_limits import FDPLimitTable
from core.timeutils import minutes_between


@dataclass(frozen=True)
class QuickStats:
    avg_duty_minutes: Optional[float]
    avg_sectors: Optional[float]
    common_report_window: Optional[str]
    disruptive_this_month: int
    with_discretion: int
    airport_standby_calls: int
    away_this_month: int
    standby_used_pct: Optional[int]
    avg_callout_notice_minutes: Optional[float]


def quick_stats(duties: Iterable[Duty], today: date, framework: FTLFramework = None) -> QuickStats:
    """Averages and counts across the duty log; ``today`` selects the current month"""
    framework = framework or FTLFramework()
    classifier = DutyClassifier(framework)
    table = FDPLimitTable(framework)
    duties = list(duties)

    fdps = [d for d in duties if d.has_fdp and d.kind.counts_toward_limits]
    avg_duty = sum(d.fdp_minutes(framework.timezone) for d in fdps) / len(fdps) if fdps else None
    avg_sectors = round(sum(int(d.sectors or 0) for d in fdps) / len(fdps), 2) if fdps else None

    bands = Counter()
    for duty in fdps:
        band = table.band_for(duty.report)
        if band is not None:
            bands[band.label] += 1
    common = bands.most_common(1)[0][0] if bands else None

    def this_month(duty: Duty) -> bool:
        day = duty.calendar_day
        return day is not None and (day.year, day.month) == (today.year, today.month)

    disruptive = sum(1 for d in fdps if this_month(d) and classifier.classify_duty(d).any)
    with_discretion = sum(1 for d in duties if int(d.discretion_minutes or 0) > 0)
    away = sum(1 for d in duties if d.location is Location.AWAY and this_month(d))

    standbys = [d for d in duties if d.kind is DutyKind.STANDBY and d.has_standby_window]
    called = [d for d in standbys if d.standby_called]
    airport_calls = sum(1 for d in called if d.standby_type is StandbyType.AIRPORT)
    used_pct = round(100 * len(called) / len(standbys)) if standbys else None

    notices = [
        minutes_between(d.standby_call, d.report, framework.timezone)
        for d in called
        if d.report is not None and d.standby_call is not None and d.report >= d.standby_call
    ]
    avg_notice = sum(notices) / len(notices) if notices else None

    return QuickStats(
        avg_duty_minutes=avg_duty,
        avg_sectors=avg_sectors,
        common_report_window=common,
        disruptive_this_month=disruptive,
        with_discretion=with_discretion,
        airport_standby_calls=airport_calls,
        away_this_month=away,
        standby_used_pct=used_pct,
        avg_callout_notice_minutes=avg_notice,
    )
