"""
Rest Requirement Resolver
=========================

Minimum rest before a duty, from the previous duty's end, the upcoming
duty's location and whether the rest spans part of a local night.

Rest minima (9.2.8.5):
- Home base: 12h
- Away: 10h when the rest includes local night (22:00-06:00),
  14h when taken entirely outside local night on one calendar day,
  12h otherwise
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from models.data_models import Duty, Location
from core.parameters import FTLFramework
from core.timeutils import TimeInterval, add_minutes, day_window


@dataclass(frozen=True)
class RestRequirement:
    required_minutes: int
    basis: str


NO_PREVIOUS = RestRequirement(required_minutes=0, basis="No previous duty")


class RestRequirementResolver:
    """Minimum rest before an upcoming duty"""

    def __init__(self, framework: FTLFramework = None):
        self.framework = framework or FTLFramework()

    def includes_local_night(self, start: Optional[datetime], end: Optional[datetime]) -> bool:
        """
        Whether [start, end] overlaps a local night.

        Nights anchored at either endpoint's calendar day are checked
        (the night ending that morning and the one starting that evening).
        """
        interval = TimeInterval.of(start, end)
        if interval is None:
            return False
        fw = self.framework
        for anchor in {start.date(), end.date()}:
            for day in (anchor - timedelta(days=1), anchor):
                night = day_window(day, fw.local_night_start, fw.local_night_end)
                if interval.overlaps(night):
                    return True
        return False

    def minimum_rest(self, rest_start: Optional[datetime], report: Optional[datetime],
                     location: Location) -> RestRequirement:
        """Required rest for a rest period starting at ``rest_start``"""
        fw = self.framework
        if rest_start is None:
            return NO_PREVIOUS
        if location is Location.HOME:
            return RestRequirement(fw.rest_home_minutes, "Home: 12h min rest")
        if self.includes_local_night(rest_start, report):
            return RestRequirement(fw.rest_away_local_night_minutes, "Away: 10h incl. local night")
        if (
            report is not None and rest_start.date() == report.date()
            and rest_start.time() >= fw.local_night_end
            and report.time() <= fw.local_night_start
        ):
            return RestRequirement(
                fw.rest_away_outside_local_night_minutes, "Away: 14h rest (outside local night)"
            )
        return RestRequirement(fw.rest_away_no_local_night_minutes, "Away: 12h rest (no local night)")

    def resolve(self, previous: Optional[Duty], upcoming: Duty) -> RestRequirement:
        """Required rest between ``previous`` and ``upcoming`` (zero if no previous duty)"""
        if previous is None:
            return NO_PREVIOUS
        return self.minimum_rest(previous.end_instant, upcoming.primary_instant, upcoming.location)

    def earliest_next_report(self, previous_end: Optional[datetime],
                             location: Location = Location.HOME) -> Tuple[Optional[datetime], str]:
        """
        Earliest legal report after a duty ending at ``previous_end``.

        Away from base the shortest rest whose span reaches into a local
        night wins: 10h, then 12h, else 14h.
        """
        fw = self.framework
        if previous_end is None:
            return None, "invalid"
        if location is Location.HOME:
            return add_minutes(previous_end, fw.rest_home_minutes, fw.timezone), "Home: 12h min rest"

        try10 = add_minutes(previous_end, fw.rest_away_local_night_minutes, fw.timezone)
        if self.includes_local_night(previous_end, try10):
            return try10, "Away: 10h incl. local night"
        try12 = add_minutes(previous_end, fw.rest_away_no_local_night_minutes, fw.timezone)
        if self.includes_local_night(previous_end, try12):
            return try12, "Away: 12h rest (no local night in 10h)"
        try14 = add_minutes(previous_end, fw.rest_away_outside_local_night_minutes, fw.timezone)
        return try14, "Away: 14h rest (outside local night)"
