"""
Time & Interval Utilities
=========================

Parsing, measuring and overlapping local instants.

Every instant handled by the engine is a naive datetime in one fixed
local zone. Aware inputs are converted into that zone with pytz; naive
inputs are taken to already be local. Nothing here raises on bad input:
unparseable values become None and contribute zero minutes.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Optional
import logging

import pytz

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Africa/Johannesburg'
PLACEHOLDER = '—'


def parse_instant(value: Any, tz_name: str = DEFAULT_TIMEZONE) -> Optional[datetime]:
    """
    Parse an ISO-8601-like local timestamp.

    Returns a naive local datetime, or None if the value is missing or
    unparseable. Offsets/``Z`` suffixes are honoured and converted into
    ``tz_name``.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time(0, 0))
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.debug(f"Unparseable instant {value!r}")
            return None
    else:
        logger.debug(f"Unsupported instant type {type(value).__name__}")
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(_zone(tz_name)).replace(tzinfo=None)
    return parsed


def parse_day(value: Any) -> Optional[date]:
    """Parse a calendar day (date, datetime or ISO string)"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def localize(instant: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """
    Attach the local zone to a naive local instant.

    Ambiguous or skipped wall-clock times (DST transitions) resolve to
    standard time instead of raising.
    """
    return _zone(tz_name).localize(instant, is_dst=False)


def minutes_between(start: Optional[datetime], end: Optional[datetime],
                    tz_name: str = DEFAULT_TIMEZONE) -> float:
    """Elapsed minutes from start to end; 0 if either is missing or end <= start"""
    if start is None or end is None:
        return 0.0
    delta = localize(end, tz_name) - localize(start, tz_name)
    return max(0.0, delta.total_seconds() / 60)


def signed_minutes(start: Optional[datetime], end: Optional[datetime],
                   tz_name: str = DEFAULT_TIMEZONE) -> Optional[float]:
    """Elapsed minutes that may be negative; None if either is missing"""
    if start is None or end is None:
        return None
    return (localize(end, tz_name) - localize(start, tz_name)).total_seconds() / 60


def add_minutes(instant: Optional[datetime], minutes: float,
                tz_name: str = DEFAULT_TIMEZONE) -> Optional[datetime]:
    """Naive local instant ``minutes`` of elapsed time after ``instant`` (before, if negative)"""
    if instant is None:
        return None
    zone = _zone(tz_name)
    moved = zone.normalize(localize(instant, tz_name) + timedelta(minutes=minutes))
    return moved.replace(tzinfo=None)


def now_local(tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Current wall-clock time in ``tz_name`` as a naive local instant"""
    return datetime.now(_zone(tz_name)).replace(tzinfo=None)


@dataclass(frozen=True)
class TimeInterval:
    """
    Half-open local interval [start, end).

    Bounds are naive local instants; ``minutes`` is elapsed time in
    ``tz_name``, so an interval spanning a DST change is measured on
    the clock, not on the wall.
    """
    start: datetime
    end: datetime
    tz_name: str = DEFAULT_TIMEZONE

    @classmethod
    def of(cls, start: Optional[datetime], end: Optional[datetime],
           tz_name: str = DEFAULT_TIMEZONE) -> Optional['TimeInterval']:
        """Build an interval, or None if the bounds are missing or inverted"""
        if start is None or end is None or end <= start:
            return None
        return cls(start, end, tz_name)

    @property
    def minutes(self) -> float:
        return minutes_between(self.start, self.end, self.tz_name)

    def overlaps(self, other: 'TimeInterval') -> bool:
        return self.start < other.end and other.start < self.end

    def intersection(self, other: 'TimeInterval') -> Optional['TimeInterval']:
        return TimeInterval.of(max(self.start, other.start), min(self.end, other.end), self.tz_name)

    def overlap_minutes(self, other: Optional['TimeInterval']) -> float:
        if other is None:
            return 0.0
        common = self.intersection(other)
        return common.minutes if common is not None else 0.0

    def days(self) -> Iterable[date]:
        """Calendar days this interval touches (an end exactly at midnight excluded)"""
        current = self.start.date()
        last = (self.end - timedelta(microseconds=1)).date()
        while current <= last:
            yield current
            current += timedelta(days=1)


def overlap_minutes(a_start: Optional[datetime], a_end: Optional[datetime],
                    b_start: Optional[datetime], b_end: Optional[datetime],
                    tz_name: str = DEFAULT_TIMEZONE) -> float:
    """Minutes shared by two intervals; 0 if either is missing or inverted"""
    a = TimeInterval.of(a_start, a_end, tz_name)
    b = TimeInterval.of(b_start, b_end)
    if a is None or b is None:
        return 0.0
    return a.overlap_minutes(b)


def day_window(day: date, start: time, end: time, shift_minutes: int = 0) -> TimeInterval:
    """
    Local band on a calendar day, e.g. 02:00-05:00.

    A band whose end is not after its start wraps into the next day
    (22:00-06:00 runs from ``day`` 22:00 to ``day + 1`` 06:00).
    """
    band_start = datetime.combine(day, start) + timedelta(minutes=shift_minutes)
    band_end = datetime.combine(day, end) + timedelta(minutes=shift_minutes)
    if band_end <= band_start:
        band_end += timedelta(days=1)
    return TimeInterval(band_start, band_end)


def band_overlap_minutes(interval: Optional[TimeInterval], start: time, end: time,
                         shift_minutes: int = 0) -> float:
    """
    Total overlap of an interval with a daily recurring local band.

    Bands anchored on every calendar day the interval touches (plus the
    day before, for bands that wrap past midnight) are considered.
    """
    if interval is None:
        return 0.0
    total = 0.0
    first = interval.start.date() - timedelta(days=1)
    last = interval.end.date()
    day = first
    while day <= last:
        total += interval.overlap_minutes(day_window(day, start, end, shift_minutes))
        day += timedelta(days=1)
    return total


def minutes_to_hm(minutes: Optional[float]) -> str:
    """Render minutes as H:MM (negative clamps to 0:00, None renders a placeholder)"""
    if minutes is None:
        return PLACEHOLDER
    total = max(0, int(round(minutes)))
    return f"{total // 60}:{total % 60:02d}"


def _zone(tz_name: str):
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)
