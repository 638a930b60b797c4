"""
data_models.py - Core Data Structures
======================================

Data models for duty logging, sleep history, user settings and the
advisory findings the compliance engine produces.

All instants are naive local datetimes in the configured home zone
(see core.timeutils). Records coming from the storage layer are loose
mappings; use the ``from_record`` constructors to normalise them.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, List, Mapping, Optional, Union
from enum import Enum
import logging
import math

logger = logging.getLogger(__name__)


# ============================================================================
# ENUMS
# ============================================================================

class DutyKind(Enum):
    """Logged duty kinds"""
    FDP = "FDP"
    STANDBY = "Standby"
    FLIGHT_WATCH = "Flight Watch"
    HOME_RESERVE = "Home Reserve"
    SICK = "Sick"

    @classmethod
    def parse(cls, value: Any) -> 'DutyKind':
        """
        Resolve a stored duty-type string.

        Matching is case-insensitive and ignores spaces/underscores.
        Unknown kinds fail open to FDP so a real duty is never ignored.
        """
        if isinstance(value, cls):
            return value
        key = str(value or '').replace('_', '').replace(' ', '').lower()
        if not key:
            return cls.FDP
        for kind in cls:
            if kind.value.replace(' ', '').lower() == key or kind.name.replace('_', '').lower() == key:
                return kind
        logger.warning(f"Unknown duty kind {value!r}, treating as FDP")
        return cls.FDP

    @property
    def counts_toward_limits(self) -> bool:
        """Whether duty minutes of this kind count toward cumulative limits"""
        if self in (DutyKind.FDP, DutyKind.STANDBY):
            return True
        if self in (DutyKind.FLIGHT_WATCH, DutyKind.HOME_RESERVE, DutyKind.SICK):
            return False
        raise ValueError(f"Unhandled duty kind: {self}")

    @property
    def is_working_day(self) -> bool:
        """Whether a day holding this kind is a working day for streaks"""
        if self is DutyKind.SICK:
            return False
        if self in (DutyKind.FDP, DutyKind.STANDBY, DutyKind.FLIGHT_WATCH, DutyKind.HOME_RESERVE):
            return True
        raise ValueError(f"Unhandled duty kind: {self}")

    @property
    def is_sick(self) -> bool:
        return self is DutyKind.SICK


class Location(Enum):
    """Where the rest before a duty is taken"""
    HOME = "Home"
    AWAY = "Away"

    @classmethod
    def parse(cls, value: Any) -> 'Location':
        if isinstance(value, cls):
            return value
        return cls.AWAY if str(value or '').strip().lower() == 'away' else cls.HOME


class StandbyType(Enum):
    HOME = "Home"
    AIRPORT = "Airport"

    @classmethod
    def parse(cls, value: Any) -> 'StandbyType':
        if isinstance(value, cls):
            return value
        return cls.AIRPORT if str(value or '').strip().lower() == 'airport' else cls.HOME


class DutyOrigin(Enum):
    """
    Identity of a duty in an evaluation pass.

    Only RECORDED duties come from storage. DRAFT and ASSUMPTION duties
    are fabricated for what-if simulation and are never written back.
    """
    RECORDED = "recorded"
    DRAFT = "draft"
    ASSUMPTION = "assumption"


class Severity(Enum):
    """Finding severity. INFO is reserved for non pass/fail notices."""
    OK = "ok"
    WARN = "warn"
    BAD = "bad"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {'info': 0, 'ok': 1, 'warn': 2, 'bad': 3}[self.value]


class Chronotype(Enum):
    EARLY = "early"
    NEUTRAL = "neutral"
    LATE = "late"

    @classmethod
    def parse(cls, value: Any) -> 'Chronotype':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or '').strip().lower())
        except ValueError:
            return cls.NEUTRAL


class SleepType(Enum):
    MAIN = "main"
    NAP = "nap"


class AssumptionKind(Enum):
    """What-if assumption kinds"""
    WORK = "work"
    STANDBY = "standby"
    OFF = "off"


# ============================================================================
# DUTY SHAPES
# ============================================================================

@dataclass(frozen=True)
class StandbyWindow:
    """Reserve-availability window, optionally clipped by a call-out"""
    start: datetime
    end: datetime
    called: bool = False
    call: Optional[datetime] = None
    report: Optional[datetime] = None  # report of the resulting FDP, if any

    @property
    def effective_end(self) -> datetime:
        """
        End of the standby actually served.

        Called standby ends at the call instant, else at the resulting
        report, else at the nominal end; never later than the nominal end.
        """
        if not self.called:
            return self.end
        candidate = self.call or self.report or self.end
        return min(candidate, self.end)

    def effective_minutes(self, tz_name: Optional[str] = None) -> float:
        """Elapsed minutes actually served, measured in ``tz_name``"""
        return _elapsed_minutes(self.start, self.effective_end, tz_name)

    def nominal_minutes(self, tz_name: Optional[str] = None) -> float:
        return _elapsed_minutes(self.start, self.end, tz_name)


@dataclass(frozen=True)
class NoSchedule:
    """Duty logged without usable times (e.g. a Sick day)"""


@dataclass(frozen=True)
class FlightDuty:
    """FDP-bearing duty, optionally preceded by a standby window"""
    report: datetime
    off: datetime
    standby: Optional[StandbyWindow] = None

    def minutes(self, tz_name: Optional[str] = None) -> float:
        return _elapsed_minutes(self.report, self.off, tz_name)


@dataclass(frozen=True)
class StandbyOnly:
    """Standby served without a call-out"""
    window: StandbyWindow


@dataclass(frozen=True)
class StandbyCalledOut:
    """Called standby with no resulting FDP logged"""
    window: StandbyWindow


DutyShape = Union[NoSchedule, FlightDuty, StandbyOnly, StandbyCalledOut]


# ============================================================================
# DUTY
# ============================================================================

@dataclass(frozen=True)
class Duty:
    """
    One logged duty.

    The engine treats duties as immutable snapshots. What-if overlays
    derive copies with ``dataclasses.replace`` and a non-RECORDED origin.
    """
    duty_id: Optional[Union[int, str]] = None
    kind: DutyKind = DutyKind.FDP
    report: Optional[datetime] = None
    off: Optional[datetime] = None
    sectors: int = 0
    location: Location = Location.HOME
    duty_date: Optional[date] = None

    # Discretion
    discretion_minutes: int = 0
    discretion_reason: str = ''
    discretion_by: str = ''

    # Standby
    standby_type: StandbyType = StandbyType.HOME
    standby_start: Optional[datetime] = None
    standby_end: Optional[datetime] = None
    standby_called: bool = False
    standby_call: Optional[datetime] = None

    notes: str = ''
    sps: Optional[int] = None  # subjective pilot score 1-7
    origin: DutyOrigin = DutyOrigin.RECORDED

    @classmethod
    def from_record(cls, record: Mapping[str, Any], tz_name: Optional[str] = None) -> 'Duty':
        """
        Normalise a storage record (camelCase or snake_case keys).

        Unparseable instants become None; sectors are coerced to a
        non-negative integer. Nothing here raises on bad values.
        """
        # Lazy import to avoid circular dependency (core imports models)
        from core.timeutils import parse_instant, parse_day, DEFAULT_TIMEZONE
        tz_name = tz_name or DEFAULT_TIMEZONE

        def pick(*keys, default=None):
            for key in keys:
                if key in record and record[key] not in (None, ''):
                    return record[key]
            return default

        def instant(*keys):
            return parse_instant(pick(*keys), tz_name)

        return cls(
            duty_id=pick('id', 'duty_id'),
            kind=DutyKind.parse(pick('dutyType', 'duty_type', 'kind')),
            report=instant('report', 'reportIso'),
            off=instant('off', 'offIso'),
            sectors=_to_int(pick('sectors'), 0),
            location=Location.parse(pick('location')),
            duty_date=parse_day(pick("date", "duty_date")),
            discretion_minutes=_to_int(pick('discretionMins', 'discretion_minutes'), 0),
            discretion_reason=str(pick('discretionReason', 'discretion_reason', default='')),
            discretion_by=str(pick('discretionBy', 'discretion_by', default='')),
            standby_type=StandbyType.parse(pick('sbType', 'standby_type')),
            standby_start=instant('sbStart', 'standby_start'),
            standby_end=instant('sbEnd', 'standby_end'),
            standby_called=_to_bool(pick('sbCalled', 'standby_called', default=False)),
            standby_call=instant('sbCall', 'standby_call'),
            notes=str(pick('notes', default='')),
            sps=_to_int(pick('sps'), None),
        )

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def has_fdp(self) -> bool:
        """Report and off both present and in order"""
        return self.report is not None and self.off is not None and self.off > self.report

    @property
    def has_standby_window(self) -> bool:
        return (
            self.standby_start is not None and self.standby_end is not None
            and self.standby_end > self.standby_start
        )

    @property
    def standby_window(self) -> Optional[StandbyWindow]:
        if not self.has_standby_window:
            return None
        return StandbyWindow(
            start=self.standby_start,
            end=self.standby_end,
            called=self.standby_called,
            call=self.standby_call,
            report=self.report,
        )

    @property
    def shape(self) -> DutyShape:
        """Resolve which schedule shape this duty has"""
        window = self.standby_window
        if self.has_fdp:
            return FlightDuty(report=self.report, off=self.off, standby=window)
        if window is None:
            return NoSchedule()
        if window.called:
            return StandbyCalledOut(window=window)
        return StandbyOnly(window=window)

    @property
    def primary_instant(self) -> Optional[datetime]:
        """Report, else standby start; used for ordering and anchoring"""
        return self.report or self.standby_start

    @property
    def end_instant(self) -> Optional[datetime]:
        """When the duty actually finished (off, else effective standby end)"""
        if self.has_fdp:
            return self.off
        window = self.standby_window
        if window is not None:
            return window.effective_end
        return None

    @property
    def calendar_day(self) -> Optional[date]:
        if self.duty_date is not None:
            return self.duty_date
        instant = self.primary_instant or self.off
        return instant.date() if instant is not None else None

    def fdp_minutes(self, tz_name: Optional[str] = None) -> float:
        """Elapsed report-to-off minutes in ``tz_name`` (0 without a valid FDP)"""
        if not self.has_fdp:
            return 0.0
        return _elapsed_minutes(self.report, self.off, tz_name)

    @property
    def clamped_sectors(self) -> int:
        """Sector count clamped to the FDP table columns (1..8)"""
        return max(1, min(8, int(self.sectors or 0)))

    @property
    def is_ghost(self) -> bool:
        return self.origin is not DutyOrigin.RECORDED

    def as_origin(self, origin: DutyOrigin) -> 'Duty':
        return replace(self, origin=origin)


# ============================================================================
# SLEEP & SETTINGS
# ============================================================================

@dataclass(frozen=True)
class SleepEntry:
    """Logged sleep period"""
    start: Optional[datetime]
    end: Optional[datetime]
    sleep_type: SleepType = SleepType.MAIN
    quality: int = 3  # 1-5

    @classmethod
    def from_record(cls, record: Mapping[str, Any], tz_name: Optional[str] = None) -> 'SleepEntry':
        from core.timeutils import parse_instant, DEFAULT_TIMEZONE
        tz_name = tz_name or DEFAULT_TIMEZONE
        sleep_type = SleepType.NAP if str(record.get('type', '')).lower() == 'nap' else SleepType.MAIN
        quality = _to_int(record.get('quality'), 3)
        return cls(
            start=parse_instant(record.get('start'), tz_name),
            end=parse_instant(record.get('end'), tz_name),
            sleep_type=sleep_type,
            quality=max(1, min(5, quality)),
        )

    @property
    def is_valid(self) -> bool:
        return self.start is not None and self.end is not None and self.end > self.start


@dataclass(frozen=True)
class FatigueBands:
    """Fatigue gauge thresholds, descending"""
    good: float = 80
    caution: float = 60
    elevated: float = 45

    def classify(self, score: float) -> str:
        if score >= self.good:
            return 'Good'
        if score >= self.caution:
            return 'Caution'
        if score >= self.elevated:
            return 'Elevated'
        return 'High'


@dataclass(frozen=True)
class Settings:
    """User settings snapshot"""
    chronotype: Chronotype = Chronotype.NEUTRAL
    bands: FatigueBands = field(default_factory=FatigueBands)
    theme: str = 'light'

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]]) -> 'Settings':
        record = record or {}
        bands = record.get('bands')
        if not isinstance(bands, Mapping):
            bands = {}
        defaults = FatigueBands()
        return cls(
            chronotype=Chronotype.parse(record.get('chronotype')),
            bands=FatigueBands(
                good=_to_float(bands.get('good'), defaults.good),
                caution=_to_float(bands.get('caution'), defaults.caution),
                elevated=_to_float(bands.get('elevated'), defaults.elevated),
            ),
            theme=str(record.get('theme', 'light')),
        )


# ============================================================================
# FINDINGS & RESULTS
# ============================================================================

@dataclass(frozen=True)
class Finding:
    """Badge or flag: a keyed, severity-tagged message"""
    key: str
    severity: Severity
    text: str


@dataclass
class LegalityResult:
    """Single-duty evaluation output"""
    badges: List[Finding] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    @property
    def worst(self) -> Optional[Severity]:
        if not self.badges:
            return None
        return max((b.severity for b in self.badges), key=lambda s: s.rank)

    def by_key(self, key: str) -> Optional[Finding]:
        return next((b for b in self.badges if b.key == key), None)


@dataclass(frozen=True)
class RollingSnapshot:
    """Trailing-window picture anchored at one instant"""
    minutes7: float = 0.0
    minutes28: float = 0.0
    avg_weekly_hours28: float = 0.0
    consecutive_work_days: int = 0
    has_two_off_in_14: bool = False
    off_in_28: int = 0
    avg_off_per_28_over_84: float = 0.0
    discretion_count28: int = 0
    off_ytd: int = 0

    @property
    def hours7(self) -> float:
        return round(self.minutes7 / 60, 1)

    @property
    def hours28(self) -> float:
        return round(self.minutes28 / 60, 1)


@dataclass
class FatigueAssessment:
    """Advisory fatigue score for one duty"""
    score: int
    band: str
    chips: List[str] = field(default_factory=list)
    sleep24_hours: float = 0.0
    sleep48_hours: float = 0.0
    awake_peak_hours: float = 0.0
    wocl_overlap_minutes: float = 0.0
    used_wake_estimate: bool = False


# ============================================================================
# WHAT-IF
# ============================================================================

@dataclass(frozen=True)
class Assumption:
    """
    Session-only what-if assumption.

    Placed ``days_before`` whole days before the draft duty's calendar
    day at ``start`` local time.
    """
    kind: AssumptionKind = AssumptionKind.WORK
    days_before: int = 1
    start: time = time(8, 0)
    duration_hours: float = 8.0
    sectors: int = 1
    standby_type: StandbyType = StandbyType.HOME
    location: Location = Location.HOME


# ============================================================================
# HELPERS
# ============================================================================

def _to_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or value == '':
        return default
    try:
        result = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(0, result)


def _to_float(value: Any, default: float) -> float:
    if value is None or value == '':
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(result) else result

def _elapsed_minutes(start: datetime, end: datetime, tz_name: Optional[str]) -> float:
    # Lazy import to avoid circular dependency (core imports models)
    from core.timeutils import minutes_between, DEFAULT_TIMEZONE
    return minutes_between(start, end, tz_name or DEFAULT_TIMEZONE)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)
