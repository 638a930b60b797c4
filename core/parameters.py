"""
Configuration & Parameters for the Duty Compliance Engine
=========================================================

All configuration dataclasses for the compliance and fatigue layers:
- FTLFramework: flight-time-limitation definitions (bands, caps, rest)
- FDPBand: one report-time band of the acclimatised FDP table
- CumulativeLimits: rolling duty and days-off limits
- FatigueParameters: advisory fatigue score coefficients
- EngineConfig: Master configuration container

Regulatory source: operator OM Section 9 (two-pilot crews, acclimatised),
rest minima 9.2.8.5, cumulative duty & days off 9.2.10 / 9.2.11.1.
"""

from dataclasses import dataclass, field, replace
from datetime import time
from typing import Dict, List, Optional, Tuple

from core.timeutils import DEFAULT_TIMEZONE


@dataclass(frozen=True)
class FDPBand:
    """
    Report-time band with its maximum FDP per sector count.

    ``limits[0]`` applies to 1 sector, ``limits[7]`` to 8 or more.
    A band whose start is after its end wraps past midnight.
    """
    start: time
    end: time
    limits: Tuple[int, ...]  # minutes

    def matches(self, report_time: time) -> bool:
        if self.start <= self.end:
            return self.start <= report_time <= self.end
        return report_time >= self.start or report_time <= self.end

    def limit_for(self, sectors: int) -> int:
        index = max(1, min(len(self.limits), int(sectors or 0))) - 1
        return self.limits[index]

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}–{self.end:%H:%M}"


def _hm(text: str) -> int:
    hours, minutes = text.split(':')
    return int(hours) * 60 + int(minutes)


def default_fdp_bands() -> List[FDPBand]:
    """Two-pilot crews, acclimatised (OM Table 9-1)"""
    table = [
        ((5, 0), (6, 59), ["13:00", "12:15", "11:30", "10:45", "10:00", "9:15", "9:00", "9:00"]),
        ((7, 0), (13, 59), ["14:00", "13:15", "12:30", "11:45", "11:00", "10:15", "9:30", "9:00"]),
        ((14, 0), (20, 59), ["13:00", "12:15", "11:30", "10:45", "10:00", "9:15", "9:00", "9:00"]),
        ((21, 0), (21, 59), ["12:00", "11:15", "10:30", "9:45", "9:00", "9:00", "9:00", "9:00"]),
        ((22, 0), (4, 59), ["11:00", "10:15", "9:30", "9:00", "9:00", "9:00", "9:00", "9:00"]),
    ]
    return [
        FDPBand(start=time(*start), end=time(*end), limits=tuple(_hm(v) for v in limits))
        for start, end, limits in table
    ]


@dataclass
class FTLFramework:
    """Flight-time-limitation definitions used by single-duty checks"""

    timezone: str = DEFAULT_TIMEZONE

    # FDP table - OM Table 9-1
    fdp_bands: List[FDPBand] = field(default_factory=default_fdp_bands)
    fdp_caution_minutes: int = 30

    # Local night for rest purposes
    local_night_start: time = time(22, 0)
    local_night_end: time = time(6, 0)

    # Rest minima - 9.2.8.5
    rest_home_minutes: int = 12 * 60
    rest_away_local_night_minutes: int = 10 * 60
    rest_away_no_local_night_minutes: int = 12 * 60
    rest_away_outside_local_night_minutes: int = 14 * 60
    rest_shortfall_bad_minutes: int = 60

    # Disruptive schedules
    early_start_hours: Tuple[int, ...] = (5,)
    late_finish_from_hour: int = 23
    late_finish_until_hour: int = 1
    night_duty_start: time = time(2, 0)
    night_duty_end: time = time(5, 0)

    # Standby
    standby_cap_minutes: int = 12 * 60
    standby_caution_minutes: int = 11 * 60
    standby_plus_fdp_cap_minutes: int = 20 * 60
    standby_plus_fdp_caution_minutes: int = 30

    # Discretion
    discretion_caution_minutes: int = 30


@dataclass
class CumulativeLimits:
    """Cumulative duty & days off - 9.2.10, 9.2.11.1"""

    max_7day_hours: float = 60.0
    max_avg_weekly_hours_28: float = 50.0
    avg_weekly_caution_hours: float = 2.0

    consecutive_days_soft: int = 6
    consecutive_days_hard: int = 7
    streak_scan_days: int = 60

    min_off_in_28: int = 6
    min_avg_off_per_28: float = 8.0

    # Cumulative trigger: a heavy rolling week demands extended rest
    trigger_hours_7day: float = 50.0
    trigger_caution_minutes: int = 60
    trigger_rest_minutes: int = 24 * 60


@dataclass
class FatigueParameters:
    """
    Advisory fatigue heuristic.

    Not a biomathematical model: a transparent points score starting at
    100 with penalties for short sleep, extended wakefulness, circadian
    low exposure and the crew member's own rating.
    """

    sleep24_target_hours: float = 7.0
    sleep24_penalty_per_hour: float = 6.0
    sleep48_target_hours: float = 14.0
    sleep48_penalty_per_hour: float = 2.0

    # (threshold hours, penalty per hour beyond threshold)
    wake_penalties: Tuple[Tuple[float, float], ...] = ((12.0, 3.0), (16.0, 5.0), (18.0, 7.0))

    wocl_start: time = time(2, 0)
    wocl_end: time = time(6, 0)
    wocl_cap_minutes: float = 60.0
    wocl_penalty_per_minute: float = 0.4

    sps_neutral: int = 3
    sps_penalty_per_point: float = 4.0

    chronotype_shift_minutes: Dict[str, int] = field(default_factory=lambda: {
        'early': -30,
        'neutral': 0,
        'late': 30,
    })
    chronotype_bedtimes: Dict[str, time] = field(default_factory=lambda: {
        'early': time(21, 30),
        'neutral': time(22, 30),
        'late': time(23, 30),
    })
    fallback_wake: time = time(7, 0)


@dataclass
class EngineConfig:
    """Master configuration container"""
    framework: FTLFramework = field(default_factory=FTLFramework)
    cumulative: CumulativeLimits = field(default_factory=CumulativeLimits)
    fatigue: FatigueParameters = field(default_factory=FatigueParameters)

    @property
    def timezone(self) -> str:
        return self.framework.timezone

    @classmethod
    def default_config(cls) -> 'EngineConfig':
        return cls(
            framework=FTLFramework(),
            cumulative=CumulativeLimits(),
            fatigue=FatigueParameters(),
        )

    @classmethod
    def for_timezone(cls, tz_name: str, base: Optional['EngineConfig'] = None) -> 'EngineConfig':
        """Same rules, different home zone"""
        base = base or cls.default_config()
        return cls(
            framework=replace(base.framework, timezone=tz_name),
            cumulative=base.cumulative,
            fatigue=base.fatigue,
        )
