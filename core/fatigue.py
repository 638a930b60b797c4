"""
Advisory Fatigue Score
======================

Transparent points heuristic for a single duty, combining:
- Sleep in the 24h / 48h before report (overlap with logged sleep)
- Hours awake at peak exposure (last wake to estimated next bedtime)
- Overlap with the window of circadian low, shifted by chronotype
- The crew member's subjective rating (SPS 1-7, neutral at 3)

The score is advisory only and is banded with the user's thresholds.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional
import logging
import math

from models.data_models import Chronotype, Duty, FatigueAssessment, Settings, SleepEntry
from core.parameters import EngineConfig
from core.timeutils import TimeInterval, add_minutes, band_overlap_minutes, minutes_between

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SleepMetrics:
    sleep24_hours: float
    sleep48_hours: float
    last_wake: datetime
    used_estimate: bool


@dataclass(frozen=True)
class TimeAwake:
    since_wake_at_report: float
    since_wake_at_off: float
    until_next_sleep: float
    used_estimate: bool

    @property
    def peak_hours(self) -> float:
        return round(self.since_wake_at_off + self.until_next_sleep, 1)


class FatigueScorer:
    """Advisory fatigue scoring for one duty"""

    def __init__(self, config: EngineConfig = None):
        self.config = config or EngineConfig.default_config()
        self.params = self.config.fatigue

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def sleep_metrics(self, sleeps: Iterable[SleepEntry], report: datetime) -> SleepMetrics:
        """Sleep before report and the last wake time (07:00 fallback)"""
        valid = sorted((s for s in sleeps if s.is_valid), key=lambda s: s.start)
        tz = self.config.timezone
        win24 = TimeInterval(add_minutes(report, -24 * 60, tz), report, tz)
        win48 = TimeInterval(add_minutes(report, -48 * 60, tz), report, tz)

        def overlap_hours(window: TimeInterval) -> float:
            minutes = sum(window.overlap_minutes(TimeInterval(s.start, s.end, tz)) for s in valid)
            return round(minutes / 60, 1)

        ended = [s.end for s in valid if s.end <= report]
        if ended:
            return SleepMetrics(overlap_hours(win24), overlap_hours(win48), max(ended), False)

        wake = datetime.combine(report.date(), self.params.fallback_wake)
        if wake > report:
            wake -= timedelta(days=1)
        return SleepMetrics(overlap_hours(win24), overlap_hours(win48), wake, True)

    def estimate_bedtime(self, off: datetime, chronotype: Chronotype) -> datetime:
        """First chronotype bedtime at or after ``off``"""
        bedtime = self.params.chronotype_bedtimes.get(
            chronotype.value, self.params.chronotype_bedtimes['neutral']
        )
        bed = datetime.combine(off.date(), bedtime)
        if bed < off:
            bed += timedelta(days=1)
        return bed

    def time_awake(self, sleeps: Iterable[SleepEntry], report: datetime, off: datetime,
                   chronotype: Chronotype = Chronotype.NEUTRAL) -> TimeAwake:
        metrics = self.sleep_metrics(sleeps, report)
        wake = metrics.last_wake
        next_sleep = self.estimate_bedtime(off, chronotype)
        tz = self.config.timezone
        return TimeAwake(
            since_wake_at_report=round(minutes_between(wake, report, tz) / 60, 1),
            since_wake_at_off=round(minutes_between(wake, off, tz) / 60, 1),
            until_next_sleep=round(minutes_between(off, next_sleep, tz) / 60, 1),
            used_estimate=metrics.used_estimate,
        )

    def wocl_overlap_minutes(self, report: Optional[datetime], off: Optional[datetime],
                             chronotype: Chronotype = Chronotype.NEUTRAL) -> float:
        """Duty overlap with the circadian low band, shifted by chronotype"""
        shift = self.params.chronotype_shift_minutes.get(chronotype.value, 0)
        interval = TimeInterval.of(report, off, self.config.timezone)
        minutes = band_overlap_minutes(interval, self.params.wocl_start, self.params.wocl_end, shift)
        return float(round(minutes))

    # ------------------------------------------------------------------
    # Score
    # ------------------------------------------------------------------

    def score(self, sleep24: float, sleep48: float, awake_hours: float,
              wocl_minutes: float, sps: Optional[int] = None) -> int:
        """Points score in [0, 100]; higher is better rested"""
        p = self.params
        score = 100.0

        if sleep24 < p.sleep24_target_hours:
            score -= (p.sleep24_target_hours - sleep24) * p.sleep24_penalty_per_hour
        if sleep48 < p.sleep48_target_hours:
            score -= (p.sleep48_target_hours - sleep48) * p.sleep48_penalty_per_hour

        # Each threshold's excess is penalised on top of the lower ones
        for threshold, rate in p.wake_penalties:
            if awake_hours > threshold:
                score -= (awake_hours - threshold) * rate

        score -= min(p.wocl_cap_minutes, max(0.0, wocl_minutes or 0.0)) * p.wocl_penalty_per_minute

        if sps is not None and 1 <= sps <= 7:
            score -= (sps - p.sps_neutral) * p.sps_penalty_per_point

        return int(max(0, min(100, math.floor(score + 0.5))))

    def assess(self, duty: Duty, sleeps: Iterable[SleepEntry], settings: Settings = None,
               sps: Optional[int] = None) -> Optional[FatigueAssessment]:
        """
        Fatigue assessment for a duty.

        Uses report/off, or the served standby window when no FDP was
        logged. Returns None for a duty without usable times.
        """
        settings = settings or Settings()
        start = duty.primary_instant
        end = duty.end_instant
        if start is None or end is None or end <= start:
            logger.debug(f"[{duty.duty_id}] No usable times for fatigue assessment")
            return None

        sleeps = list(sleeps or [])
        rating = sps if sps is not None else duty.sps
        metrics = self.sleep_metrics(sleeps, start)
        awake = self.time_awake(sleeps, start, end, settings.chronotype)
        wocl = self.wocl_overlap_minutes(start, end, settings.chronotype)

        value = self.score(metrics.sleep24_hours, metrics.sleep48_hours, awake.peak_hours, wocl, rating)

        chips = [
            f"Sleep 24h: {metrics.sleep24_hours:.1f}h",
            f"Sleep 48h: {metrics.sleep48_hours:.1f}h",
            f"Awake at peak: {awake.peak_hours:.1f}h" + (" (est.)" if awake.used_estimate else ""),
            f"WOCL overlap: {int(wocl)} min",
        ]
        if rating is not None and 1 <= rating <= 7:
            chips.append(f"SPS: {rating}")

        return FatigueAssessment(
            score=value,
            band=settings.bands.classify(value),
            chips=chips,
            sleep24_hours=metrics.sleep24_hours,
            sleep48_hours=metrics.sleep48_hours,
            awake_peak_hours=awake.peak_hours,
            wocl_overlap_minutes=wocl,
            used_wake_estimate=awake.used_estimate,
        )
