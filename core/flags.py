"""
Flags Feed
==========

Historical feed of notable duties. Each duty is judged against its own
predecessor and the rolling picture as it stood at its own start, so
the feed reflects what was true at the time, not today.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from models.data_models import Duty, Finding, RollingSnapshot, Severity
from core.parameters import EngineConfig
from core.classifier import DutyClassifier
from core.compliance import DutyLegalityEvaluator
from core.rolling import RollingAggregator
from core.timeutils import minutes_to_hm, parse_instant
from core.whatif import sort_newest_first


class FlagBuilder:
    """Per-duty flags and the month-grouped feed"""

    # Rolling badges worth flagging against an individual duty
    ROLLING_KEYS = ('hours7', 'avg_weekly28', 'consecutive_days', 'two_off_in_14', 'off_in_28')

    def __init__(self, config: EngineConfig = None):
        self.config = config or EngineConfig.default_config()
        self.classifier = DutyClassifier(self.config.framework)
        self.legality = DutyLegalityEvaluator(self.config.framework)
        self.rolling = RollingAggregator(self.config)

    def flags_for_duty(self, duty: Duty, previous: Optional[Duty],
                       snapshot: Optional[RollingSnapshot] = None,
                       duties: Optional[Iterable[Duty]] = None) -> List[Finding]:
        """
        Flags (warn/bad/info) for one duty.

        ``duties`` is only needed for the cumulative trigger, which looks
        at the week before ``previous`` ended.
        """
        flags = []

        disruptive = self.classifier.classify_duty(duty)
        if disruptive.any:
            flags.append(Finding('disruptive', Severity.INFO, "Disruptive: " + ", ".join(disruptive.tags)))

        result = self.legality.evaluate(duty, previous)
        for badge in result.badges:
            if badge.severity in (Severity.WARN, Severity.BAD):
                flags.append(badge)

        used = int(duty.discretion_minutes or 0)
        if used > 0:
            text = f"Discretion used {minutes_to_hm(used)}"
            if duty.discretion_reason:
                text += f" ({duty.discretion_reason})"
            flags.append(Finding('discretion_used', Severity.INFO, text))

        if duties is not None:
            trigger = self.rolling.cumulative_trigger(duty, previous, duties)
            if trigger is not None:
                flags.append(trigger)

        if snapshot is not None:
            for finding in self.rolling.findings(snapshot):
                if finding.key in self.ROLLING_KEYS and finding.severity in (Severity.WARN, Severity.BAD):
                    flags.append(finding)
        return flags

    def build_feed(self, duties: Iterable[Duty], since: Optional[datetime] = None) -> Dict[str, List[Finding]]:
        """
        Month-grouped flags, newest month first.

        Keys are ``YYYY-MM``; each flag's text is prefixed with the
        duty's date. Duties before ``since`` are skipped.
        """
        ordered = sort_newest_first(duties)
        since = parse_instant(since, self.config.timezone) if since is not None else None
        feed: Dict[str, List[Finding]] = OrderedDict()

        for index, duty in enumerate(ordered):
            when = duty.primary_instant
            if when is None or (since is not None and when < since):
                continue
            previous = ordered[index + 1] if index + 1 < len(ordered) else None
            snapshot = self.rolling.snapshot(ordered, when)
            flags = self.flags_for_duty(duty, previous, snapshot, ordered)
            if not flags:
                continue
            month = feed.setdefault(f"{when:%Y-%m}", [])
            for flag in flags:
                month.append(Finding(flag.key, flag.severity, f"{when:%d %b}: {flag.text}"))

        return OrderedDict(sorted(feed.items(), reverse=True))
