"""
FDP Limit Table
===============

Maximum flight duty period for an acclimatised two-pilot crew,
looked up by local report time band and sector count.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from core.parameters import FDPBand, FTLFramework


@dataclass(frozen=True)
class FDPLimit:
    """Result of an FDP table lookup"""
    limit_minutes: int
    band_label: str
    sectors_used: int


class FDPLimitTable:
    """Report-time band x sector count -> maximum FDP minutes"""

    def __init__(self, framework: FTLFramework = None):
        self.framework = framework or FTLFramework()
        self.bands: List[FDPBand] = list(self.framework.fdp_bands)

    def band_for(self, report: datetime) -> Optional[FDPBand]:
        """Band containing the report's local time of day (minute resolution)"""
        report_time = report.time().replace(second=0, microsecond=0)
        return next((band for band in self.bands if band.matches(report_time)), None)

    def lookup(self, report: Optional[datetime], sectors: int) -> Optional[FDPLimit]:
        """
        Maximum FDP for a report instant and sector count.

        Sector counts below 1 use the 1-sector column, above 8 the
        8-sector column. Returns None only for a missing report or a
        table with a gap at the report time.
        """
        if report is None:
            return None
        band = self.band_for(report)
        if band is None:
            return None
        used = max(1, min(len(band.limits), int(sectors or 0)))
        return FDPLimit(
            limit_minutes=band.limit_for(used),
            band_label=band.label,
            sectors_used=used,
        )
