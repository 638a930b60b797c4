"""
Duty Compliance & Fatigue Engine
================================

Main exports for advisory FTL compliance checks.
"""

from core.parameters import (
    FDPBand,
    FTLFramework,
    CumulativeLimits,
    FatigueParameters,
    EngineConfig,
    default_fdp_bands,
)

from core.timeutils import (
    DEFAULT_TIMEZONE,
    TimeInterval,
    parse_instant,
    minutes_between,
    overlap_minutes,
    minutes_to_hm,
)
from core.fdp_limits import FDPLimit, FDPLimitTable
from core.rest import RestRequirement, RestRequirementResolver
from core.classifier import DisruptiveClassification, DutyClassifier
from core.compliance import DutyLegalityEvaluator
from core.rolling import DayState, RollingAggregator, RollingEvaluation
from core.fatigue import FatigueScorer
from core.whatif import WhatIfOverlay, WhatIfResult
from core.flags import FlagBuilder
from core.quick_stats import QuickStats, quick_stats
from core.engine import DutyComplianceEngine, DutyReport

__all__ = [
    # Parameters
    'FDPBand',
    'FTLFramework',
    'CumulativeLimits',
    'FatigueParameters',
    'EngineConfig',
    'default_fdp_bands',
    # Time utilities
    'DEFAULT_TIMEZONE',
    'TimeInterval',
    'parse_instant',
    'minutes_between',
    'overlap_minutes',
    'minutes_to_hm',
    # Rules
    'FDPLimit',
    'FDPLimitTable',
    'RestRequirement',
    'RestRequirementResolver',
    'DisruptiveClassification',
    'DutyClassifier',
    # Evaluators
    'DutyLegalityEvaluator',
    'DayState',
    'RollingAggregator',
    'RollingEvaluation',
    'FatigueScorer',
    'WhatIfOverlay',
    'WhatIfResult',
    'FlagBuilder',
    'QuickStats',
    'quick_stats',
    # Main engine
    'DutyComplianceEngine',
    'DutyReport',
]
