"""
Closed label sets used by the producer analytics.

All enums inherit from both `str` and `Enum` so they serialize as their plain value
in JSON responses and compare equal to the raw labels found in exported data.
"""

from enum import Enum


class TrendLabel(str, Enum):
    """Direction of a producer's recent monthly efficiency (last 6 months)."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    VOLATILE = "volatile"


class RiskLevel(str, Enum):
    """Bucketed risk score: >=6 critical, >=4 high, >=2 medium, else low."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActivityPattern(str, Enum):
    FRONT_LOADED = "front-loaded"
    CONSISTENT = "consistent"


class TrendBucket(str, Enum):
    """Portfolio-level bucket used by trendsAnalysis; every producer lands in exactly one."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class PerformanceTier(str, Enum):
    """Percentile bands of performanceDistribution."""

    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "belowAverage"
    POOR = "poor"


class ColumnType(str, Enum):
    """Rendering type of an exported spreadsheet column."""

    STRING = "string"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    DATE = "date"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"
