from app.models.enums import (
    ActivityPattern,
    ColumnType,
    PerformanceTier,
    RiskLevel,
    SortDirection,
    TrendBucket,
    TrendLabel,
)

__all__ = [
    'ActivityPattern',
    'ColumnType',
    'PerformanceTier',
    'RiskLevel',
    'SortDirection',
    'TrendBucket',
    'TrendLabel',
]
