from .contributions import (
    AggregatedResult,
    ContributionQuery,
    DayCount,
    Provider,
    ProviderSeries,
    SourceError,
    SourceQuery,
    UnifiedDay,
)

__all__ = [
    "AggregatedResult",
    "ContributionQuery",
    "DayCount",
    "Provider",
    "ProviderSeries",
    "SourceError",
    "SourceQuery",
    "UnifiedDay",
]
