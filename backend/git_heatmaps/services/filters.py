from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable, List


class FilterStrategy(ABC):
    """Interface for filtering strategies."""

    @abstractmethod
    def apply(self, items: List[Any]) -> List[Any]:
        """Apply filter to the items, keeping their order."""
        pass


class DeduplicateEventsFilter(FilterStrategy):
    """
    Drops events whose id has already been seen.

    Action-category queries overlap, so one seen-set spans every category of a
    fetch. The first occurrence wins.
    """

    def apply(self, items: List[Any]) -> List[Any]:
        seen: set[int] = set()
        unique = []
        for event in items:
            if event.id in seen:
                continue
            seen.add(event.id)
            unique.append(event)
        return unique


class ContributionEventFilter(FilterStrategy):
    """Keeps only events the predicate accepts as contributions."""

    def __init__(self, is_contribution: Callable[[Any], bool]):
        self.is_contribution = is_contribution

    def apply(self, items: List[Any]) -> List[Any]:
        return [e for e in items if self.is_contribution(e)]


class DateRangeFilter(FilterStrategy):
    """Filters day counts to strictly match a start and end day, inclusive."""

    def __init__(self, start: date, end: date):
        self.start = start
        self.end = end

    def apply(self, items: List[Any]) -> List[Any]:
        return [d for d in items if self.start <= d.day <= self.end]
