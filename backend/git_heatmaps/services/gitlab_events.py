"""
GitLab event types, contribution rules and daily aggregation.

GitLab names actions differently in query parameters (`action=pushed`) and in
responses (`pushed to`, `pushed new`, ...). Response names are normalised to a
single logical action before deciding whether an event counts.
"""
import logging
from collections import Counter
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict

from ..models.contributions import DayCount, Provider, ProviderSeries
from ..utils import parse_day
from .filters import ContributionEventFilter, DateRangeFilter, DeduplicateEventsFilter

logger = logging.getLogger(__name__)

# The Events API does not reliably return every action type without an
# `action` filter, so each category is queried on its own.
API_ACTIONS = ("pushed", "commented", "merged", "approved", "created")

PER_PAGE = 100  # GitLab maximum
MAX_PAGES = 50  # per action category


class ContributionAction(str, Enum):
    PUSH = "push"
    COMMENT = "comment"
    CREATE = "create"
    MERGE = "merge"
    APPROVE = "approve"
    WIKI = "wiki"


ACTION_ALIASES: dict[str, ContributionAction] = {
    "pushed": ContributionAction.PUSH,
    "pushed to": ContributionAction.PUSH,
    "pushed new": ContributionAction.PUSH,
    "commented": ContributionAction.COMMENT,
    "commented on": ContributionAction.COMMENT,
    "created": ContributionAction.CREATE,
    "opened": ContributionAction.CREATE,
    "merged": ContributionAction.MERGE,
    "accepted": ContributionAction.MERGE,
    "approved": ContributionAction.APPROVE,
    "wiki_page": ContributionAction.WIKI,
}

# Profile and membership changes, not contributions
EXCLUDED_TARGET_TYPES = frozenset({"User"})


class PushData(BaseModel):
    commit_count: Optional[int] = None
    action: Optional[str] = None
    ref_type: Optional[str] = None
    commit_title: Optional[str] = None


class GitLabEvent(BaseModel):
    """An event from the Events API, snake_case as returned."""

    model_config = ConfigDict(frozen=True)

    id: int
    action_name: str
    target_type: Optional[str] = None
    created_at: str
    push_data: Optional[PushData] = None

    @property
    def day(self) -> date:
        # UTC date portion as reported, no timezone shifting
        return parse_day(self.created_at.split("T")[0])


def normalize_action(action_name: str) -> Optional[ContributionAction]:
    return ACTION_ALIASES.get(action_name.strip().lower())


def is_contribution_event(event: GitLabEvent) -> bool:
    if normalize_action(event.action_name) is None:
        return False
    if event.target_type is not None and event.target_type in EXCLUDED_TARGET_TYPES:
        return False
    return True


def event_weight(event: GitLabEvent) -> int:
    """
    Number of contributions an event represents.

    A push counts each of its commits, matching GitHub's graph. Pushes without
    a commit count, and every other event, count once.
    """
    if normalize_action(event.action_name) is ContributionAction.PUSH and event.push_data:
        commit_count = event.push_data.commit_count
        if commit_count and commit_count > 0:
            return commit_count
    return 1


def bucket_by_day(events: Iterable[GitLabEvent]) -> list[DayCount]:
    daily_map: dict[date, int] = {}
    for event in events:
        daily_map[event.day] = daily_map.get(event.day, 0) + event_weight(event)
    return [DayCount(day=d, count=c) for d, c in sorted(daily_map.items())]


def reconcile_events(
    events: Iterable[GitLabEvent],
    identity: str,
    from_day: date,
    to_day: date,
) -> ProviderSeries:
    """Turn a raw, possibly duplicated event stream into a clean daily series."""
    events = list(events)
    unique = DeduplicateEventsFilter().apply(events)
    contributions = ContributionEventFilter(is_contribution_event).apply(unique)
    logger.info(
        f"[gitlab] {identity}: {len(events)} raw events, {len(unique)} unique, "
        f"{len(contributions)} contributions"
    )
    if unique:
        log_event_breakdown(unique)

    days = DateRangeFilter(from_day, to_day).apply(bucket_by_day(contributions))
    return ProviderSeries(provider=Provider.GITLAB, identity=identity, days=tuple(days))


def log_event_breakdown(events: list[GitLabEvent]) -> None:
    if not logger.isEnabledFor(logging.DEBUG):
        return
    breakdown = Counter(f"{e.action_name}:{e.target_type}" for e in events)
    first = min(e.day for e in events)
    last = max(e.day for e in events)
    logger.debug(f"[gitlab] Event breakdown {dict(breakdown)} spanning {first} to {last}")
