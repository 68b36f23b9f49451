import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

import httpx

from ..models.contributions import DayCount, Provider, ProviderSeries
from . import github, gitlab
from .filters import DateRangeFilter
from .gitlab_events import MAX_PAGES, PER_PAGE, reconcile_events

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """Abstract base class for contribution providers (GitHub, GitLab)."""

    provider: Provider

    @abstractmethod
    async def resolve_identity(self, credential: str) -> str:
        """Return the identity owning the credential. Raises InvalidCredential."""
        pass

    @abstractmethod
    async def fetch_daily_activity(
        self, identity: str, credential: str, from_day: date, to_day: date
    ) -> ProviderSeries:
        """Fetch daily contribution counts. Raises UpstreamFailure."""
        pass


class GitHubProvider(ProviderAdapter):
    """GitHub contribution calendar via the GraphQL API."""

    provider = Provider.GITHUB

    def __init__(
        self,
        graphql_url: str = github.GITHUB_GRAPHQL_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.options = {"url": graphql_url, "timeout": timeout, "transport": transport}

    async def resolve_identity(self, credential: str) -> str:
        return await github.fetch_viewer_login(credential, **self.options)

    async def fetch_daily_activity(
        self, identity: str, credential: str, from_day: date, to_day: date
    ) -> ProviderSeries:
        days: dict[date, DayCount] = {}
        for start, end in github.split_windows(from_day, to_day):
            for day in await github.fetch_contribution_calendar(
                identity, start, end, credential, **self.options
            ):
                days[day.day] = day

        clipped = DateRangeFilter(from_day, to_day).apply(sorted(days.values(), key=lambda d: d.day))
        return ProviderSeries(provider=self.provider, identity=identity, days=tuple(clipped))


class GitLabProvider(ProviderAdapter):
    """GitLab Events API, reconciled into daily counts."""

    provider = Provider.GITLAB

    def __init__(
        self,
        base_url: str = gitlab.DEFAULT_GITLAB_BASE_URL,
        timeout: float = 30.0,
        per_page: int = PER_PAGE,
        max_pages: int = MAX_PAGES,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        if per_page > PER_PAGE:
            logger.warning(f"[gitlab] per_page={per_page} is above the API maximum, using {PER_PAGE}")
            per_page = PER_PAGE
        self.per_page = per_page
        self.max_pages = max_pages
        self.transport = transport

    async def resolve_identity(self, credential: str) -> str:
        return await gitlab.fetch_current_user(
            credential, base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )

    async def fetch_daily_activity(
        self, identity: str, credential: str, from_day: date, to_day: date
    ) -> ProviderSeries:
        events = await gitlab.fetch_user_events(
            identity,
            credential,
            from_day,
            to_day,
            base_url=self.base_url,
            timeout=self.timeout,
            per_page=self.per_page,
            max_pages=self.max_pages,
            transport=self.transport,
        )
        return reconcile_events(events, identity, from_day, to_day)
