import logging
from datetime import date, timedelta
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..core.errors import InvalidCredential, UpstreamFailure
from .gitlab_events import API_ACTIONS, MAX_PAGES, PER_PAGE, GitLabEvent

logger = logging.getLogger(__name__)

DEFAULT_GITLAB_BASE_URL = "https://gitlab.lrz.de"


def _client(
    base_url: str,
    token: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport],
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=f"{base_url.rstrip('/')}/api/v4",
        headers={
            "Accept": "application/json",
            "User-Agent": "git-heatmaps",
            "PRIVATE-TOKEN": token,
        },
        timeout=timeout,
        transport=transport,
    )


async def _get(client: httpx.AsyncClient, path: str, params: Optional[dict] = None) -> httpx.Response:
    try:
        response = await client.get(path, params=params)
    except httpx.TimeoutException as e:
        raise UpstreamFailure(f"GitLab request timed out: GET {path}") from e
    except httpx.HTTPError as e:
        raise UpstreamFailure(f"GitLab request failed: {e}") from e
    logger.debug(f"[gitlab] GET {path} {params or ''} -> {response.status_code}")
    return response


def build_date_params(from_day: date, to_day: date) -> dict[str, str]:
    """The API's after/before bounds are exclusive, so widen by one day on each side."""
    return {
        "after": (from_day - timedelta(days=1)).isoformat(),
        "before": (to_day + timedelta(days=1)).isoformat(),
    }


async def fetch_current_user(
    token: str,
    *,
    base_url: str = DEFAULT_GITLAB_BASE_URL,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Resolve the username that owns a token."""
    async with _client(base_url, token, timeout, transport) as client:
        response = await _get(client, "/user")

    if response.status_code in (401, 403):
        raise InvalidCredential("gitlab", f"token rejected ({response.status_code})")
    if response.status_code >= 400:
        raise UpstreamFailure(f"GitLab API error: {response.status_code} {response.reason_phrase}")

    try:
        username = response.json().get("username")
    except (ValueError, AttributeError) as e:
        raise InvalidCredential("gitlab", "unexpected response from /user") from e
    if not username:
        raise InvalidCredential("gitlab", "token is not associated with a user")
    return username


async def fetch_events_by_action(
    client: httpx.AsyncClient,
    username: str,
    action: str,
    date_params: dict[str, str],
    per_page: int = PER_PAGE,
    max_pages: int = MAX_PAGES,
) -> list[GitLabEvent]:
    """Fetch every page of one action category, up to max_pages."""
    events: list[GitLabEvent] = []
    path = f"/users/{quote(username, safe='')}/events"

    for page in range(1, max_pages + 1):
        response = await _get(
            client,
            path,
            {**date_params, "action": action, "per_page": per_page, "page": page},
        )
        if response.status_code >= 400:
            raise UpstreamFailure(
                f"GitLab API error: {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamFailure("GitLab API returned a non-JSON response") from e
        if not isinstance(payload, list):
            raise UpstreamFailure(f"GitLab API returned unexpected data format for user: {username}")

        try:
            events.extend(GitLabEvent.model_validate(item) for item in payload)
        except ValidationError as e:
            raise UpstreamFailure(f"GitLab API returned a malformed event: {e.errors()[0]['msg']}") from e

        if len(payload) < per_page or not response.headers.get("X-Next-Page"):
            break
    else:
        logger.warning(f"[gitlab] {username}: '{action}' stopped at page limit {max_pages}")

    return events


async def fetch_user_events(
    username: str,
    token: str,
    from_day: date,
    to_day: date,
    *,
    base_url: str = DEFAULT_GITLAB_BASE_URL,
    timeout: float = 30.0,
    per_page: int = PER_PAGE,
    max_pages: int = MAX_PAGES,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[GitLabEvent]:
    """
    Fetch raw events for every contribution category.

    Categories overlap and the result may hold the same event more than once;
    deduplication happens during reconciliation.
    """
    date_params = build_date_params(from_day, to_day)
    logger.info(
        f"[gitlab] Fetching events for {username} "
        f"(after {date_params['after']}, before {date_params['before']})"
    )

    events: list[GitLabEvent] = []
    async with _client(base_url, token, timeout, transport) as client:
        for action in API_ACTIONS:
            batch = await fetch_events_by_action(
                client, username, action, date_params, per_page=per_page, max_pages=max_pages
            )
            logger.debug(f"[gitlab] {username}: action '{action}' returned {len(batch)} events")
            events.extend(batch)
    return events
