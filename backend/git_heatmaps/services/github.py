import logging
from datetime import date, timedelta
from typing import Any, Optional

import httpx

from ..core.errors import InvalidCredential, UpstreamFailure
from ..models.contributions import DayCount
from ..utils import parse_day

logger = logging.getLogger(__name__)

GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"

# contributionsCollection rejects ranges longer than one year
MAX_WINDOW_DAYS = 365

VIEWER_QUERY = """
query {
    viewer { login }
}
"""

CALENDAR_QUERY = """
query($username: String!, $from: DateTime!, $to: DateTime!) {
    user(login: $username) {
        contributionsCollection(from: $from, to: $to) {
            contributionCalendar {
                totalContributions
                weeks {
                    contributionDays { date contributionCount }
                }
            }
        }
    }
}
"""


async def post_graphql(
    query: str,
    token: str,
    variables: Optional[dict[str, Any]] = None,
    *,
    url: str = GITHUB_GRAPHQL_URL,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """POST a GraphQL query. Transport failures and timeouts become UpstreamFailure."""
    try:
        async with httpx.AsyncClient(transport=transport) as client:
            return await client.post(
                url,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                    "User-Agent": "git-heatmaps",
                },
                json={"query": query, "variables": variables or {}},
                timeout=timeout,
            )
    except httpx.TimeoutException as e:
        raise UpstreamFailure(f"GitHub request timed out after {timeout}s") from e
    except httpx.HTTPError as e:
        raise UpstreamFailure(f"GitHub request failed: {e}") from e


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        result = response.json()
    except ValueError as e:
        raise UpstreamFailure("GitHub API returned a non-JSON response") from e
    if not isinstance(result, dict):
        raise UpstreamFailure("GitHub API returned an unexpected payload")
    return result


async def fetch_viewer_login(token: str, **options: Any) -> str:
    """Resolve the login that owns a token."""
    response = await post_graphql(VIEWER_QUERY, token, **options)
    if response.status_code in (401, 403):
        raise InvalidCredential("github", f"token rejected ({response.status_code})")
    if response.status_code >= 400:
        raise UpstreamFailure(f"GitHub API error: {response.status_code}")

    result = _json(response)
    if result.get("errors"):
        raise InvalidCredential("github", result["errors"][0].get("message", "unknown error"))

    login = (result.get("data") or {}).get("viewer", {}).get("login")
    if not login:
        raise InvalidCredential("github", "token is not associated with a user")
    return login


async def fetch_contribution_calendar(
    username: str,
    start: date,
    end: date,
    token: str,
    **options: Any,
) -> list[DayCount]:
    """Fetch one calendar window (at most a year) as day counts."""
    variables = {
        "username": username,
        "from": f"{start.isoformat()}T00:00:00Z",
        "to": f"{end.isoformat()}T23:59:59Z",
    }
    response = await post_graphql(CALENDAR_QUERY, token, variables, **options)
    if response.status_code >= 400:
        raise UpstreamFailure(f"GitHub API error: {response.status_code}")

    result = _json(response)
    if result.get("errors"):
        messages = "; ".join(e.get("message", "unknown error") for e in result["errors"])
        raise UpstreamFailure(f"GitHub API error: {messages}")

    data = result.get("data")
    if not data:
        raise UpstreamFailure("GitHub API returned no data")
    user = data.get("user")
    if not user:
        raise UpstreamFailure(f"GitHub user not found: {username}")

    calendar = user.get("contributionsCollection", {}).get("contributionCalendar", {})
    days = []
    try:
        for week in calendar.get("weeks", []):
            for day in week.get("contributionDays", []):
                days.append(DayCount(day=parse_day(day["date"]), count=day["contributionCount"]))
    except (KeyError, TypeError, ValueError) as e:
        raise UpstreamFailure(f"GitHub API returned a malformed calendar: {e}") from e

    logger.debug(
        f"[github] {username}: {len(days)} days, "
        f"{calendar.get('totalContributions', 0)} contributions ({start} to {end})"
    )
    return days


def split_windows(start: date, end: date, max_days: int = MAX_WINDOW_DAYS) -> list[tuple[date, date]]:
    """Split an inclusive range into consecutive windows of at most max_days days."""
    windows = []
    current = start
    while current <= end:
        window_end = min(current + timedelta(days=max_days - 1), end)
        windows.append((current, window_end))
        current = window_end + timedelta(days=1)
    return windows
