"""GitHub transport and adapter tests against httpx.MockTransport."""
import json
from datetime import date, timedelta

import httpx
import pytest

from git_heatmaps.core.errors import InvalidCredential, UpstreamFailure
from git_heatmaps.services.github import fetch_contribution_calendar, fetch_viewer_login, split_windows
from git_heatmaps.services.providers import GitHubProvider


def calendar_response(days):
    return {
        "data": {
            "user": {
                "contributionsCollection": {
                    "contributionCalendar": {
                        "totalContributions": sum(c for _, c in days),
                        "weeks": [
                            {"contributionDays": [{"date": d, "contributionCount": c} for d, c in days]}
                        ],
                    }
                }
            }
        }
    }


class FakeGitHub:
    """Answers the viewer query and returns the window edges for calendar queries."""

    def __init__(self, login="octocat", status=200):
        self.login = login
        self.status = status
        self.calls: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        if self.status != 200:
            return httpx.Response(self.status, json={"message": "Bad credentials"})
        if "viewer" in body["query"]:
            return httpx.Response(200, json={"data": {"viewer": {"login": self.login}}})

        start = body["variables"]["from"][:10]
        end = body["variables"]["to"][:10]
        days = [(start, 1)] if start == end else [(start, 1), (end, 2)]
        return httpx.Response(200, json=calendar_response(days))


class TestViewer:

    @pytest.mark.asyncio
    async def test_resolves_login(self):
        fake = FakeGitHub()
        login = await fetch_viewer_login("ghp_x", transport=httpx.MockTransport(fake))
        assert login == "octocat"

    @pytest.mark.asyncio
    async def test_bad_token(self):
        fake = FakeGitHub(status=401)
        with pytest.raises(InvalidCredential, match="github"):
            await fetch_viewer_login("ghp_bad", transport=httpx.MockTransport(fake))


class TestCalendar:

    @pytest.mark.asyncio
    async def test_flattens_weeks(self):
        def handler(request):
            return httpx.Response(200, json=calendar_response([("2025-06-01", 3), ("2025-06-02", 0)]))

        days = await fetch_contribution_calendar(
            "octocat", date(2025, 6, 1), date(2025, 6, 2), "ghp_x", transport=httpx.MockTransport(handler)
        )
        assert [(d.day, d.count) for d in days] == [(date(2025, 6, 1), 3), (date(2025, 6, 2), 0)]

    @pytest.mark.asyncio
    async def test_graphql_errors(self):
        def handler(request):
            return httpx.Response(200, json={"errors": [{"message": "Something went wrong"}]})

        with pytest.raises(UpstreamFailure, match="Something went wrong"):
            await fetch_contribution_calendar(
                "octocat", date(2025, 6, 1), date(2025, 6, 2), "ghp_x", transport=httpx.MockTransport(handler)
            )

    @pytest.mark.asyncio
    async def test_unknown_user(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"user": None}})

        with pytest.raises(UpstreamFailure, match="not found"):
            await fetch_contribution_calendar(
                "ghost", date(2025, 6, 1), date(2025, 6, 2), "ghp_x", transport=httpx.MockTransport(handler)
            )

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(UpstreamFailure, match="timed out"):
            await fetch_contribution_calendar(
                "octocat", date(2025, 6, 1), date(2025, 6, 2), "ghp_x",
                timeout=0.5, transport=httpx.MockTransport(handler),
            )


class TestWindows:

    def test_single_year_is_one_window(self):
        assert split_windows(date(2025, 1, 1), date(2025, 12, 31)) == [(date(2025, 1, 1), date(2025, 12, 31))]

    def test_windows_are_contiguous_and_bounded(self):
        start, end = date(2022, 3, 1), date(2025, 2, 10)
        windows = split_windows(start, end)
        assert windows[0][0] == start
        assert windows[-1][1] == end
        for (s, e), (next_s, _) in zip(windows, windows[1:]):
            assert next_s == e + timedelta(days=1)
        assert all((e - s).days + 1 <= 365 for s, e in windows)


class TestGitHubProvider:

    @pytest.mark.asyncio
    async def test_multi_year_range_is_fetched_per_window(self):
        fake = FakeGitHub()
        adapter = GitHubProvider(transport=httpx.MockTransport(fake))

        series = await adapter.fetch_daily_activity("octocat", "ghp_x", date(2023, 1, 1), date(2024, 12, 31))

        assert len(fake.calls) == 3
        assert [(d.day, d.count) for d in series.days] == [
            (date(2023, 1, 1), 1),
            (date(2023, 12, 31), 2),
            (date(2024, 1, 1), 1),
            (date(2024, 12, 30), 2),
            (date(2024, 12, 31), 1),
        ]

    @pytest.mark.asyncio
    async def test_sends_bearer_token(self):
        seen = []

        def handler(request):
            seen.append(request.headers["Authorization"])
            return httpx.Response(200, json={"data": {"viewer": {"login": "octocat"}}})

        adapter = GitHubProvider(transport=httpx.MockTransport(handler))
        assert await adapter.resolve_identity("ghp_x") == "octocat"
        assert seen == ["Bearer ghp_x"]
