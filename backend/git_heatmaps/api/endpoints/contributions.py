from fastapi import APIRouter, Depends, Header

from git_heatmaps.core.config import Settings, get_settings
from git_heatmaps.core.dependencies import get_aggregator
from git_heatmaps.core.errors import BadRequest
from git_heatmaps.models.contributions import (
    AggregatedResult,
    ContributionQuery,
    Provider,
    SourceQuery,
)
from git_heatmaps.services.aggregator import ContributionAggregator
from git_heatmaps.utils import parse_period

router = APIRouter()


def _source(username: str | None, request_token: str | None, server_token: str) -> SourceQuery | None:
    # The server's own token only stands in when the caller names a user
    username = username.strip() if username else None
    token = request_token or (server_token if username else None)
    if not token:
        return None
    return SourceQuery(identity=username or None, credential=token)


def result_to_dict(result: AggregatedResult) -> dict:
    return {
        "from": result.series[0].day.isoformat() if result.series else None,
        "to": result.series[-1].day.isoformat() if result.series else None,
        "totalContributions": result.total,
        "days": [
            {
                "date": d.day.isoformat(),
                "github": d.counts.get(Provider.GITHUB, 0),
                "gitlab": d.counts.get(Provider.GITLAB, 0),
                "total": d.total,
            }
            for d in result.series
        ],
        "errors": [{"source": e.provider.value, "message": e.message} for e in result.errors],
        "sourcesRequested": result.sources_requested,
        "sourcesSucceeded": result.sources_succeeded,
        "cachedSources": [p.value for p in result.cached_sources],
    }


@router.get("/contributions")
async def get_contributions(
    github_username: str | None = None,
    gitlab_username: str | None = None,
    period: str = "pastyear",
    x_github_token: str | None = Header(default=None),
    x_gitlab_token: str | None = Header(default=None),
    aggregator: ContributionAggregator = Depends(get_aggregator),
    settings: Settings = Depends(get_settings),
):
    """Unified daily contributions across GitHub and GitLab for a period."""
    try:
        from_day, to_day = parse_period(period)
    except ValueError as e:
        raise BadRequest(str(e))

    candidates = {
        Provider.GITHUB: _source(github_username, x_github_token, settings.github_token),
        Provider.GITLAB: _source(gitlab_username, x_gitlab_token, settings.gitlab_token),
    }
    sources = {p: s for p, s in candidates.items() if s is not None}
    if not sources:
        raise BadRequest(
            "At least one source is required. Provide github_username and/or gitlab_username "
            "with a token, or an X-GitHub-Token / X-GitLab-Token header."
        )

    result = await aggregator.fetch_unified(
        ContributionQuery(sources=sources, from_day=from_day, to_day=to_day)
    )
    result.raise_for_upstream()
    return result_to_dict(result)
