from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.contributions import Provider
from ..services.aggregator import ContributionAggregator
from ..services.cache import TokenCache
from ..services.providers import GitHubProvider, GitLabProvider


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # GitHub (GraphQL API, token required for every request)
    github_token: str = ""
    github_graphql_url: str = "https://api.github.com/graphql"

    # GitLab (REST v4 Events API)
    gitlab_token: str = ""
    gitlab_base_url: str = "https://gitlab.lrz.de"
    gitlab_per_page: int = 100
    gitlab_max_pages: int = 50

    # Transport timeout in seconds, applied to every upstream request
    request_timeout: float = 30.0

    # Per-provider cache TTLs in seconds
    github_cache_ttl: float = 300.0
    gitlab_cache_ttl: float = 300.0
    cache_max_size: int = 256

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


def build_aggregator(settings: Settings) -> ContributionAggregator:
    """Wire one shared cache, both provider adapters and their TTLs."""
    cache = TokenCache(max_size=settings.cache_max_size)
    adapters = {
        Provider.GITHUB: GitHubProvider(
            graphql_url=settings.github_graphql_url,
            timeout=settings.request_timeout,
        ),
        Provider.GITLAB: GitLabProvider(
            base_url=settings.gitlab_base_url,
            timeout=settings.request_timeout,
            per_page=settings.gitlab_per_page,
            max_pages=settings.gitlab_max_pages,
        ),
    }
    ttls = {
        Provider.GITHUB: settings.github_cache_ttl,
        Provider.GITLAB: settings.gitlab_cache_ttl,
    }
    return ContributionAggregator(cache, adapters, ttls)
