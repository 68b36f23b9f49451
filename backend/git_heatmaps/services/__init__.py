from .aggregator import ContributionAggregator, merge_series
from .cache import TokenCache
from .fingerprint import build_cache_key, fingerprint
from .providers import GitHubProvider, GitLabProvider, ProviderAdapter

__all__ = [
    "ContributionAggregator",
    "merge_series",
    "TokenCache",
    "build_cache_key",
    "fingerprint",
    "GitHubProvider",
    "GitLabProvider",
    "ProviderAdapter",
]
