from fastapi import APIRouter, Depends

from git_heatmaps.core.dependencies import get_aggregator
from git_heatmaps.services.aggregator import ContributionAggregator

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok"}


@router.get("/cache/stats")
async def cache_stats(aggregator: ContributionAggregator = Depends(get_aggregator)):
    """Size, hit rate and keys of the shared source cache. Keys hold fingerprints only."""
    stats = aggregator.cache.stats()
    return {
        "size": stats.size,
        "hits": stats.hits,
        "misses": stats.misses,
        "hitRate": stats.hit_rate,
        "evictions": stats.evictions,
        "keys": stats.keys,
    }
