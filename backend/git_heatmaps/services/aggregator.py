import asyncio
import logging
import time
from datetime import date
from typing import Iterable, Mapping

from ..core.errors import InvalidCredential
from ..models.contributions import (
    AggregatedResult,
    ContributionQuery,
    Provider,
    ProviderSeries,
    SourceError,
    UnifiedDay,
)
from ..utils import day_span, iter_days
from .cache import TokenCache
from .fingerprint import build_cache_key, fingerprint
from .providers import ProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60.0


def merge_series(series: Iterable[ProviderSeries], from_day: date, to_day: date) -> list[UnifiedDay]:
    """
    Merge provider series into one entry per day of [from_day, to_day].

    Every provider gets a column, zero where it has no data. Days outside the
    range are ignored. The result does not depend on the order of `series`.
    """
    columns: dict[date, dict[Provider, int]] = {
        day: {p: 0 for p in Provider} for day in iter_days(from_day, to_day)
    }
    for s in series:
        for day in s.days:
            counts = columns.get(day.day)
            if counts is not None:
                counts[s.provider] = day.count

    return [
        UnifiedDay(day=day, counts=counts, total=sum(counts.values()))
        for day, counts in columns.items()
    ]


class ContributionAggregator:
    """
    Fetches per-provider series cache-first, concurrently, and merges them.

    The cache is injected and shared across requests; adapters are selected
    by provider and each provider caches under its own TTL.
    """

    def __init__(
        self,
        cache: TokenCache,
        adapters: Mapping[Provider, ProviderAdapter],
        ttls: Mapping[Provider, float] | None = None,
    ):
        self.cache = cache
        self.adapters = dict(adapters)
        self.ttls = dict(ttls or {})

    async def fetch_unified(self, query: ContributionQuery) -> AggregatedResult:
        # 1. Sources with a credential and a configured adapter
        requested = {
            provider: source
            for provider, source in sorted(query.sources.items(), key=lambda kv: kv[0].value)
            if source.credential is not None and provider in self.adapters
        }
        for provider, source in query.sources.items():
            if provider not in requested:
                logger.debug(f"[aggregator] {provider.value}: no credential or adapter, skipping")

        credentials = {p: s.credential.get_secret_value() for p, s in requested.items()}

        # 2. Resolve missing identities (fatal on failure)
        identities = await self._resolve_identities(
            {p: s.identity for p, s in requested.items()}, credentials
        )

        # 3. Cache lookup
        obtained: dict[Provider, ProviderSeries] = {}
        cached_sources: list[Provider] = []
        misses: dict[Provider, str] = {}
        for provider, source in requested.items():
            key = build_cache_key(
                provider, credentials[provider], query.from_day, query.to_day, identity=source.identity
            )
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"[aggregator] {provider.value}: cache hit for {identities[provider]}")
                obtained[provider] = cached
                cached_sources.append(provider)
            else:
                misses[provider] = key

        # 4. Fetch misses concurrently; every fetch settles before merge
        outcomes = await asyncio.gather(
            *(
                self._fetch_source(
                    provider, identities[provider], credentials[provider], query.from_day, query.to_day
                )
                for provider in misses
            ),
            return_exceptions=True,
        )

        errors: list[SourceError] = []
        for (provider, key), outcome in zip(misses.items(), outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                errors.append(SourceError(provider=provider, message=str(outcome) or type(outcome).__name__))
                continue
            obtained[provider] = outcome
            # 5. Only fresh results go back into the cache
            self.cache.set(key, outcome, self.ttls.get(provider, DEFAULT_TTL))

        # 6. Merge
        result = AggregatedResult(
            series=merge_series(obtained.values(), query.from_day, query.to_day),
            errors=errors,
            sources_requested=len(requested),
            sources_succeeded=len(obtained),
            cached_sources=cached_sources,
        )

        if result.all_failed:
            logger.error(f"[aggregator] All {result.sources_requested} requested sources failed")
        elif result.partial:
            logger.warning(
                f"[aggregator] Partial failure - {result.sources_succeeded}/{result.sources_requested} "
                f"sources succeeded: {[e.provider.value for e in errors]}"
            )
        return result

    async def _resolve_identities(
        self,
        identities: dict[Provider, str | None],
        credentials: dict[Provider, str],
    ) -> dict[Provider, str]:
        unresolved = [p for p, identity in identities.items() if not identity]
        outcomes = await asyncio.gather(
            *(self.adapters[p].resolve_identity(credentials[p]) for p in unresolved),
            return_exceptions=True,
        )

        resolved = dict(identities)
        for provider, outcome in zip(unresolved, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    f"[aggregator] {provider.value}: identity resolution failed for token "
                    f"{fingerprint(credentials[provider])}: {outcome}"
                )
                if isinstance(outcome, InvalidCredential):
                    raise outcome
                raise InvalidCredential(provider.value, str(outcome)) from outcome
            logger.info(f"[aggregator] {provider.value}: token {fingerprint(credentials[provider])} is {outcome}")
            resolved[provider] = outcome
        return resolved

    async def _fetch_source(
        self,
        provider: Provider,
        identity: str,
        credential: str,
        from_day: date,
        to_day: date,
    ) -> ProviderSeries:
        logger.info(
            f"[aggregator] {provider.value}: fetching {identity} "
            f"({from_day} to {to_day}, {day_span(from_day, to_day)} days)"
        )
        started = time.perf_counter()
        try:
            series = await self.adapters[provider].fetch_daily_activity(identity, credential, from_day, to_day)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.error(f"[aggregator] {provider.value}: error - {e} ({elapsed:.0f}ms)")
            raise
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"[aggregator] {provider.value}: success - {len(series.days)} days ({elapsed:.0f}ms)")
        return series
