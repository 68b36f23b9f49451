import itertools
import logging
import math
import threading
import time
import warnings
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from ..core.errors import CacheCapacityMisconfigured, InvalidTtl

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    hit_rate: float
    evictions: int
    keys: list[str]


class TokenCache(Generic[V]):
    """
    In-memory key/value cache with per-entry TTL and optional LRU bound.

    Expired entries are removed lazily on `get`. When `max_size` is set and a
    new key arrives at capacity, the least recently accessed entry is evicted.
    Entries and access stamps live in two dicts that are only ever mutated
    together under one lock.
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        default_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size is not None and (not isinstance(max_size, int) or max_size <= 0):
            warnings.warn(
                f"Cache max_size must be a positive integer, got {max_size!r}; cache is unbounded",
                CacheCapacityMisconfigured,
                stacklevel=2,
            )
            logger.warning(f"[cache] Ignoring invalid max_size={max_size!r}, cache is unbounded")
            max_size = None

        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry[V]] = {}
        self._access: dict[str, int] = {}
        # Logical access clock for LRU order
        self._ticks = itertools.count()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[V]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                logger.debug(f"[cache] MISS key={key} size={len(self._entries)}")
                return None

            now = self._clock()
            if now >= entry.expires_at:
                self._remove(key)
                self._misses += 1
                logger.debug(f"[cache] EXPIRED key={key} size={len(self._entries)}")
                return None

            self._hits += 1
            self._access[key] = next(self._ticks)
            logger.debug(f"[cache] HIT key={key} expires_in={entry.expires_at - now:.1f}s")
            return entry.value

    def set(self, key: str, value: V, ttl: Optional[float] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl is None or not math.isfinite(ttl) or ttl <= 0:
            raise InvalidTtl(f"Invalid TTL for cache key {key!r}: ttl must be a positive number")

        with self._lock:
            if (
                self.max_size is not None
                and key not in self._entries
                and len(self._entries) >= self.max_size
            ):
                self._evict_lru()

            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
            self._access[key] = next(self._ticks)
            logger.debug(f"[cache] SET key={key} ttl={ttl}s size={len(self._entries)}")

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = key in self._entries
            self._remove(key)
        logger.debug(f"[cache] DELETE key={key} existed={existed}")
        return existed

    def clear(self) -> None:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._access.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
        logger.debug(f"[cache] CLEAR removed {removed} entries")

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
                evictions=self._evictions,
                keys=list(self._entries),
            )

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        # An empty cache is still a cache
        return True

    def __contains__(self, key: str) -> bool:
        # Presence only; does not check expiry or touch LRU order
        return key in self._entries

    # Callers must hold self._lock

    def _remove(self, key: str) -> None:
        self._entries.pop(key, None)
        self._access.pop(key, None)

    def _evict_lru(self) -> None:
        if not self._access:
            return
        victim = min(self._access, key=self._access.__getitem__)
        self._remove(victim)
        self._evictions += 1
        logger.debug(f"[cache] EVICT key={victim} (least recently used)")
