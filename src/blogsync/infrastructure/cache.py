"""Named read-cache regions with explicit, whole-region invalidation.

Reads are cache-aside: :meth:`CacheRegistry.cached` checks a region,
computes on a miss, and stores the result. Writes declare the regions
they affect (see the ``*_EVICTS`` sets below) on the store transaction,
which invalidates them after commit. Entries also expire after a TTL and
each region is capped at a maximum entry count with LRU eviction.

INVARIANT: Invalidation clears a region in full, never per-key.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# ── Region names ─────────────────────────────────────────────────────

ARTICLES = "articles"
ARTICLE_BY_SLUG = "article_by_slug"
RELATED_ARTICLES = "related_articles"
FEATURED_ARTICLES = "featured_articles"
LATEST_ARTICLES = "latest_articles"
CATEGORIES = "categories"
TAGS = "tags"
SERIES = "series"

ALL_REGIONS: tuple[str, ...] = (
    ARTICLES,
    ARTICLE_BY_SLUG,
    RELATED_ARTICLES,
    FEATURED_ARTICLES,
    LATEST_ARTICLES,
    CATEGORIES,
    TAGS,
    SERIES,
)

ARTICLE_REGIONS: frozenset[str] = frozenset(
    {ARTICLES, ARTICLE_BY_SLUG, RELATED_ARTICLES, FEATURED_ARTICLES, LATEST_ARTICLES}
)

# ── Invalidation sets per mutating operation ─────────────────────────

ARTICLE_CREATE_EVICTS: frozenset[str] = frozenset(ALL_REGIONS)
ARTICLE_UPDATE_EVICTS: frozenset[str] = ARTICLE_REGIONS
ARTICLE_PUBLISH_EVICTS: frozenset[str] = ARTICLE_REGIONS
ARTICLE_DELETE_EVICTS: frozenset[str] = ARTICLE_REGIONS
SYNC_EVICTS: frozenset[str] = ARTICLE_REGIONS
CATEGORY_EVICTS: frozenset[str] = frozenset({CATEGORIES, ARTICLES, ARTICLE_BY_SLUG})
TAG_EVICTS: frozenset[str] = frozenset({TAGS, ARTICLES, ARTICLE_BY_SLUG})
SERIES_EVICTS: frozenset[str] = frozenset({SERIES, ARTICLES, ARTICLE_BY_SLUG})


class RegionCache:
    """Bounded in-memory region with TTL expiry and LRU eviction.

    Thread-safe for single-process use. Expiry is checked lazily on read.

    Attributes:
        name: Region name (for logging and stats).
        max_entries: Entries kept before the least recently used is evicted.
        ttl_seconds: Lifetime of an entry from the time it was written.
    """

    def __init__(
        self,
        name: str,
        *,
        max_entries: int = 2000,
        ttl_seconds: float = 86400,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._store: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)``. Cached ``None`` values count as found."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return False, None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                self._misses += 1
                return False, None
            self._store.move_to_end(key)
            self._hits += 1
            return True, value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._store:
                self._store.move_to_end(key)
            self._store[key] = (value, self._clock() + self.ttl_seconds)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._store), "hits": self._hits, "misses": self._misses}


class CacheRegistry:
    """The fixed set of named regions shared by all services."""

    def __init__(
        self,
        *,
        max_entries: int = 2000,
        ttl_seconds: float = 86400,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._regions: dict[str, RegionCache] = {
            name: RegionCache(name, max_entries=max_entries, ttl_seconds=ttl_seconds, clock=clock)
            for name in ALL_REGIONS
        }

    def region(self, name: str) -> RegionCache:
        """Look up a region by name. Raises KeyError for unknown names."""
        return self._regions[name]

    def cached(self, region: str, key: str, compute: Callable[[], _T]) -> _T:
        """Cache-aside read: return the cached value or compute and store it."""
        cache = self._regions[region]
        found, value = cache.get(key)
        if found:
            return value  # type: ignore[no-any-return]
        value = compute()
        cache.set(key, value)
        return value

    def invalidate(self, regions: Iterable[str]) -> None:
        """Clear each named region in full."""
        for name in sorted(set(regions)):
            removed = self._regions[name].clear()
            logger.debug("Invalidated cache region %s (%d entries)", name, removed)

    def clear_all(self) -> dict[str, int]:
        """Clear every region. Returns entries removed per region."""
        return {name: cache.clear() for name, cache in self._regions.items()}

    def stats(self) -> dict[str, dict[str, int]]:
        return {name: cache.stats() for name, cache in self._regions.items()}
