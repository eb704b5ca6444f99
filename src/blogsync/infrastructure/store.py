"""Store — record-store access with cache invalidation tied to commits.

The Store is the single persistence dependency injected into every
service. It owns the SQLAlchemy engine and the cache registry. The
:meth:`Store.transaction` context manager couples each write with the
cache regions it affects:

- **DB**: Native SQLAlchemy ``engine.begin()`` with auto-commit/rollback.
- **Cache**: The declared regions, plus any added through
  :meth:`StoreTransaction.invalidate`, are cleared when the transaction
  ends (success or failure), after the commit has happened.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from blogsync.infrastructure.cache import CacheRegistry
from blogsync.infrastructure.database.engine import init_database
from blogsync.infrastructure.repositories.records import Records

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy import Connection
    from sqlalchemy.engine import Engine

    from blogsync.plugins.manager import PluginManager

logger = logging.getLogger(__name__)


@dataclass
class StoreTransaction:
    """Active write transaction: a connection plus pending invalidations."""

    conn: Connection
    records: Records
    _regions: set[str] = field(default_factory=set, repr=False)

    def invalidate(self, *regions: str) -> None:
        """Add cache regions to clear once this transaction ends."""
        self._regions.update(regions)

    @property
    def pending_invalidations(self) -> frozenset[str]:
        return frozenset(self._regions)


class Store:
    """Record store plus the read caches layered over it."""

    def __init__(self, engine: Engine, cache: CacheRegistry | None = None) -> None:
        self._engine = engine
        self._cache = cache or CacheRegistry()
        self._event_bus: PluginManager | None = None

    @classmethod
    def open(cls, url: str, cache: CacheRegistry | None = None) -> Store:
        """Create tables if needed and return a Store for *url*."""
        return cls(init_database(url), cache)

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def cache(self) -> CacheRegistry:
        return self._cache

    @property
    def event_bus(self) -> PluginManager | None:
        """The plugin manager events go to (None if not attached)."""
        return self._event_bus

    def attach_event_bus(self, bus: PluginManager) -> None:
        self._event_bus = bus

    @contextmanager
    def read(self) -> Iterator[Records]:
        """Read-only access (no transaction overhead)."""
        with self._engine.connect() as conn:
            yield Records(conn)

    @contextmanager
    def transaction(self, invalidates: Iterable[str] = ()) -> Iterator[StoreTransaction]:
        """Write transaction that invalidates cache regions when it ends.

        Regions are cleared in a ``finally`` block after ``engine.begin()``
        has committed (or rolled back), so no cached read taken before the
        commit survives it.

        Usage::

            with store.transaction(invalidates=ARTICLE_UPDATE_EVICTS) as txn:
                txn.records.update_article(article_id, title="New")
        """
        txn: StoreTransaction | None = None
        try:
            with self._engine.begin() as conn:
                txn = StoreTransaction(conn=conn, records=Records(conn), _regions=set(invalidates))
                yield txn
        finally:
            regions = txn.pending_invalidations if txn is not None else frozenset(invalidates)
            if regions:
                self._cache.invalidate(regions)

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self._engine.dispose()
