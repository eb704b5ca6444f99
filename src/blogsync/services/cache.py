"""CacheService — inspect and clear the read-cache regions."""

from __future__ import annotations

import logging

from blogsync.services.base import BaseService
from blogsync.services.result import ServiceResult

logger = logging.getLogger(__name__)


class CacheService(BaseService):
    def clear(self) -> ServiceResult:
        """Clear every region; reports entries removed per region."""
        removed = self._store.cache.clear_all()
        logger.info("Cleared %d cached entries", sum(removed.values()))
        return ServiceResult(
            ok=True,
            op="clear_cache",
            data={"regions": removed, "cleared": sum(removed.values())},
        )

    def stats(self) -> ServiceResult:
        return ServiceResult(ok=True, op="cache_stats", data={"regions": self._store.cache.stats()})
