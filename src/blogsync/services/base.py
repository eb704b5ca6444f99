"""BaseService — common foundation for blogsync services.

Every service receives the :class:`Store`. Services own their transaction
boundaries via ``self._store.transaction(invalidates=...)`` and convert
:class:`~blogsync.domain.errors.BlogSyncError` into failed results.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from blogsync.infrastructure.store import Store

logger = logging.getLogger(__name__)


class BaseService:
    """Base for service-layer classes.

    Usage::

        class CategoryService(BaseService):
            def create_category(self, name: str) -> ServiceResult:
                with self._store.transaction(invalidates=CATEGORY_EVICTS) as txn:
                    ...
    """

    def __init__(self, store: Store) -> None:
        self._store = store

    def _dispatch_event(self, hook_name: str, payload: dict[str, Any], warnings: list[str]) -> None:
        """Notify plugins of a lifecycle event. No-op without an event bus.

        INVARIANT: Plugin failures are warnings, never errors.
        """
        bus = self._store.event_bus
        if bus is None:
            return
        try:
            bus.dispatch(hook_name, payload)
        except Exception:
            logger.debug("Event dispatch failed for %s", hook_name, exc_info=True)
            warnings.append(f"Event dispatch failed for {hook_name}")
