"""Plugin discovery, registration, and event dispatch.

Discovery uses pluggy's setuptools entry points for the
``blogsync.plugins`` group.
"""

from __future__ import annotations

import logging
from typing import Any

import pluggy

from blogsync.plugins.hookspecs import BlogSyncHookSpec

PROJECT_NAME = "blogsync"
ENTRY_POINT_GROUP = "blogsync.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Wraps :class:`pluggy.PluginManager` with blogsync's hook specs."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(BlogSyncHookSpec)
        self._loaded = False

    def discover_and_load(self) -> list[str]:
        """Load installed plugins; returns the names of all registered plugins."""
        count = self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        logger.debug("Loaded %d plugin(s) from entry points", count)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> list[Any]:
        """Call every implementation of *hook_name* with *payload*.

        Raises:
            AttributeError: *hook_name* is not a known hook.
        """
        caller = getattr(self._pm.hook, hook_name)
        return list(caller(**payload))
