"""AppContext — settings, lazily built resources, and result emission.

Created once by the root group and passed to subcommands with
``@click.pass_obj``. The store and mirror are only opened when a command
needs them, so ``--help`` never touches the database or git.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING

import click

from blogsync.config.logging import configure_logging
from blogsync.domain.errors import MirrorError
from blogsync.output.formatters import OutputSettings, format_result
from blogsync.services.result import ServiceResult

if TYPE_CHECKING:
    from blogsync.config.settings import BlogSyncSettings
    from blogsync.infrastructure.mirror import RepositoryMirror
    from blogsync.infrastructure.providers import ImageSearch
    from blogsync.infrastructure.store import Store
    from blogsync.services.articles import ArticleService
    from blogsync.services.sync import SyncService
    from blogsync.services.taxonomy import TaxonomyUpsert

logger = logging.getLogger(__name__)


class AppContext:
    """Shared state for one CLI invocation."""

    def __init__(self, settings: BlogSyncSettings, *, rng: random.Random | None = None) -> None:
        self.settings = settings
        self.rng = rng or random.Random()
        self._store: Store | None = None
        self._mirror: RepositoryMirror | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def store(self) -> Store:
        """The record store (opened on first access)."""
        if self._store is None:
            from blogsync.infrastructure.cache import CacheRegistry
            from blogsync.infrastructure.store import Store

            registry = CacheRegistry(
                max_entries=self.settings.cache.max_entries,
                ttl_seconds=self.settings.cache.ttl_seconds,
            )
            self._store = Store.open(self.settings.database_url, registry)
            if self.settings.plugins.enabled:
                from blogsync.plugins import PluginManager

                plugins = PluginManager()
                names = plugins.discover_and_load()
                logger.debug("Plugins loaded: %s", names)
                self._store.attach_event_bus(plugins)
        return self._store

    @property
    def mirror(self) -> RepositoryMirror:
        """The initialized mirror. Initialization failure exits with code 1."""
        if self._mirror is None:
            from blogsync.infrastructure.mirror import RepositoryMirror

            mirror = RepositoryMirror(self.settings.resolved_mirror_config())
            try:
                mirror.initialize()
            except MirrorError as exc:
                self.emit(ServiceResult.failure("initialize_mirror", exc))
            self._mirror = mirror
        return self._mirror

    def taxonomy(self) -> TaxonomyUpsert:
        from blogsync.services.taxonomy import TaxonomyUpsert

        return TaxonomyUpsert(self.rng)

    def image_search(self) -> ImageSearch:
        from blogsync.infrastructure.providers import NullImageSearch, PexelsImageSearch

        images = self.settings.images
        if not images.pexels_api_key:
            return NullImageSearch()
        return PexelsImageSearch(
            images.pexels_api_key, timeout=images.timeout_seconds, rng=self.rng
        )

    def article_service(self, *, with_mirror: bool = True) -> ArticleService:
        """Article service; read-only commands skip opening the mirror."""
        from blogsync.services.articles import ArticleService

        return ArticleService(
            self.store,
            self.mirror if with_mirror else None,
            taxonomy=self.taxonomy(),
            image_search=self.image_search(),
            config=self.settings.articles,
        )

    def sync_service(self) -> SyncService:
        from blogsync.services.sync import SyncOrchestrator, SyncService

        orchestrator = SyncOrchestrator(self.store, self.mirror, self.taxonomy())
        return SyncService(self.store, orchestrator)

    def close(self) -> None:
        if self._mirror is not None:
            self._mirror.close()
        if self._store is not None:
            self._store.close()

    def emit(self, result: ServiceResult) -> None:
        """Print *result*; failures go to stderr and exit with code 1.

        Warnings go to stderr so piped output stays clean (in JSON mode
        they are already part of the payload).
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
