"""Command group: read-cache maintenance."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from blogsync.commands._base import BlogGroup

if TYPE_CHECKING:
    from blogsync.commands._context import AppContext


@click.group(cls=BlogGroup, examples="  blogsync cache clear\n  blogsync cache stats")
def cache() -> None:
    """Inspect or clear the read caches."""


@cache.command(examples="  blogsync cache clear")
@click.pass_obj
def clear(app: AppContext) -> None:
    """Clear every cache region."""
    from blogsync.services.cache import CacheService

    app.emit(CacheService(app.store).clear())


@cache.command(examples="  blogsync --json cache stats")
@click.pass_obj
def stats(app: AppContext) -> None:
    """Show entry counts and hit rates per region."""
    from blogsync.services.cache import CacheService

    app.emit(CacheService(app.store).stats())
