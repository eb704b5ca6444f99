"""Command group: sync stored articles from the content repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from blogsync.commands._base import BlogGroup

if TYPE_CHECKING:
    from blogsync.commands._context import AppContext


@click.group(
    cls=BlogGroup,
    examples="""\
  blogsync sync article 12
  blogsync sync all
  blogsync --json sync all""",
)
def sync() -> None:
    """Refresh articles from the mirrored repository."""


@sync.command(
    "article",
    examples="""\
  blogsync sync article 12
  blogsync --json sync article 12""",
)
@click.argument("article_id", type=int)
@click.pass_obj
def sync_article(app: AppContext, article_id: int) -> None:
    """Pull the repository and re-sync one article."""
    app.emit(app.sync_service().sync_article(article_id))


@sync.command(
    "all",
    examples="""\
  blogsync sync all
  blogsync -q sync all""",
)
@click.pass_obj
def sync_all(app: AppContext) -> None:
    """Pull once and re-sync every stored article."""
    app.emit(app.sync_service().sync_all())
