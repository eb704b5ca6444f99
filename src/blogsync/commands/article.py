"""Command group: create, edit, publish, and read articles."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click

from blogsync.commands._base import BlogGroup
from blogsync.domain.resolver import ExplicitMetadata

if TYPE_CHECKING:
    from blogsync.commands._context import AppContext

_ARTICLE_EXAMPLES = """\
  blogsync article create getting-started
  blogsync article import drafts/new-post.md --category Backend
  blogsync article list --status published --tag python --tag testing
  blogsync article show getting-started --preview
  blogsync article publish 12"""


def _explicit(
    title: str | None,
    description: str | None,
    cover_image: str | None,
    category_id: int | None,
    category: str | None,
    tag_ids: tuple[int, ...],
    tags: tuple[str, ...],
    series_id: int | None,
) -> ExplicitMetadata:
    return ExplicitMetadata(
        title=title,
        description=description,
        cover_image=cover_image,
        category_id=category_id,
        category=category,
        tag_ids=list(tag_ids),
        tags=list(tags),
        series_id=series_id,
    )


def _metadata_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--title", default=None, help="Title (overrides frontmatter)."),
        click.option("--description", default=None, help="Short description."),
        click.option("--cover-image", default=None, help="Cover image URL."),
        click.option("--category-id", type=int, default=None, help="Existing category id."),
        click.option("--category", default=None, help="Category name (created if missing)."),
        click.option("--tag-id", "tag_ids", type=int, multiple=True, help="Tag id (repeatable)."),
        click.option("--tag", "tags", multiple=True, help="Tag name (repeatable)."),
        click.option("--series-id", type=int, default=None, help="Series id."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


@click.group(cls=BlogGroup, examples=_ARTICLE_EXAMPLES)
def article() -> None:
    """Manage blog articles."""


@article.command(
    examples="""\
  blogsync article create getting-started
  blogsync article create getting-started --title "Getting Started" --tag intro
  blogsync --json article create release-notes --category-id 3 --series-id 1""",
)
@click.argument("slug")
@_metadata_options
@click.pass_obj
def create(
    app: AppContext,
    slug: str,
    title: str | None,
    description: str | None,
    cover_image: str | None,
    category_id: int | None,
    category: str | None,
    tag_ids: tuple[int, ...],
    tags: tuple[str, ...],
    series_id: int | None,
) -> None:
    """Create an article from <content_path>/SLUG.md in the repository."""
    explicit = _explicit(
        title, description, cover_image, category_id, category, tag_ids, tags, series_id
    )
    app.emit(app.article_service().create_from_mirror(slug, explicit))


@article.command(
    "import",
    examples="""\
  blogsync article import drafts/new-post.md
  blogsync article import notes.md --title "Release Notes" --category News""",
)
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_metadata_options
@click.pass_obj
def import_(
    app: AppContext,
    file: Path,
    title: str | None,
    description: str | None,
    cover_image: str | None,
    category_id: int | None,
    category: str | None,
    tag_ids: tuple[int, ...],
    tags: tuple[str, ...],
    series_id: int | None,
) -> None:
    """Copy a local markdown FILE into the repository and create it."""
    explicit = _explicit(
        title, description, cover_image, category_id, category, tag_ids, tags, series_id
    )
    text = file.read_text(encoding="utf-8")
    app.emit(app.article_service().import_document(text, explicit))


@article.command(
    examples="""\
  blogsync article update 12 --title "New Title"
  blogsync article update 12 --tag-id 3 --tag-id 5
  blogsync article update 12 --clear-tags""",
)
@click.argument("article_id", type=int)
@click.option("--title", default=None, help="New title.")
@click.option("--description", default=None, help="New description.")
@click.option("--cover-image", default=None, help="New cover image URL.")
@click.option("--category-id", type=int, default=None, help="Move to this category.")
@click.option("--series-id", type=int, default=None, help="Attach to this series.")
@click.option("--tag-id", "tag_ids", type=int, multiple=True, help="Replace tags (repeatable).")
@click.option("--clear-tags", is_flag=True, help="Remove every tag.")
@click.pass_obj
def update(
    app: AppContext,
    article_id: int,
    title: str | None,
    description: str | None,
    cover_image: str | None,
    category_id: int | None,
    series_id: int | None,
    tag_ids: tuple[int, ...],
    clear_tags: bool,
) -> None:
    """Update an article's metadata and write it back to the repository."""
    new_tags: list[int] | None = None
    if clear_tags:
        new_tags = []
    elif tag_ids:
        new_tags = list(tag_ids)
    if all(
        v is None for v in (title, description, cover_image, category_id, series_id, new_tags)
    ):
        click.echo("No changes specified. Use --help for options.", err=True)
        raise SystemExit(1)
    app.emit(
        app.article_service().update_article(
            article_id,
            title=title,
            description=description,
            cover_image=cover_image,
            category_id=category_id,
            series_id=series_id,
            tag_ids=new_tags,
        )
    )


@article.command(examples="  blogsync article publish 12")
@click.argument("article_id", type=int)
@click.pass_obj
def publish(app: AppContext, article_id: int) -> None:
    """Publish a draft."""
    app.emit(app.article_service(with_mirror=False).publish(article_id))


@article.command(examples="  blogsync article unpublish 12")
@click.argument("article_id", type=int)
@click.pass_obj
def unpublish(app: AppContext, article_id: int) -> None:
    """Return a published article to draft."""
    app.emit(app.article_service(with_mirror=False).unpublish(article_id))


@article.command(examples="  blogsync article delete 12")
@click.argument("article_id", type=int)
@click.pass_obj
def delete(app: AppContext, article_id: int) -> None:
    """Delete an article (the repository file is kept)."""
    app.emit(app.article_service(with_mirror=False).delete_article(article_id))


@article.command(
    examples="""\
  blogsync article show getting-started
  blogsync -v article show draft-post --preview""",
)
@click.argument("slug")
@click.option("--preview", is_flag=True, help="Include drafts.")
@click.pass_obj
def show(app: AppContext, slug: str, preview: bool) -> None:
    """Show one article by slug."""
    app.emit(app.article_service(with_mirror=False).get_article(slug, preview=preview))


@article.command(
    "list",
    examples="""\
  blogsync article list
  blogsync article list --search python --category Backend
  blogsync article list --tag python --tag testing --sort visit_count
  blogsync -q article list --status draft""",
)
@click.option("--search", default=None, help="Match title or slug (case-insensitive).")
@click.option("--category", default=None, help="Category name.")
@click.option("--series", default=None, help="Series title.")
@click.option(
    "--status",
    type=click.Choice(["published", "draft"], case_sensitive=False),
    default=None,
    help="Publication status.",
)
@click.option("--tag", "tags", multiple=True, help="Required tag name (repeatable, AND).")
@click.option("--page", type=click.IntRange(min=0), default=0, help="Zero-based page.")
@click.option("--size", type=click.IntRange(min=1, max=100), default=10, help="Page size.")
@click.option("--sort", default="created_at", help="Sort column.")
@click.option("--asc", is_flag=True, help="Ascending order.")
@click.pass_obj
def list_cmd(
    app: AppContext,
    search: str | None,
    category: str | None,
    series: str | None,
    status: str | None,
    tags: tuple[str, ...],
    page: int,
    size: int,
    sort: str,
    asc: bool,
) -> None:
    """List articles with filters and pagination."""
    from blogsync.domain.models import PublishStatus
    from blogsync.infrastructure.repositories.records import SORT_COLUMNS, ArticleQuery

    if sort not in SORT_COLUMNS:
        raise click.BadParameter(
            f"must be one of: {', '.join(sorted(SORT_COLUMNS))}", param_hint="--sort"
        )
    query = ArticleQuery(
        search=search,
        category=category,
        series=series,
        status=PublishStatus(status.upper()) if status else None,
        tags=list(tags),
        page=page,
        size=size,
        sort=sort,
        descending=not asc,
    )
    app.emit(app.article_service(with_mirror=False).list_articles(query))


@article.command(examples="  blogsync article related getting-started --limit 5")
@click.argument("slug")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum results.")
@click.pass_obj
def related(app: AppContext, slug: str, limit: int | None) -> None:
    """Published articles in the same category."""
    app.emit(app.article_service(with_mirror=False).related_articles(slug, limit))


@article.command(examples="  blogsync article latest --limit 10")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum results.")
@click.pass_obj
def latest(app: AppContext, limit: int | None) -> None:
    """Most recently published articles."""
    app.emit(app.article_service(with_mirror=False).latest_articles(limit))


@article.command(examples="  blogsync article featured")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Maximum results.")
@click.pass_obj
def featured(app: AppContext, limit: int | None) -> None:
    """Most visited published articles."""
    app.emit(app.article_service(with_mirror=False).featured_articles(limit))


@article.command(examples="  blogsync article visit getting-started")
@click.argument("slug")
@click.pass_obj
def visit(app: AppContext, slug: str) -> None:
    """Record a visit to a published article."""
    app.emit(app.article_service(with_mirror=False).record_visit(slug))


@article.command("stats", examples="  blogsync --json article stats")
@click.pass_obj
def stats_cmd(app: AppContext) -> None:
    """Article, category, tag, and series totals."""
    app.emit(app.article_service(with_mirror=False).stats())
