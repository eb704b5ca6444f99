"""Command groups: category, tag, and series management."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from blogsync.commands._base import BlogGroup

if TYPE_CHECKING:
    from blogsync.commands._context import AppContext
    from blogsync.services.taxonomy import CategoryService, SeriesService, TagService


def _categories(app: AppContext) -> CategoryService:
    from blogsync.services.taxonomy import CategoryService

    return CategoryService(app.store, app.rng)


def _tags(app: AppContext) -> TagService:
    from blogsync.services.taxonomy import TagService

    return TagService(app.store, app.rng)


def _series(app: AppContext) -> SeriesService:
    from blogsync.services.taxonomy import SeriesService

    return SeriesService(app.store, app.rng)


# ── category ─────────────────────────────────────────────────────────


@click.group(
    cls=BlogGroup,
    examples="""\
  blogsync category list
  blogsync category create Backend --color "#3B82F6"
  blogsync category update 4 --name "Back End"
  blogsync category delete 4""",
)
def category() -> None:
    """Manage categories."""


@category.command("list", examples="  blogsync --json category list")
@click.pass_obj
def category_list(app: AppContext) -> None:
    """List categories with published-article counts."""
    app.emit(_categories(app).list_categories())


@category.command("create", examples='  blogsync category create Backend --color "#3B82F6"')
@click.argument("name")
@click.option("--color", default=None, help="Hex color (random palette color if omitted).")
@click.pass_obj
def category_create(app: AppContext, name: str, color: str | None) -> None:
    """Create a category."""
    app.emit(_categories(app).create_category(name, color))


@category.command("update", examples='  blogsync category update 4 --name "Back End"')
@click.argument("category_id", type=int)
@click.option("--name", default=None, help="New name.")
@click.option("--color", default=None, help="New color.")
@click.pass_obj
def category_update(app: AppContext, category_id: int, name: str | None, color: str | None) -> None:
    """Rename or recolor a category."""
    app.emit(_categories(app).update_category(category_id, name=name, color=color))


@category.command("delete", examples="  blogsync category delete 4")
@click.argument("category_id", type=int)
@click.pass_obj
def category_delete(app: AppContext, category_id: int) -> None:
    """Delete a category no article uses."""
    app.emit(_categories(app).delete_category(category_id))


# ── tag ──────────────────────────────────────────────────────────────


@click.group(
    cls=BlogGroup,
    examples="""\
  blogsync tag list --popular
  blogsync tag create python
  blogsync tag prune""",
)
def tag() -> None:
    """Manage tags."""


@tag.command("list", examples="  blogsync tag list --popular")
@click.option("--popular", is_flag=True, help="Sort by published-article count.")
@click.pass_obj
def tag_list(app: AppContext, popular: bool) -> None:
    """List tags with published-article counts."""
    app.emit(_tags(app).list_tags(popular=popular))


@tag.command("create", examples="  blogsync tag create python")
@click.argument("name")
@click.option("--color", default=None, help="Hex color (random palette color if omitted).")
@click.pass_obj
def tag_create(app: AppContext, name: str, color: str | None) -> None:
    """Create a tag."""
    app.emit(_tags(app).create_tag(name, color))


@tag.command("update", examples="  blogsync tag update 7 --name python3")
@click.argument("tag_id", type=int)
@click.option("--name", default=None, help="New name.")
@click.option("--color", default=None, help="New color.")
@click.pass_obj
def tag_update(app: AppContext, tag_id: int, name: str | None, color: str | None) -> None:
    """Rename or recolor a tag."""
    app.emit(_tags(app).update_tag(tag_id, name=name, color=color))


@tag.command("delete", examples="  blogsync tag delete 7")
@click.argument("tag_id", type=int)
@click.pass_obj
def tag_delete(app: AppContext, tag_id: int) -> None:
    """Delete a tag no article carries."""
    app.emit(_tags(app).delete_tag(tag_id))


@tag.command("prune", examples="  blogsync tag prune")
@click.pass_obj
def tag_prune(app: AppContext) -> None:
    """Delete every unused tag."""
    app.emit(_tags(app).prune_unused())


# ── series ───────────────────────────────────────────────────────────


@click.group(
    cls=BlogGroup,
    examples="""\
  blogsync series list
  blogsync series create "Rust in Practice" --description "A five-part series"
  blogsync series delete 2""",
)
def series() -> None:
    """Manage article series."""


@series.command("list", examples="  blogsync series list")
@click.pass_obj
def series_list(app: AppContext) -> None:
    """List series with published-article counts."""
    app.emit(_series(app).list_series())


@series.command("create", examples='  blogsync series create "Rust in Practice"')
@click.argument("title")
@click.option("--description", default=None, help="Series description.")
@click.option("--cover-image", default=None, help="Cover image URL.")
@click.option("--color", default=None, help="Hex color (random palette color if omitted).")
@click.pass_obj
def series_create(
    app: AppContext,
    title: str,
    description: str | None,
    cover_image: str | None,
    color: str | None,
) -> None:
    """Create a series."""
    app.emit(
        _series(app).create_series(
            title, description=description, cover_image=cover_image, color=color
        )
    )


@series.command("update", examples='  blogsync series update 2 --title "Rust, Practically"')
@click.argument("series_id", type=int)
@click.option("--title", default=None, help="New title.")
@click.option("--description", default=None, help="New description.")
@click.option("--cover-image", default=None, help="New cover image URL.")
@click.option("--color", default=None, help="New color.")
@click.pass_obj
def series_update(
    app: AppContext,
    series_id: int,
    title: str | None,
    description: str | None,
    cover_image: str | None,
    color: str | None,
) -> None:
    """Update a series."""
    app.emit(
        _series(app).update_series(
            series_id,
            title=title,
            description=description,
            cover_image=cover_image,
            color=color,
        )
    )


@series.command("delete", examples="  blogsync series delete 2")
@click.argument("series_id", type=int)
@click.pass_obj
def series_delete(app: AppContext, series_id: int) -> None:
    """Delete a series; its articles stay, detached."""
    app.emit(_series(app).delete_series(series_id))
