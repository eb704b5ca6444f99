"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from blogsync.output.console import create_console, get_output, style_for_status

if TYPE_CHECKING:
    from rich.console import Console

    from blogsync.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a string via Rich."""
    console = create_console()
    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)
    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Minimal output for ``--quiet``: ids for listings, a status line otherwise."""
    if not result.ok:
        msg = result.error.message if result.error else "Unknown error"
        return f"ERROR: {result.op} - {msg}"
    items = result.data.get("items")
    if isinstance(items, list):
        ids = [str(item["id"]) for item in items if isinstance(item, dict) and "id" in item]
        return "\n".join(ids)
    return f"OK: {result.op}"


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text("OK", style="blog.ok"), Text(f"  {result.op}", style="blog.op"))


def _field(console: Console, key: str, value: Any) -> None:
    k = Text(f"  {key}: ", style="blog.key")
    if key == "id" or key.endswith("_id"):
        v = Text(str(value), style="blog.id")
    elif key == "slug":
        v = Text(str(value), style="blog.slug")
    elif key == "title":
        v = Text(str(value), style="blog.title")
    elif isinstance(value, (dict, list)):
        v = Text(json.dumps(value, separators=(",", ":")))
    else:
        v = Text(str(value))
    console.print(k, v, sep="")


def _status(item: dict[str, Any]) -> Text:
    published = bool(item.get("published"))
    return Text("published" if published else "draft", style=style_for_status(published))


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = f" [{err.code}]" if err else ""
    console.print(
        Text("ERROR", style="blog.error"), Text(f"  {result.op}{code}", style="blog.op"), "-", msg
    )
    if verbose and err and err.detail:
        console.print(Text("  detail:", style="dim"))
        for k, v in err.detail.items():
            console.print(f"    {k}: {v}")


# ── Article renderers ─────────────────────────────────────────────────


def _render_article_mutation(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("id", "slug", "title"):
        if key in d:
            _field(console, key, d[key])
    if "published" in d:
        console.print(Text("  status: ", style="blog.key"), _status(d), sep="")
    if d.get("category"):
        _field(console, "category", d["category"]["name"])
    if d.get("tags"):
        _field(console, "tags", ", ".join(t["name"] for t in d["tags"]))
    if "fields_changed" in d:
        _field(console, "fields_changed", ", ".join(d["fields_changed"]) or "-")
    if d.get("commit"):
        _field(console, "commit", str(d["commit"])[:7])
    if verbose and d.get("sources"):
        _field(console, "sources", d["sources"])


def _render_article_detail(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    d = result.data
    lines: list[str] = [f"slug: {d.get('slug')}"]
    if d.get("category"):
        lines.append(f"category: {d['category']['name']}")
    if d.get("series"):
        lines.append(f"series: {d['series']['title']}")
    if d.get("tags"):
        lines.append(f"tags: {', '.join(t['name'] for t in d['tags'])}")
    lines.append(f"status: {'published' if d.get('published') else 'draft'}")
    lines.append(f"reading time: {d.get('reading_time')} min")
    lines.append(f"visits: {d.get('visit_count')}")
    if d.get("description"):
        lines.append(f"\n{d['description']}")
    if verbose:
        for key in ("created_at", "updated_at", "published_at", "last_synced_at", "cover_image"):
            if d.get(key):
                lines.append(f"{key}: {d[key]}")
        if d.get("content"):
            lines.append(f"\n{d['content']}")
    title = f"{d.get('id', '?')} - {d.get('title', 'Untitled')}"
    border = style_for_status(bool(d.get("published")))
    console.print(Panel("\n".join(lines), title=title, border_style=border, expand=False))


def _article_table(items: list[dict[str, Any]], *, verbose: bool = False) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="blog.id", no_wrap=True)
    table.add_column("Slug", style="blog.slug")
    table.add_column("Title", style="blog.title")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Visits", style="blog.count", justify="right")
    if verbose:
        table.add_column("Tags")
        table.add_column("Updated", style="dim")
    for item in items:
        category = item.get("category") or {}
        row: list[Any] = [
            str(item.get("id", "")),
            str(item.get("slug", "")),
            str(item.get("title", "")),
            str(category.get("name", "")),
            _status(item),
            str(item.get("visit_count", 0)),
        ]
        if verbose:
            row.append(", ".join(t["name"] for t in item.get("tags", [])))
            row.append(str(item.get("updated_at", "")))
        table.add_row(*row)
    return table


def _render_article_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    items = d.get("items", [])
    console.print(_article_table(items, verbose=verbose))
    if "total" in d:
        console.print(
            f"\n{d['total']} articles (page {d['page'] + 1} of {max(d['total_pages'], 1)})"
        )
    else:
        console.print(f"\n{len(items)} articles")


def _render_stats(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key in ("total", "published", "drafts", "categories", "tags", "series"):
        if key in result.data:
            _field(console, key, result.data[key])


# ── Taxonomy renderers ────────────────────────────────────────────────


def _render_taxonomy_list(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    items = result.data.get("items", [])
    label = "Title" if result.op == "list_series" else "Name"
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("ID", style="blog.id", no_wrap=True)
    table.add_column(label, style="blog.title")
    table.add_column("Color")
    table.add_column("Posts", style="blog.count", justify="right")
    for item in items:
        table.add_row(
            str(item.get("id", "")),
            str(item.get("title") or item.get("name") or ""),
            str(item.get("color") or ""),
            str(item.get("post_count", 0)),
        )
    console.print(table)
    console.print(f"\n{result.data.get('count', len(items))} items")


def _render_taxonomy_mutation(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    for key in ("id", "name", "title", "color", "fields_changed", "articles_detached", "deleted"):
        if key in result.data:
            _field(console, key, result.data[key])


# ── Sync and cache renderers ──────────────────────────────────────────


def _render_sync_article(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("article_id", "slug", "synced_at", "content_length"):
        if d.get(key) is not None:
            _field(console, key, d[key])
    if d.get("fields_changed"):
        _field(console, "fields_changed", ", ".join(d["fields_changed"]))


def _render_sync_all(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    d = result.data
    _status_line(console, result)
    for key in ("total_scanned", "synced", "skipped", "synced_at"):
        _field(console, key, d.get(key))
    errors = d.get("errors", [])
    _field(console, "errors", len(errors))
    for err in errors:
        console.print(f"  [blog.error]error[/blog.error] {err}")


def _render_cache(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    regions = result.data.get("regions", {})
    table = Table(show_header=True, pad_edge=False, expand=False)
    table.add_column("Region")
    table.add_column("Entries", style="blog.count", justify="right")
    for name, value in regions.items():
        count = value.get("entries", 0) if isinstance(value, dict) else value
        table.add_row(name, str(count))
    console.print(table)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        _field(console, key, value)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Articles
    "create_article": _render_article_mutation,
    "import_article": _render_article_mutation,
    "update_article": _render_article_mutation,
    "publish_article": _render_article_mutation,
    "unpublish_article": _render_article_mutation,
    "get_article": _render_article_detail,
    "list_articles": _render_article_list,
    "related_articles": _render_article_list,
    "latest_articles": _render_article_list,
    "featured_articles": _render_article_list,
    "article_stats": _render_stats,
    # Taxonomy
    "list_categories": _render_taxonomy_list,
    "list_tags": _render_taxonomy_list,
    "list_series": _render_taxonomy_list,
    "create_category": _render_taxonomy_mutation,
    "update_category": _render_taxonomy_mutation,
    "delete_category": _render_taxonomy_mutation,
    "create_tag": _render_taxonomy_mutation,
    "update_tag": _render_taxonomy_mutation,
    "delete_tag": _render_taxonomy_mutation,
    "prune_tags": _render_taxonomy_mutation,
    "create_series": _render_taxonomy_mutation,
    "update_series": _render_taxonomy_mutation,
    "delete_series": _render_taxonomy_mutation,
    # Sync
    "sync_article": _render_sync_article,
    "sync_all": _render_sync_all,
    # Cache
    "clear_cache": _render_cache,
    "cache_stats": _render_cache,
}
