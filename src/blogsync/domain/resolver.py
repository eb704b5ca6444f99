"""Metadata resolution for newly created articles.

Each field takes the first non-empty value from, in order:

1. explicit caller input,
2. the parsed frontmatter record,
3. a field-specific fallback.

Fallbacks: the title comes from the first ``# heading`` of the body; the
cover image comes from an image-search callable keyed by the resolved
title; category, tags, and description stay unresolved for the external
generation step (see :func:`apply_generated`).

Sync uses a different, partial-update cascade (see
:mod:`blogsync.services.sync`).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum

from blogsync.domain.errors import BadInputError
from blogsync.domain.frontmatter import FrontmatterRecord

_HEADING = re.compile(r"^#[ \t]+(.+?)[ \t]*$", re.MULTILINE)


class Source(StrEnum):
    """Where a resolved field value came from."""

    EXPLICIT = "explicit"
    FRONTMATTER = "frontmatter"
    FALLBACK = "fallback"
    GENERATED = "generated"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class ExplicitMetadata:
    """Caller-supplied overrides. Ids win over names for category and tags."""

    title: str | None = None
    description: str | None = None
    cover_image: str | None = None
    category_id: int | None = None
    category: str | None = None
    tag_ids: list[int] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    series_id: int | None = None


@dataclass(frozen=True)
class ResolvedMetadata:
    """Final field values plus the source of each."""

    title: str
    category_id: int | None = None
    category: str | None = None
    tag_ids: list[int] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description: str | None = None
    cover_image: str | None = None
    sources: dict[str, Source] = field(default_factory=dict)

    @property
    def needs_generation(self) -> bool:
        """True if category, tags, or description await the generation step."""
        return any(
            self.sources.get(name) == Source.UNRESOLVED
            for name in ("category", "tags", "description")
        )


def extract_title(body: str) -> str | None:
    """Return the text of the first top-level ``# heading`` line, if any."""
    match = _HEADING.search(body or "")
    if match is None:
        return None
    return match.group(1).strip() or None


def has_text(value: str | None) -> bool:
    return value is not None and bool(value.strip())


def clean_names(names: list[str] | None) -> list[str]:
    """Stripped, non-blank names in their original order."""
    return [n.strip() for n in names or [] if has_text(n)]


def _text(value: str | None) -> str | None:
    """*value* stripped, or None when blank."""
    if value is None or not value.strip():
        return None
    return value.strip()


def resolve_metadata(
    explicit: ExplicitMetadata,
    record: FrontmatterRecord | None,
    body: str,
    *,
    image_search: Callable[[str], str | None] | None = None,
) -> ResolvedMetadata:
    """Apply the explicit > frontmatter > fallback cascade.

    Raises:
        BadInputError: No title could be resolved from any source.
    """
    fm = record or FrontmatterRecord()
    sources: dict[str, Source] = {}

    # ── title ─────────────────────────────────────────────────────
    explicit_title = _text(explicit.title)
    fm_title = _text(fm.title)
    if explicit_title is not None:
        title = explicit_title
        sources["title"] = Source.EXPLICIT
    elif fm_title is not None:
        title = fm_title
        sources["title"] = Source.FRONTMATTER
    else:
        extracted = extract_title(body)
        if extracted is None:
            msg = "Could not resolve title. Please provide title in request or frontmatter."
            raise BadInputError(msg)
        title = extracted
        sources["title"] = Source.FALLBACK

    # ── category ──────────────────────────────────────────────────
    category_id: int | None = None
    category: str | None = None
    if explicit.category_id is not None:
        category_id = explicit.category_id
        sources["category"] = Source.EXPLICIT
    elif _text(explicit.category) is not None:
        category = _text(explicit.category)
        sources["category"] = Source.EXPLICIT
    elif _text(fm.category) is not None:
        category = _text(fm.category)
        sources["category"] = Source.FRONTMATTER
    else:
        sources["category"] = Source.UNRESOLVED

    # ── tags ──────────────────────────────────────────────────────
    tag_ids: list[int] = []
    tags: list[str] = []
    if explicit.tag_ids:
        tag_ids = list(explicit.tag_ids)
        sources["tags"] = Source.EXPLICIT
    elif clean_names(explicit.tags):
        tags = clean_names(explicit.tags)
        sources["tags"] = Source.EXPLICIT
    elif clean_names(fm.tags):
        tags = clean_names(fm.tags)
        sources["tags"] = Source.FRONTMATTER
    else:
        sources["tags"] = Source.UNRESOLVED

    # ── description ───────────────────────────────────────────────
    description: str | None = None
    if has_text(explicit.description):
        description = explicit.description
        sources["description"] = Source.EXPLICIT
    elif has_text(fm.description):
        description = fm.description
        sources["description"] = Source.FRONTMATTER
    else:
        sources["description"] = Source.UNRESOLVED

    # ── cover image ───────────────────────────────────────────────
    cover_image: str | None = None
    if has_text(explicit.cover_image):
        cover_image = explicit.cover_image
        sources["cover_image"] = Source.EXPLICIT
    elif fm.has_cover_image:
        cover_image = fm.cover_image
        sources["cover_image"] = Source.FRONTMATTER
    else:
        found = image_search(title) if image_search is not None else None
        if has_text(found):
            cover_image = found
            sources["cover_image"] = Source.FALLBACK
        else:
            sources["cover_image"] = Source.UNRESOLVED

    return ResolvedMetadata(
        title=title,
        category_id=category_id,
        category=category,
        tag_ids=tag_ids,
        tags=tags,
        description=description,
        cover_image=cover_image,
        sources=sources,
    )


def apply_generated(
    resolved: ResolvedMetadata,
    *,
    category: str | None,
    tags: list[str],
    description: str | None,
) -> ResolvedMetadata:
    """Fill fields still unresolved with generated suggestions.

    Fields already resolved from explicit input or frontmatter are kept.
    """
    sources = dict(resolved.sources)
    new_category = resolved.category
    new_tags = resolved.tags
    new_description = resolved.description

    generated_category = _text(category)
    if sources.get("category") == Source.UNRESOLVED and generated_category is not None:
        new_category = generated_category
        sources["category"] = Source.GENERATED
    if sources.get("tags") == Source.UNRESOLVED and clean_names(tags):
        new_tags = clean_names(tags)
        sources["tags"] = Source.GENERATED
    if sources.get("description") == Source.UNRESOLVED and has_text(description):
        new_description = description
        sources["description"] = Source.GENERATED

    return replace(
        resolved,
        category=new_category,
        tags=new_tags,
        description=new_description,
        sources=sources,
    )
