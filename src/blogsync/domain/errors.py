"""Error taxonomy for the synchronization engine.

Each error carries a stable ``code`` that services copy into
:class:`~blogsync.services.result.ServiceError` when converting an
exception into a failed ServiceResult.
"""

from __future__ import annotations

from typing import Any


class BlogSyncError(Exception):
    """Base class for all engine errors."""

    code = "ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class NotFoundError(BlogSyncError):
    """A slug, id, or name lookup missed."""

    code = "NOT_FOUND"


class ConflictError(BlogSyncError):
    """A unique slug, name, or title already exists."""

    code = "CONFLICT"


class BadInputError(BlogSyncError):
    """Caller input cannot be processed (missing title, invalid tag ids)."""

    code = "BAD_INPUT"


class DocumentNotFoundError(BadInputError):
    """The mirror holds no document for a slug.

    Sync flows report this as a skip; creation flows surface it as bad input.
    """

    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, slug: str) -> None:
        super().__init__(f"Markdown file not found for slug: {slug}", detail={"slug": slug})
        self.slug = slug


class MirrorError(BlogSyncError):
    """A git operation on the mirror (clone, pull, commit, push) failed."""

    code = "MIRROR_FAILED"
