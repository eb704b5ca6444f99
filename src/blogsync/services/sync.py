"""Sync orchestrator: refresh stored articles from the mirror.

Pipeline per article: LOCATE → DIFF → APPLY → COMMIT.

The mirror is authoritative for body content; frontmatter fields are a
partial update. A field is applied only when the document carries a
non-blank value for it, so an empty ``coverImage: ""`` or a missing
``tags`` key leaves the stored value untouched. Tags, when present,
replace the article's tag set.

Failures never escape :class:`SyncOrchestrator`: a missing document is a
skip, any other error is recorded against the article and the batch
moves on. Each article syncs in its own transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from blogsync.domain.errors import BlogSyncError, DocumentNotFoundError, MirrorError
from blogsync.domain.models import Article
from blogsync.domain.resolver import clean_names, has_text
from blogsync.infrastructure import cache
from blogsync.infrastructure.mirror import RepositoryMirror
from blogsync.infrastructure.store import Store
from blogsync.services._helpers import advance_timestamp, as_utc, utc_now
from blogsync.services.base import BaseService
from blogsync.services.result import ServiceError, ServiceResult
from blogsync.services.taxonomy import TaxonomyUpsert

logger = logging.getLogger(__name__)
events = structlog.get_logger("blogsync.sync")


class SyncOutcome(BaseModel):
    """Result of syncing one article."""

    model_config = {"frozen": True}

    article_id: int
    slug: str | None = None
    success: bool
    skipped: bool = False
    synced_at: datetime | None = None
    content_length: int = 0
    fields_changed: list[str] = Field(default_factory=list)
    error: str | None = None


class BatchOutcome(BaseModel):
    """Result of syncing every stored article.

    ``skipped`` counts articles without a mirror document plus articles
    whose sync failed; each failure also has an entry in ``errors``.
    """

    model_config = {"frozen": True}

    total_scanned: int = 0
    synced: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    synced_at: datetime


class SyncOrchestrator:
    """Pull the mirror and refresh article content and metadata."""

    def __init__(
        self,
        store: Store,
        mirror: RepositoryMirror,
        taxonomy: TaxonomyUpsert | None = None,
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._taxonomy = taxonomy or TaxonomyUpsert()

    def sync_one(self, article_id: int) -> SyncOutcome:
        """Pull, then sync a single article. Never raises."""
        try:
            with self._store.read() as records:
                article = records.get_article(article_id)
        except Exception as exc:
            logger.error("Lookup of article %s failed", article_id, exc_info=True)
            return SyncOutcome(article_id=article_id, success=False, error=_describe(exc))
        if article is None:
            return SyncOutcome(
                article_id=article_id,
                success=False,
                error=f"Article not found with id: {article_id}",
            )

        try:
            self._mirror.pull_latest()
        except MirrorError as exc:
            logger.error("Sync of %s aborted: %s", article.slug, exc.message)
            return SyncOutcome(
                article_id=article.id, slug=article.slug, success=False, error=exc.message
            )

        try:
            return self._sync_article(article)
        except DocumentNotFoundError as exc:
            logger.warning("Sync skipped for %s: %s", article.slug, exc.message)
            return SyncOutcome(
                article_id=article.id,
                slug=article.slug,
                success=False,
                skipped=True,
                error=exc.message,
            )
        except Exception as exc:
            logger.error("Sync failed for %s", article.slug, exc_info=True)
            return SyncOutcome(
                article_id=article.id, slug=article.slug, success=False, error=_describe(exc)
            )

    def sync_all(self) -> BatchOutcome:
        """Pull once, then sync every stored article. Never raises."""
        try:
            self._mirror.pull_latest()
        except MirrorError as exc:
            logger.error("Batch sync aborted: %s", exc.message)
            return BatchOutcome(errors=[f"pull: {exc.message}"], synced_at=utc_now())

        try:
            with self._store.read() as records:
                stored = records.all_articles()
        except Exception as exc:
            logger.error("Batch sync aborted: article lookup failed", exc_info=True)
            return BatchOutcome(errors=[f"lookup: {_describe(exc)}"], synced_at=utc_now())

        synced = 0
        skipped = 0
        errors: list[str] = []
        latest: datetime | None = None
        for article in stored:
            try:
                outcome = self._sync_article(article)
                synced += 1
                if outcome.synced_at is not None and (latest is None or outcome.synced_at > latest):
                    latest = outcome.synced_at
            except DocumentNotFoundError:
                logger.debug("No mirror document for %s", article.slug)
                skipped += 1
            except Exception as exc:
                logger.warning("Sync failed for %s: %s", article.slug, exc)
                errors.append(f"{article.slug}: {_describe(exc)}")
                skipped += 1

        # Completion time, never earlier than any last_synced_at written above.
        finished = utc_now()
        if latest is not None and latest > finished:
            finished = latest
        batch = BatchOutcome(
            total_scanned=len(stored),
            synced=synced,
            skipped=skipped,
            errors=errors,
            synced_at=finished,
        )
        events.info(
            "sync_completed",
            total=batch.total_scanned,
            synced=batch.synced,
            skipped=batch.skipped,
            errors=len(batch.errors),
        )
        return batch

    # ------------------------------------------------------------------
    # Per-article pipeline
    # ------------------------------------------------------------------

    def _sync_article(self, article: Article) -> SyncOutcome:
        """Apply the mirror document to *article*.

        Raises:
            DocumentNotFoundError: No ``.md``/``.mdx`` file for the slug.
        """
        # ── LOCATE ────────────────────────────────────────────
        document = self._mirror.find_document(article.slug)
        if document is None:
            raise DocumentNotFoundError(article.slug)

        synced_at = advance_timestamp(article.last_synced_at)
        record = document.record
        changes: dict[str, Any] = {}

        with self._store.transaction(invalidates=cache.SYNC_EVICTS) as txn:
            # ── DIFF ──────────────────────────────────────────
            if document.body != article.content:
                changes["content"] = document.body
            tag_ids: list[int] | None = None
            if record is not None:
                if has_text(record.title) and record.title != article.title:
                    changes["title"] = record.title
                if has_text(record.category):
                    category = self._taxonomy.get_or_create_category(txn, record.category or "")
                    if category.id != article.category_id:
                        changes["category_id"] = category.id
                if has_text(record.description) and record.description != article.description:
                    changes["description"] = record.description
                if record.has_cover_image and record.cover_image != article.cover_image:
                    changes["cover_image"] = record.cover_image
                published_at = as_utc(record.published_at)
                if published_at is not None and published_at != as_utc(article.published_at):
                    changes["published_at"] = published_at
                if clean_names(record.tags):
                    wanted = self._taxonomy.get_or_create_tags(txn, record.tags or [])
                    if wanted != txn.records.tag_ids_for_article(article.id):
                        tag_ids = wanted

            # ── APPLY ─────────────────────────────────────────
            fields_changed = sorted(changes)
            if changes:
                changes["updated_at"] = synced_at
            txn.records.update_article(article.id, last_synced_at=synced_at, **changes)
            if tag_ids is not None:
                txn.records.replace_article_tags(article.id, tag_ids, synced_at.isoformat())
                fields_changed.append("tags")

        # ── COMMIT ────────────────────────────────────────────
        logger.info("Synced %s (%d chars)", article.slug, len(document.body))
        return SyncOutcome(
            article_id=article.id,
            slug=article.slug,
            success=True,
            synced_at=synced_at,
            content_length=len(document.body),
            fields_changed=fields_changed,
        )


def _describe(exc: Exception) -> str:
    if isinstance(exc, BlogSyncError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class SyncService(BaseService):
    """ServiceResult facade over :class:`SyncOrchestrator`."""

    def __init__(self, store: Store, orchestrator: SyncOrchestrator) -> None:
        super().__init__(store)
        self._orchestrator = orchestrator

    def sync_article(self, article_id: int) -> ServiceResult:
        op = "sync_article"
        warnings: list[str] = []
        outcome = self._orchestrator.sync_one(article_id)
        data = outcome.model_dump(mode="json")
        if not outcome.success:
            code = "DOCUMENT_NOT_FOUND" if outcome.skipped else "SYNC_FAILED"
            if outcome.slug is None:
                code = "NOT_FOUND"
            return ServiceResult(
                ok=False,
                op=op,
                data=data,
                error=ServiceError(code=code, message=outcome.error or "Sync failed"),
            )
        self._dispatch_event("post_sync", {"synced": 1, "skipped": 0, "errors": []}, warnings)
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def sync_all(self) -> ServiceResult:
        """Batch sync; per-article errors surface as warnings on an ok result."""
        warnings: list[str] = []
        outcome = self._orchestrator.sync_all()
        warnings.extend(outcome.errors)
        self._dispatch_event(
            "post_sync",
            {"synced": outcome.synced, "skipped": outcome.skipped, "errors": list(outcome.errors)},
            warnings,
        )
        return ServiceResult(
            ok=True, op="sync_all", data=outcome.model_dump(mode="json"), warnings=warnings
        )
