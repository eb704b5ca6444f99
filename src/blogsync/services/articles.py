"""ArticleService — article lifecycle against the store and the mirror.

Creation is mirror-first: the document must already exist in the working
copy (``import_document`` puts it there). Pipeline:
PULL → LOCATE → RESOLVE → GENERATE → PERSIST → WRITE BACK → RESPOND

Metadata changes made through this service are written back into the
document's frontmatter and committed. Write-back never fails the
operation: its outcome is returned as a :class:`WriteBackResult` and a
failure becomes a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from blogsync.config.models import ArticlesConfig
from blogsync.domain import frontmatter
from blogsync.domain.errors import (
    BadInputError,
    BlogSyncError,
    ConflictError,
    DocumentNotFoundError,
    MirrorError,
    NotFoundError,
)
from blogsync.domain.frontmatter import FrontmatterRecord
from blogsync.domain.models import Article, reading_time_minutes
from blogsync.domain.resolver import (
    ExplicitMetadata,
    ResolvedMetadata,
    apply_generated,
    extract_title,
    has_text,
    resolve_metadata,
)
from blogsync.domain.slugs import slugify, unique_slug
from blogsync.infrastructure import cache
from blogsync.infrastructure.mirror import RepositoryMirror
from blogsync.infrastructure.providers import (
    DEFAULT_CATEGORY,
    DefaultMetadataGenerator,
    ImageSearch,
    MetadataGenerator,
    NullImageSearch,
)
from blogsync.infrastructure.repositories.records import ArticleQuery, Records
from blogsync.infrastructure.store import Store, StoreTransaction
from blogsync.services._helpers import as_utc, now_iso, utc_now
from blogsync.services.base import BaseService
from blogsync.services.result import ServiceResult
from blogsync.services.taxonomy import TaxonomyUpsert

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteBackResult:
    """Outcome of rewriting an article's frontmatter in the mirror."""

    ok: bool
    path: str | None = None
    commit: str | None = None
    reason: str | None = None

    def as_warning(self, slug: str) -> str | None:
        if self.ok:
            return None
        return f"Frontmatter write-back failed for {slug}: {self.reason}"


class ArticleService(BaseService):
    """Create, edit, publish, delete, and read articles."""

    def __init__(
        self,
        store: Store,
        mirror: RepositoryMirror | None = None,
        *,
        taxonomy: TaxonomyUpsert | None = None,
        generator: MetadataGenerator | None = None,
        image_search: ImageSearch | None = None,
        config: ArticlesConfig | None = None,
    ) -> None:
        super().__init__(store)
        self._mirror = mirror
        self._taxonomy = taxonomy or TaxonomyUpsert()
        self._generator = generator or DefaultMetadataGenerator()
        self._image_search = image_search or NullImageSearch()
        self._config = config or ArticlesConfig()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_from_mirror(
        self, slug: str, explicit: ExplicitMetadata | None = None
    ) -> ServiceResult:
        """Create an article from ``<content_path>/<slug>.md`` in the mirror."""
        op = "create_article"
        warnings: list[str] = []
        explicit = explicit or ExplicitMetadata()

        try:
            with self._store.read() as records:
                if records.article_exists(slug):
                    raise ConflictError(f"Article with slug '{slug}' already exists")

            # ── PULL ──────────────────────────────────────────────
            try:
                self.mirror.pull_latest()
            except MirrorError as exc:
                logger.warning("Pull before create failed: %s", exc.message)
                warnings.append(f"Pull failed, using local working copy: {exc.message}")

            # ── LOCATE ────────────────────────────────────────────
            document = self.mirror.find_document(slug)
            if document is None:
                raise DocumentNotFoundError(slug)

            # ── RESOLVE / GENERATE ────────────────────────────────
            resolved = resolve_metadata(
                explicit, document.record, document.body, image_search=self._image_search.search
            )
            if resolved.needs_generation:
                generated = self._generator.generate(resolved.title, document.body)
                resolved = apply_generated(
                    resolved,
                    category=generated.category,
                    tags=generated.tags,
                    description=generated.description,
                )

            # ── PERSIST ───────────────────────────────────────────
            now = utc_now()
            published = self._config.publish_on_create
            published_at = None
            if published:
                record_date = document.record.published_at if document.record else None
                published_at = as_utc(record_date) or now
            with self._store.transaction(invalidates=cache.ARTICLE_CREATE_EVICTS) as txn:
                category_id = self._resolve_category(txn, resolved)
                self._require_series(txn.records, explicit.series_id)
                tag_ids = self._resolve_tags(txn, resolved)
                article = txn.records.insert_article(
                    slug=slug,
                    title=resolved.title,
                    description=resolved.description,
                    cover_image=resolved.cover_image,
                    content=document.body,
                    category_id=category_id,
                    series_id=explicit.series_id,
                    published=published,
                    visit_count=0,
                    created_at=now,
                    updated_at=now,
                    published_at=published_at,
                    last_synced_at=now,
                )
                txn.records.replace_article_tags(article.id, tag_ids, now.isoformat())
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc, warnings)

        logger.info("Created article %s from mirror", slug)

        # ── WRITE BACK ────────────────────────────────────────────
        write_back = self.write_back(article.id)
        if (warning := write_back.as_warning(slug)) is not None:
            warnings.append(warning)

        # ── RESPOND ───────────────────────────────────────────────
        data = self._detail(article.id)
        data["sources"] = {k: str(v) for k, v in resolved.sources.items()}
        data["commit"] = write_back.commit
        self._dispatch_event(
            "post_create_article",
            {
                "article_id": article.id,
                "slug": slug,
                "title": resolved.title,
                "tags": [t["name"] for t in data["tags"]],
            },
            warnings,
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def import_document(self, text: str, explicit: ExplicitMetadata | None = None) -> ServiceResult:
        """Add a markdown document to the mirror under a fresh slug, then create it.

        The slug derives from the resolved title and gets a ``-1``, ``-2``
        suffix while it collides with a stored article or a mirror document.
        """
        op = "import_article"
        explicit = explicit or ExplicitMetadata()
        warnings: list[str] = []
        try:
            record = frontmatter.parse(text) if frontmatter.has_metadata_block(text) else None
            body = frontmatter.document_body(text)
            title = explicit.title or (record.title if record else None) or extract_title(body)
            if not has_text(title):
                raise BadInputError(
                    "Could not resolve title. Please provide title in request or frontmatter."
                )
            base = slugify(title or "")
            if not base:
                raise BadInputError(f"Title does not produce a usable slug: {title!r}")

            with self._store.read() as records:
                slug = unique_slug(
                    base,
                    lambda s: records.article_exists(s) or self.mirror.find_document(s) is not None,
                )
            path = self.mirror.document_path(slug)
            self.mirror.write_file(path, text if text.endswith("\n") else text + "\n")
            try:
                self.mirror.commit_and_push(f"Add article: {title}")
            except MirrorError as exc:
                logger.warning("Commit of imported article failed: %s", exc.message)
                warnings.append(f"Commit failed for {path}: {exc.message}")
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)

        created = self.create_from_mirror(slug, explicit)
        return created.model_copy(
            update={"op": op, "warnings": [*warnings, *created.warnings]}
        )

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def update_article(
        self,
        article_id: int,
        *,
        title: str | None = None,
        description: str | None = None,
        cover_image: str | None = None,
        category_id: int | None = None,
        series_id: int | None = None,
        tag_ids: Sequence[int] | None = None,
    ) -> ServiceResult:
        """Change metadata. ``None`` leaves a field alone; ``tag_ids=[]`` clears tags."""
        op = "update_article"
        warnings: list[str] = []
        try:
            with self._store.transaction(invalidates=cache.ARTICLE_UPDATE_EVICTS) as txn:
                article = self._require_article(txn.records, article_id)
                changes: dict[str, Any] = {}
                if title is not None:
                    if not has_text(title):
                        raise BadInputError("Title must not be blank")
                    changes["title"] = title.strip()
                if description is not None:
                    changes["description"] = description
                if cover_image is not None:
                    changes["cover_image"] = cover_image
                if category_id is not None:
                    if txn.records.get_category(category_id) is None:
                        raise NotFoundError(f"Category not found with id: {category_id}")
                    changes["category_id"] = category_id
                if series_id is not None:
                    self._require_series(txn.records, series_id)
                    changes["series_id"] = series_id
                fields_changed = sorted(changes)
                if tag_ids is not None:
                    self._require_tags(txn.records, tag_ids)
                    txn.records.replace_article_tags(article.id, tag_ids, now_iso())
                    fields_changed.append("tags")
                if changes or tag_ids is not None:
                    changes["updated_at"] = utc_now()
                    txn.records.update_article(article.id, **changes)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)

        write_back = self.write_back(article.id) if fields_changed else WriteBackResult(ok=True)
        if (warning := write_back.as_warning(article.slug)) is not None:
            warnings.append(warning)

        data = self._detail(article.id)
        data["fields_changed"] = fields_changed
        data["commit"] = write_back.commit
        self._dispatch_event(
            "post_update_article",
            {"article_id": article.id, "slug": article.slug, "fields_changed": fields_changed},
            warnings,
        )
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)

    def publish(self, article_id: int) -> ServiceResult:
        return self._set_published(article_id, published=True)

    def unpublish(self, article_id: int) -> ServiceResult:
        return self._set_published(article_id, published=False)

    def _set_published(self, article_id: int, *, published: bool) -> ServiceResult:
        op = "publish_article" if published else "unpublish_article"
        warnings: list[str] = []
        try:
            with self._store.transaction(invalidates=cache.ARTICLE_PUBLISH_EVICTS) as txn:
                article = self._require_article(txn.records, article_id)
                if article.published == published:
                    state = "published" if published else "a draft"
                    raise BadInputError(f"Article is already {state}")
                now = utc_now()
                txn.records.update_article(
                    article.id,
                    published=published,
                    published_at=now if published else None,
                    updated_at=now,
                )
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)

        self._dispatch_event(
            "post_publish_article",
            {"article_id": article.id, "slug": article.slug, "published": published},
            warnings,
        )
        return ServiceResult(ok=True, op=op, data=self._detail(article.id), warnings=warnings)

    def delete_article(self, article_id: int) -> ServiceResult:
        """Remove the article and its tag links. The mirror document is kept."""
        op = "delete_article"
        warnings: list[str] = []
        try:
            with self._store.transaction(invalidates=cache.ARTICLE_DELETE_EVICTS) as txn:
                article = self._require_article(txn.records, article_id)
                txn.records.delete_article(article.id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)

        logger.info("Deleted article %s", article.slug)
        self._dispatch_event(
            "post_delete_article", {"article_id": article.id, "slug": article.slug}, warnings
        )
        return ServiceResult(
            ok=True, op=op, data={"id": article.id, "slug": article.slug}, warnings=warnings
        )

    def record_visit(self, slug: str) -> ServiceResult:
        """Increment the visit counter of a published article. Not cached."""
        op = "record_visit"
        try:
            with self._store.transaction() as txn:
                article = txn.records.get_article_by_slug(slug)
                if article is None or not article.published:
                    raise NotFoundError(f"Article not found with slug: {slug}")
                count = txn.records.increment_visits(article.id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"slug": slug, "visit_count": count})

    # ------------------------------------------------------------------
    # Write-back
    # ------------------------------------------------------------------

    def write_back(self, article_id: int) -> WriteBackResult:
        """Rewrite the document's frontmatter from stored metadata and commit it."""
        if self._mirror is None:
            return WriteBackResult(ok=False, reason="repository mirror is not available")
        with self._store.read() as records:
            article = records.get_article(article_id)
            if article is None:
                return WriteBackResult(ok=False, reason=f"article {article_id} not found")
            category = records.get_category(article.category_id)
            tag_ids = records.tag_ids_for_article(article.id)
            tag_map = records.tags_by_ids(tag_ids)
            tag_names = [tag_map[t].name for t in tag_ids if t in tag_map]

        document = self.mirror.find_document(article.slug)
        if document is None:
            return WriteBackResult(ok=False, reason="file not found")

        record = FrontmatterRecord(
            title=article.title,
            category=category.name if category else None,
            tags=tag_names,
            description=article.description,
            cover_image=article.cover_image or "",
            published_at=article.published_at,
        )
        try:
            self.mirror.write_file(document.path, frontmatter.replace(document.raw, record))
            sha = self.mirror.commit_and_push(f"Update frontmatter: {article.title}")
        except (MirrorError, OSError) as exc:
            reason = exc.message if isinstance(exc, MirrorError) else str(exc)
            logger.warning("Write-back for %s failed: %s", article.slug, reason)
            return WriteBackResult(ok=False, path=document.path, reason=reason)
        return WriteBackResult(ok=True, path=document.path, commit=sha)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_article(self, slug: str, *, preview: bool = False) -> ServiceResult:
        """Article detail by slug. Drafts are visible only with ``preview``."""
        op = "get_article"

        def compute() -> dict[str, Any] | None:
            with self._store.read() as records:
                article = records.get_article_by_slug(slug)
                if article is None or not (article.published or preview):
                    return None
                return _build_payloads(records, [article], include_content=True)[0]

        key = f"{slug}|{'preview' if preview else 'public'}"
        data = self._store.cache.cached(cache.ARTICLE_BY_SLUG, key, compute)
        if data is None:
            return ServiceResult.failure(op, NotFoundError(f"Article not found with slug: {slug}"))
        return ServiceResult(ok=True, op=op, data=data)

    def list_articles(self, query: ArticleQuery | None = None) -> ServiceResult:
        query = query or ArticleQuery()

        def compute() -> dict[str, Any]:
            with self._store.read() as records:
                items, total = records.list_articles(query)
                payloads = _build_payloads(records, items)
            pages = -(-total // query.size) if query.size > 0 else 0
            return {
                "items": payloads,
                "total": total,
                "page": query.page,
                "size": query.size,
                "total_pages": pages,
            }

        data = self._store.cache.cached(cache.ARTICLES, query.cache_key(), compute)
        return ServiceResult(ok=True, op="list_articles", data=data)

    def related_articles(self, slug: str, limit: int | None = None) -> ServiceResult:
        op = "related_articles"
        limit = limit or self._config.related_limit

        def compute() -> list[dict[str, Any]] | None:
            with self._store.read() as records:
                article = records.get_article_by_slug(slug)
                if article is None:
                    return None
                return _build_payloads(records, records.related_articles(article, limit))

        items = self._store.cache.cached(cache.RELATED_ARTICLES, f"{slug}|{limit}", compute)
        if items is None:
            return ServiceResult.failure(op, NotFoundError(f"Article not found with slug: {slug}"))
        return ServiceResult(ok=True, op=op, data={"slug": slug, "items": items})

    def latest_articles(self, limit: int | None = None) -> ServiceResult:
        limit = limit or self._config.latest_limit

        def compute() -> list[dict[str, Any]]:
            with self._store.read() as records:
                return _build_payloads(records, records.latest_articles(limit))

        items = self._store.cache.cached(cache.LATEST_ARTICLES, str(limit), compute)
        return ServiceResult(ok=True, op="latest_articles", data={"items": items})

    def featured_articles(self, limit: int | None = None) -> ServiceResult:
        limit = limit or self._config.featured_limit

        def compute() -> list[dict[str, Any]]:
            with self._store.read() as records:
                return _build_payloads(records, records.featured_articles(limit))

        items = self._store.cache.cached(cache.FEATURED_ARTICLES, str(limit), compute)
        return ServiceResult(ok=True, op="featured_articles", data={"items": items})

    def stats(self) -> ServiceResult:
        """Article totals for the dashboard."""
        with self._store.read() as records:
            counts = records.article_counts()
            counts["categories"] = len(records.list_categories())
            counts["tags"] = len(records.list_tags())
            counts["series"] = len(records.list_series())
        return ServiceResult(ok=True, op="article_stats", data=counts)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def mirror(self) -> RepositoryMirror:
        if self._mirror is None:
            msg = "Repository mirror is not available"
            raise MirrorError(msg)
        return self._mirror

    def _detail(self, article_id: int) -> dict[str, Any]:
        with self._store.read() as records:
            article = self._require_article(records, article_id)
            return _build_payloads(records, [article], include_content=True)[0]

    def _resolve_category(self, txn: StoreTransaction, resolved: ResolvedMetadata) -> int:
        if resolved.category_id is not None:
            if txn.records.get_category(resolved.category_id) is None:
                raise NotFoundError(f"Category not found with id: {resolved.category_id}")
            return resolved.category_id
        name = resolved.category if has_text(resolved.category) else DEFAULT_CATEGORY
        return self._taxonomy.get_or_create_category(txn, name or DEFAULT_CATEGORY).id

    def _resolve_tags(self, txn: StoreTransaction, resolved: ResolvedMetadata) -> list[int]:
        if resolved.tag_ids:
            self._require_tags(txn.records, resolved.tag_ids)
            return list(dict.fromkeys(resolved.tag_ids))
        return self._taxonomy.get_or_create_tags(txn, resolved.tags)

    @staticmethod
    def _require_article(records: Records, article_id: int) -> Article:
        article = records.get_article(article_id)
        if article is None:
            raise NotFoundError(f"Article not found with id: {article_id}")
        return article

    @staticmethod
    def _require_series(records: Records, series_id: int | None) -> None:
        if series_id is not None and records.get_series(series_id) is None:
            raise NotFoundError(f"Series not found with id: {series_id}")

    @staticmethod
    def _require_tags(records: Records, tag_ids: Sequence[int]) -> None:
        wanted = set(tag_ids)
        if len(records.tags_by_ids(wanted)) != len(wanted):
            raise BadInputError(
                "One or more tag IDs are invalid", detail={"tag_ids": list(tag_ids)}
            )


def _build_payloads(
    records: Records, items: Sequence[Article], *, include_content: bool = False
) -> list[dict[str, Any]]:
    """Response dicts for *items* with one query per related entity type."""
    if not items:
        return []
    categories = records.categories_by_ids(a.category_id for a in items)
    series_map = records.series_by_ids(a.series_id for a in items if a.series_id is not None)
    tag_ids = records.tag_ids_by_article_ids(a.id for a in items)
    tag_map = records.tags_by_ids(t for ids in tag_ids.values() for t in ids)

    payloads: list[dict[str, Any]] = []
    for article in items:
        category = categories.get(article.category_id)
        linked = series_map.get(article.series_id) if article.series_id is not None else None
        payload: dict[str, Any] = {
            "id": article.id,
            "slug": article.slug,
            "title": article.title,
            "description": article.description,
            "cover_image": article.cover_image,
            "category": {"id": category.id, "name": category.name, "color": category.color}
            if category
            else None,
            "series": {"id": linked.id, "title": linked.title} if linked else None,
            "tags": [
                {"id": tag_map[t].id, "name": tag_map[t].name, "color": tag_map[t].color}
                for t in tag_ids.get(article.id, [])
                if t in tag_map
            ],
            "published": article.published,
            "visit_count": article.visit_count,
            "reading_time": reading_time_minutes(article.content),
            "created_at": article.created_at.isoformat(),
            "updated_at": article.updated_at.isoformat(),
            "published_at": article.published_at.isoformat() if article.published_at else None,
            "last_synced_at": article.last_synced_at.isoformat()
            if article.last_synced_at
            else None,
        }
        if include_content:
            payload["content"] = article.content
        payloads.append(payload)
    return payloads
