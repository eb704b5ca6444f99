"""Taxonomy — get-or-create upsert plus category, tag, and series management.

:class:`TaxonomyUpsert` resolves names to records inside a caller's
transaction, creating missing ones with a palette color. Two concurrent
callers may both miss and both insert; the loser's insert fails on the
unique name constraint inside a SAVEPOINT, and it re-reads the winner's
row instead of failing the outer transaction.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from sqlalchemy.exc import IntegrityError

from blogsync.domain.colors import pick_color
from blogsync.domain.errors import BadInputError, BlogSyncError, ConflictError, NotFoundError
from blogsync.domain.models import Category, Series, Tag
from blogsync.domain.resolver import clean_names, has_text
from blogsync.infrastructure import cache
from blogsync.infrastructure.store import Store, StoreTransaction
from blogsync.services._helpers import now_iso
from blogsync.services.base import BaseService
from blogsync.services.result import ServiceResult

logger = logging.getLogger(__name__)


class TaxonomyUpsert:
    """Idempotent name → record resolution for categories and tags."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def get_or_create_category(self, txn: StoreTransaction, name: str) -> Category:
        """Return the category called *name*, creating it if absent."""
        name = name.strip()
        existing = txn.records.get_category_by_name(name)
        if existing is not None:
            return existing
        try:
            with txn.conn.begin_nested():
                created = txn.records.insert_category(name, pick_color(self._rng), now_iso())
        except IntegrityError:
            winner = txn.records.get_category_by_name(name)
            if winner is None:
                raise
            logger.info("Category %r was created concurrently; reusing id %d", name, winner.id)
            return winner
        logger.info("Created new category: %s", name)
        txn.invalidate(cache.CATEGORIES)
        return created

    def get_or_create_tag(self, txn: StoreTransaction, name: str) -> Tag:
        name = name.strip()
        existing = txn.records.get_tag_by_name(name)
        if existing is not None:
            return existing
        try:
            with txn.conn.begin_nested():
                created = txn.records.insert_tag(name, pick_color(self._rng), now_iso())
        except IntegrityError:
            winner = txn.records.get_tag_by_name(name)
            if winner is None:
                raise
            logger.info("Tag %r was created concurrently; reusing id %d", name, winner.id)
            return winner
        logger.info("Created new tag: %s", name)
        txn.invalidate(cache.TAGS)
        return created

    def get_or_create_tags(self, txn: StoreTransaction, names: list[str]) -> list[int]:
        """Resolve *names* to tag ids in input order; blanks and repeats are dropped."""
        ids: list[int] = []
        for name in dict.fromkeys(clean_names(names)):
            tag = self.get_or_create_tag(txn, name)
            if tag.id not in ids:
                ids.append(tag.id)
        return ids


def _category_payload(category: Category, post_count: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": category.id,
        "name": category.name,
        "color": category.color,
        "created_at": category.created_at.isoformat(),
    }
    if post_count is not None:
        payload["post_count"] = post_count
    return payload


def _tag_payload(tag: Tag, post_count: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": tag.id,
        "name": tag.name,
        "color": tag.color,
        "created_at": tag.created_at.isoformat(),
    }
    if post_count is not None:
        payload["post_count"] = post_count
    return payload


def _series_payload(item: Series, post_count: int | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": item.id,
        "title": item.title,
        "description": item.description,
        "cover_image": item.cover_image,
        "color": item.color,
        "created_at": item.created_at.isoformat(),
    }
    if post_count is not None:
        payload["post_count"] = post_count
    return payload


class CategoryService(BaseService):
    """List, create, rename, recolor, and delete categories."""

    def __init__(self, store: Store, rng: random.Random | None = None) -> None:
        super().__init__(store)
        self._rng = rng or random.Random()

    def list_categories(self) -> ServiceResult:
        """All categories by name, each with its published-article count."""

        def compute() -> list[dict[str, Any]]:
            with self._store.read() as records:
                counts = records.published_counts_by_category()
                return [
                    _category_payload(c, counts.get(c.id, 0)) for c in records.list_categories()
                ]

        items = self._store.cache.cached(cache.CATEGORIES, "all", compute)
        return ServiceResult(
            ok=True, op="list_categories", data={"items": items, "count": len(items)}
        )

    def create_category(self, name: str, color: str | None = None) -> ServiceResult:
        op = "create_category"
        try:
            if not has_text(name):
                raise BadInputError("Category name is required")
            with self._store.transaction(invalidates=cache.CATEGORY_EVICTS) as txn:
                if txn.records.get_category_by_name(name.strip()) is not None:
                    raise ConflictError(f"Category already exists: {name.strip()}")
                created = txn.records.insert_category(
                    name.strip(), color or pick_color(self._rng), now_iso()
                )
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data=_category_payload(created))

    def update_category(
        self, category_id: int, *, name: str | None = None, color: str | None = None
    ) -> ServiceResult:
        op = "update_category"
        try:
            with self._store.transaction(invalidates=cache.CATEGORY_EVICTS) as txn:
                current = txn.records.get_category(category_id)
                if current is None:
                    raise NotFoundError(f"Category not found with id: {category_id}")
                changes: dict[str, Any] = {}
                new_name = name.strip() if name and name.strip() else None
                if new_name is not None and new_name != current.name:
                    if txn.records.get_category_by_name(new_name) is not None:
                        raise ConflictError(f"Category already exists: {new_name}")
                    changes["name"] = new_name
                if color is not None:
                    changes["color"] = color
                if changes:
                    txn.records.update_category(category_id, **changes)
                updated = txn.records.get_category(category_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        assert updated is not None
        return ServiceResult(
            ok=True, op=op, data={**_category_payload(updated), "fields_changed": sorted(changes)}
        )

    def delete_category(self, category_id: int) -> ServiceResult:
        """Delete an unused category. Categories still assigned to articles are kept."""
        op = "delete_category"
        try:
            with self._store.transaction(invalidates=cache.CATEGORY_EVICTS) as txn:
                current = txn.records.get_category(category_id)
                if current is None:
                    raise NotFoundError(f"Category not found with id: {category_id}")
                in_use = txn.records.count_articles_in_category(category_id)
                if in_use:
                    raise BadInputError(
                        f"Category {current.name!r} is used by {in_use} article(s)",
                        detail={"article_count": in_use},
                    )
                txn.records.delete_category(category_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": category_id, "name": current.name})


class TagService(BaseService):
    """List, create, update, delete, and prune tags."""

    def __init__(self, store: Store, rng: random.Random | None = None) -> None:
        super().__init__(store)
        self._rng = rng or random.Random()

    def list_tags(self, *, popular: bool = False) -> ServiceResult:
        """All tags with published-article counts; ``popular`` sorts by count."""

        def compute() -> list[dict[str, Any]]:
            with self._store.read() as records:
                counts = records.published_counts_by_tag()
                return [_tag_payload(t, counts.get(t.id, 0)) for t in records.list_tags()]

        items = self._store.cache.cached(cache.TAGS, "all", compute)
        if popular:
            items = sorted(items, key=lambda t: (-t["post_count"], t["name"]))
        return ServiceResult(ok=True, op="list_tags", data={"items": items, "count": len(items)})

    def create_tag(self, name: str, color: str | None = None) -> ServiceResult:
        op = "create_tag"
        try:
            if not has_text(name):
                raise BadInputError("Tag name is required")
            with self._store.transaction(invalidates=cache.TAG_EVICTS) as txn:
                if txn.records.get_tag_by_name(name.strip()) is not None:
                    raise ConflictError(f"Tag already exists: {name.strip()}")
                created = txn.records.insert_tag(
                    name.strip(), color or pick_color(self._rng), now_iso()
                )
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data=_tag_payload(created))

    def update_tag(
        self, tag_id: int, *, name: str | None = None, color: str | None = None
    ) -> ServiceResult:
        op = "update_tag"
        try:
            with self._store.transaction(invalidates=cache.TAG_EVICTS) as txn:
                current = txn.records.get_tag(tag_id)
                if current is None:
                    raise NotFoundError(f"Tag not found with id: {tag_id}")
                changes: dict[str, Any] = {}
                new_name = name.strip() if name and name.strip() else None
                if new_name is not None and new_name != current.name:
                    if txn.records.get_tag_by_name(new_name) is not None:
                        raise ConflictError(f"Tag already exists: {new_name}")
                    changes["name"] = new_name
                if color is not None:
                    changes["color"] = color
                if changes:
                    txn.records.update_tag(tag_id, **changes)
                updated = txn.records.get_tag(tag_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        assert updated is not None
        return ServiceResult(
            ok=True, op=op, data={**_tag_payload(updated), "fields_changed": sorted(changes)}
        )

    def delete_tag(self, tag_id: int) -> ServiceResult:
        op = "delete_tag"
        try:
            with self._store.transaction(invalidates=cache.TAG_EVICTS) as txn:
                current = txn.records.get_tag(tag_id)
                if current is None:
                    raise NotFoundError(f"Tag not found with id: {tag_id}")
                in_use = txn.records.count_articles_with_tag(tag_id)
                if in_use:
                    raise BadInputError(
                        f"Tag {current.name!r} is used by {in_use} article(s)",
                        detail={"article_count": in_use},
                    )
                txn.records.delete_tag(tag_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": tag_id, "name": current.name})

    def prune_unused(self) -> ServiceResult:
        """Delete every tag no article carries."""
        with self._store.transaction(invalidates=cache.TAG_EVICTS) as txn:
            unused = txn.records.unused_tag_ids()
            deleted = txn.records.delete_tags(unused)
        if deleted:
            logger.info("Pruned %d unused tag(s)", deleted)
        return ServiceResult(
            ok=True, op="prune_tags", data={"deleted": deleted, "ids": sorted(unused)}
        )


class SeriesService(BaseService):
    """Manage article series. Deleting a series detaches its articles."""

    def __init__(self, store: Store, rng: random.Random | None = None) -> None:
        super().__init__(store)
        self._rng = rng or random.Random()

    def list_series(self) -> ServiceResult:
        def compute() -> list[dict[str, Any]]:
            with self._store.read() as records:
                counts = records.published_counts_by_series()
                return [_series_payload(s, counts.get(s.id, 0)) for s in records.list_series()]

        items = self._store.cache.cached(cache.SERIES, "all", compute)
        return ServiceResult(ok=True, op="list_series", data={"items": items, "count": len(items)})

    def create_series(
        self,
        title: str,
        *,
        description: str | None = None,
        cover_image: str | None = None,
        color: str | None = None,
    ) -> ServiceResult:
        op = "create_series"
        try:
            if not has_text(title):
                raise BadInputError("Series title is required")
            with self._store.transaction(invalidates=cache.SERIES_EVICTS) as txn:
                if txn.records.get_series_by_title(title.strip()) is not None:
                    raise ConflictError(f"Series already exists: {title.strip()}")
                created = txn.records.insert_series(
                    title=title.strip(),
                    description=description,
                    cover_image=cover_image,
                    color=color or pick_color(self._rng),
                    created_at=now_iso(),
                )
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(ok=True, op=op, data=_series_payload(created))

    def update_series(self, series_id: int, **changes: Any) -> ServiceResult:
        """Update the given series fields. None means unchanged."""
        op = "update_series"
        allowed = {"title", "description", "cover_image", "color"}
        values = {k: v for k, v in changes.items() if k in allowed and v is not None}
        try:
            with self._store.transaction(invalidates=cache.SERIES_EVICTS) as txn:
                current = txn.records.get_series(series_id)
                if current is None:
                    raise NotFoundError(f"Series not found with id: {series_id}")
                if "title" in values:
                    values["title"] = values["title"].strip()
                    clash = txn.records.get_series_by_title(values["title"])
                    if clash is not None and clash.id != series_id:
                        raise ConflictError(f"Series already exists: {values['title']}")
                if values:
                    txn.records.update_series(series_id, **values)
                updated = txn.records.get_series(series_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        assert updated is not None
        return ServiceResult(
            ok=True, op=op, data={**_series_payload(updated), "fields_changed": sorted(values)}
        )

    def delete_series(self, series_id: int) -> ServiceResult:
        op = "delete_series"
        try:
            with self._store.transaction(invalidates=cache.SERIES_EVICTS) as txn:
                current = txn.records.get_series(series_id)
                if current is None:
                    raise NotFoundError(f"Series not found with id: {series_id}")
                detached = txn.records.delete_series(series_id)
        except BlogSyncError as exc:
            return ServiceResult.failure(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"id": series_id, "title": current.title, "articles_detached": detached},
        )
