"""Record-store port: CRUD, existence checks, batch fetches, and listings.

:class:`Records` wraps a single SQLAlchemy connection. Inside a write
transaction it is reached through ``txn.records``; read-only callers get
one from :meth:`blogsync.infrastructure.store.Store.read`.

Batch-by-id methods return mappings keyed by id so response builders can
assemble any number of articles with one query per entity type.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, or_, select, update

from blogsync.domain.models import Article, Category, PublishStatus, Series, Tag
from blogsync.infrastructure.database.schema import (
    article_tags,
    articles,
    categories,
    series,
    tags,
)

if TYPE_CHECKING:
    from sqlalchemy import Connection
    from sqlalchemy.sql import Select

# Sortable article columns (listing ``sort`` parameter).
SORT_COLUMNS: dict[str, Any] = {
    "created_at": articles.c.created_at,
    "updated_at": articles.c.updated_at,
    "published_at": articles.c.published_at,
    "title": articles.c.title,
    "slug": articles.c.slug,
    "visit_count": articles.c.visit_count,
    "id": articles.c.id,
}


def to_text(value: datetime | None) -> str | None:
    """Serialize a timestamp for storage."""
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class ArticleQuery:
    """Filters, pagination, and ordering for :meth:`Records.list_articles`.

    ``tags`` uses AND semantics: an article must carry every listed name.
    ``page`` is zero-based.
    """

    search: str | None = None
    category: str | None = None
    series: str | None = None
    status: PublishStatus | None = None
    tags: list[str] = field(default_factory=list)
    page: int = 0
    size: int = 10
    sort: str = "created_at"
    descending: bool = True

    def cache_key(self) -> str:
        return "|".join(
            str(part)
            for part in (
                self.page,
                self.size,
                self.sort,
                "desc" if self.descending else "asc",
                self.search,
                self.category,
                self.series,
                self.status,
                ",".join(self.tags),
            )
        )


class Records:
    """SQL for every record-store operation, bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    # ------------------------------------------------------------------
    # Articles: single-row access
    # ------------------------------------------------------------------

    def get_article(self, article_id: int) -> Article | None:
        row = self.conn.execute(select(articles).where(articles.c.id == article_id)).first()
        return Article.model_validate(dict(row._mapping)) if row is not None else None

    def get_article_by_slug(self, slug: str) -> Article | None:
        row = self.conn.execute(select(articles).where(articles.c.slug == slug)).first()
        return Article.model_validate(dict(row._mapping)) if row is not None else None

    def article_exists(self, slug: str) -> bool:
        row = self.conn.execute(select(articles.c.id).where(articles.c.slug == slug)).first()
        return row is not None

    def all_articles(self) -> list[Article]:
        """Every article, oldest first (sync iteration order)."""
        rows = self.conn.execute(select(articles).order_by(articles.c.id)).all()
        return [Article.model_validate(dict(r._mapping)) for r in rows]

    def insert_article(self, **values: Any) -> Article:
        result = self.conn.execute(insert(articles).values(**_encode(values)))
        article_id = result.inserted_primary_key[0]
        article = self.get_article(int(article_id))
        assert article is not None
        return article

    def update_article(self, article_id: int, **values: Any) -> None:
        """Update the given columns. ``updated_at`` must be supplied by the caller."""
        if not values:
            return
        self.conn.execute(
            update(articles).where(articles.c.id == article_id).values(**_encode(values))
        )

    def delete_article(self, article_id: int) -> None:
        self.conn.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
        self.conn.execute(delete(articles).where(articles.c.id == article_id))

    def increment_visits(self, article_id: int) -> int:
        """Atomically bump the visit counter; returns the new value."""
        self.conn.execute(
            update(articles)
            .where(articles.c.id == article_id)
            .values(visit_count=articles.c.visit_count + 1)
        )
        count = self.conn.execute(
            select(articles.c.visit_count).where(articles.c.id == article_id)
        ).scalar_one()
        return int(count)

    # ------------------------------------------------------------------
    # Article tags
    # ------------------------------------------------------------------

    def replace_article_tags(self, article_id: int, tag_ids: Iterable[int], now: str) -> list[int]:
        """Delete every association of *article_id*, then insert *tag_ids*.

        Duplicate ids collapse to one association; order is preserved.
        Returns the ids actually written.
        """
        unique = list(dict.fromkeys(tag_ids))
        self.conn.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
        if unique:
            self.conn.execute(
                insert(article_tags),
                [
                    {"article_id": article_id, "tag_id": t, "position": i, "created_at": now}
                    for i, t in enumerate(unique)
                ],
            )
        return unique

    def tag_ids_for_article(self, article_id: int) -> list[int]:
        rows = self.conn.execute(
            select(article_tags.c.tag_id)
            .where(article_tags.c.article_id == article_id)
            .order_by(article_tags.c.position)
        ).all()
        return [int(r.tag_id) for r in rows]

    def tag_ids_by_article_ids(self, article_ids: Iterable[int]) -> dict[int, list[int]]:
        ids = list(set(article_ids))
        if not ids:
            return {}
        rows = self.conn.execute(
            select(article_tags.c.article_id, article_tags.c.tag_id)
            .where(article_tags.c.article_id.in_(ids))
            .order_by(article_tags.c.article_id, article_tags.c.position)
        ).all()
        grouped: dict[int, list[int]] = {}
        for row in rows:
            grouped.setdefault(int(row.article_id), []).append(int(row.tag_id))
        return grouped

    # ------------------------------------------------------------------
    # Batch-by-id fetches
    # ------------------------------------------------------------------

    def categories_by_ids(self, ids: Iterable[int]) -> dict[int, Category]:
        wanted = list(set(ids))
        if not wanted:
            return {}
        rows = self.conn.execute(select(categories).where(categories.c.id.in_(wanted))).all()
        return {int(r.id): Category.model_validate(dict(r._mapping)) for r in rows}

    def tags_by_ids(self, ids: Iterable[int]) -> dict[int, Tag]:
        wanted = list(set(ids))
        if not wanted:
            return {}
        rows = self.conn.execute(select(tags).where(tags.c.id.in_(wanted))).all()
        return {int(r.id): Tag.model_validate(dict(r._mapping)) for r in rows}

    def series_by_ids(self, ids: Iterable[int]) -> dict[int, Series]:
        wanted = list(set(ids))
        if not wanted:
            return {}
        rows = self.conn.execute(select(series).where(series.c.id.in_(wanted))).all()
        return {int(r.id): Series.model_validate(dict(r._mapping)) for r in rows}

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def get_category(self, category_id: int) -> Category | None:
        row = self.conn.execute(select(categories).where(categories.c.id == category_id)).first()
        return Category.model_validate(dict(row._mapping)) if row is not None else None

    def get_category_by_name(self, name: str) -> Category | None:
        row = self.conn.execute(select(categories).where(categories.c.name == name)).first()
        return Category.model_validate(dict(row._mapping)) if row is not None else None

    def insert_category(self, name: str, color: str | None, now: str) -> Category:
        result = self.conn.execute(
            insert(categories).values(name=name, color=color, created_at=now)
        )
        category = self.get_category(int(result.inserted_primary_key[0]))
        assert category is not None
        return category

    def update_category(self, category_id: int, **values: Any) -> None:
        self.conn.execute(update(categories).where(categories.c.id == category_id).values(**values))

    def delete_category(self, category_id: int) -> None:
        self.conn.execute(delete(categories).where(categories.c.id == category_id))

    def list_categories(self) -> list[Category]:
        rows = self.conn.execute(select(categories).order_by(categories.c.name)).all()
        return [Category.model_validate(dict(r._mapping)) for r in rows]

    def count_articles_in_category(self, category_id: int) -> int:
        return int(
            self.conn.execute(
                select(func.count()).where(articles.c.category_id == category_id)
            ).scalar_one()
        )

    def published_counts_by_category(self) -> dict[int, int]:
        rows = self.conn.execute(
            select(articles.c.category_id, func.count().label("n"))
            .where(articles.c.published.is_(True))
            .group_by(articles.c.category_id)
        ).all()
        return {int(r.category_id): int(r.n) for r in rows}

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def get_tag(self, tag_id: int) -> Tag | None:
        row = self.conn.execute(select(tags).where(tags.c.id == tag_id)).first()
        return Tag.model_validate(dict(row._mapping)) if row is not None else None

    def get_tag_by_name(self, name: str) -> Tag | None:
        row = self.conn.execute(select(tags).where(tags.c.name == name)).first()
        return Tag.model_validate(dict(row._mapping)) if row is not None else None

    def insert_tag(self, name: str, color: str | None, now: str) -> Tag:
        result = self.conn.execute(insert(tags).values(name=name, color=color, created_at=now))
        tag = self.get_tag(int(result.inserted_primary_key[0]))
        assert tag is not None
        return tag

    def update_tag(self, tag_id: int, **values: Any) -> None:
        self.conn.execute(update(tags).where(tags.c.id == tag_id).values(**values))

    def delete_tag(self, tag_id: int) -> None:
        self.conn.execute(delete(tags).where(tags.c.id == tag_id))

    def list_tags(self) -> list[Tag]:
        rows = self.conn.execute(select(tags).order_by(tags.c.name)).all()
        return [Tag.model_validate(dict(r._mapping)) for r in rows]

    def count_articles_with_tag(self, tag_id: int) -> int:
        return int(
            self.conn.execute(
                select(func.count()).where(article_tags.c.tag_id == tag_id)
            ).scalar_one()
        )

    def published_counts_by_tag(self) -> dict[int, int]:
        rows = self.conn.execute(
            select(article_tags.c.tag_id, func.count().label("n"))
            .select_from(article_tags.join(articles, articles.c.id == article_tags.c.article_id))
            .where(articles.c.published.is_(True))
            .group_by(article_tags.c.tag_id)
        ).all()
        return {int(r.tag_id): int(r.n) for r in rows}

    def unused_tag_ids(self) -> list[int]:
        used = select(article_tags.c.tag_id).distinct()
        rows = self.conn.execute(select(tags.c.id).where(tags.c.id.not_in(used))).all()
        return [int(r.id) for r in rows]

    def delete_tags(self, tag_ids: Iterable[int]) -> int:
        ids = list(tag_ids)
        if not ids:
            return 0
        result = self.conn.execute(delete(tags).where(tags.c.id.in_(ids)))
        return int(result.rowcount or 0)

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def get_series(self, series_id: int) -> Series | None:
        row = self.conn.execute(select(series).where(series.c.id == series_id)).first()
        return Series.model_validate(dict(row._mapping)) if row is not None else None

    def get_series_by_title(self, title: str) -> Series | None:
        row = self.conn.execute(select(series).where(series.c.title == title)).first()
        return Series.model_validate(dict(row._mapping)) if row is not None else None

    def insert_series(self, **values: Any) -> Series:
        result = self.conn.execute(insert(series).values(**values))
        created = self.get_series(int(result.inserted_primary_key[0]))
        assert created is not None
        return created

    def update_series(self, series_id: int, **values: Any) -> None:
        self.conn.execute(update(series).where(series.c.id == series_id).values(**values))

    def delete_series(self, series_id: int) -> int:
        """Detach articles from the series, then delete it. Returns detached count."""
        detached = self.conn.execute(
            update(articles).where(articles.c.series_id == series_id).values(series_id=None)
        )
        self.conn.execute(delete(series).where(series.c.id == series_id))
        return int(detached.rowcount or 0)

    def list_series(self) -> list[Series]:
        rows = self.conn.execute(select(series).order_by(series.c.title)).all()
        return [Series.model_validate(dict(r._mapping)) for r in rows]

    def published_counts_by_series(self) -> dict[int, int]:
        rows = self.conn.execute(
            select(articles.c.series_id, func.count().label("n"))
            .where(articles.c.published.is_(True), articles.c.series_id.is_not(None))
            .group_by(articles.c.series_id)
        ).all()
        return {int(r.series_id): int(r.n) for r in rows}

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_articles(self, query: ArticleQuery) -> tuple[list[Article], int]:
        """Filtered, paginated listing. Returns ``(page_items, total)``."""
        filtered = self._apply_filters(select(articles.c.id), query)
        total = int(
            self.conn.execute(select(func.count()).select_from(filtered.subquery())).scalar_one()
        )

        column = SORT_COLUMNS.get(query.sort, articles.c.created_at)
        order = column.desc() if query.descending else column.asc()
        stmt = (
            self._apply_filters(select(articles), query)
            .order_by(order, articles.c.id.desc() if query.descending else articles.c.id.asc())
            .limit(query.size)
            .offset(query.page * query.size)
        )
        rows = self.conn.execute(stmt).all()
        return [Article.model_validate(dict(r._mapping)) for r in rows], total

    def related_articles(self, article: Article, limit: int) -> list[Article]:
        """Published articles in the same category, newest first, excluding *article*."""
        rows = self.conn.execute(
            select(articles)
            .where(
                articles.c.category_id == article.category_id,
                articles.c.published.is_(True),
                articles.c.id != article.id,
            )
            .order_by(articles.c.created_at.desc(), articles.c.id.desc())
            .limit(limit)
        ).all()
        return [Article.model_validate(dict(r._mapping)) for r in rows]

    def latest_articles(self, limit: int) -> list[Article]:
        rows = self.conn.execute(
            select(articles)
            .where(articles.c.published.is_(True))
            .order_by(
                func.coalesce(articles.c.published_at, articles.c.created_at).desc(),
                articles.c.id.desc(),
            )
            .limit(limit)
        ).all()
        return [Article.model_validate(dict(r._mapping)) for r in rows]

    def featured_articles(self, limit: int) -> list[Article]:
        """Most visited published articles."""
        rows = self.conn.execute(
            select(articles)
            .where(articles.c.published.is_(True))
            .order_by(articles.c.visit_count.desc(), articles.c.created_at.desc())
            .limit(limit)
        ).all()
        return [Article.model_validate(dict(r._mapping)) for r in rows]

    def article_counts(self) -> dict[str, int]:
        total = int(self.conn.execute(select(func.count()).select_from(articles)).scalar_one())
        published = int(
            self.conn.execute(
                select(func.count()).where(articles.c.published.is_(True))
            ).scalar_one()
        )
        return {"total": total, "published": published, "drafts": total - published}

    @staticmethod
    def _apply_filters(stmt: Select[Any], query: ArticleQuery) -> Select[Any]:
        if query.search:
            pattern = f"%{query.search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(articles.c.title).like(pattern),
                    func.lower(articles.c.slug).like(pattern),
                )
            )
        if query.category:
            stmt = stmt.where(
                articles.c.category_id.in_(
                    select(categories.c.id).where(
                        func.lower(categories.c.name) == query.category.lower()
                    )
                )
            )
        if query.series:
            stmt = stmt.where(
                articles.c.series_id.in_(
                    select(series.c.id).where(func.lower(series.c.title) == query.series.lower())
                )
            )
        if query.status == PublishStatus.PUBLISHED:
            stmt = stmt.where(articles.c.published.is_(True))
        elif query.status == PublishStatus.DRAFT:
            stmt = stmt.where(articles.c.published.is_(False))
        wanted = list(dict.fromkeys(t for t in query.tags if t))
        if wanted:
            carrying_all = (
                select(article_tags.c.article_id)
                .join(tags, tags.c.id == article_tags.c.tag_id)
                .where(tags.c.name.in_(wanted))
                .group_by(article_tags.c.article_id)
                .having(func.count(func.distinct(tags.c.name)) == len(wanted))
            )
            stmt = stmt.where(articles.c.id.in_(carrying_all))
        return stmt


def _encode(values: dict[str, Any]) -> dict[str, Any]:
    """Convert datetime values to stored text."""
    return {k: to_text(v) if isinstance(v, datetime) else v for k, v in values.items()}
