"""SQLAlchemy Core table definitions for the blogsync record store.

Timestamps are ISO 8601 text. Uniqueness of slugs and taxonomy names is
enforced here; the taxonomy upsert relies on these constraints to detect
concurrent creators.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    Table,
    Text,
)

metadata = MetaData()

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("color", Text),
    Column("created_at", Text, nullable=False),
)

tags = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("color", Text),
    Column("created_at", Text, nullable=False),
)

series = Table(
    "series",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False, unique=True),
    Column("description", Text),
    Column("cover_image", Text),
    Column("color", Text),
    Column("created_at", Text, nullable=False),
)

articles = Table(
    "articles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("slug", Text, nullable=False, unique=True),
    Column("title", Text, nullable=False),
    Column("description", Text),
    Column("cover_image", Text),
    Column("content", Text, nullable=False, default="", server_default=""),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False),
    Column("series_id", Integer, ForeignKey("series.id", ondelete="SET NULL")),
    Column("published", Boolean, nullable=False, default=False, server_default="0"),
    Column("visit_count", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
    Column("published_at", Text),
    Column("last_synced_at", Text),
)

article_tags = Table(
    "article_tags",
    metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False),
    Column("tag_id", Integer, ForeignKey("tags.id"), nullable=False),
    Column("position", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    PrimaryKeyConstraint("article_id", "tag_id"),
)

# --- Indexes ---

Index("ix_articles_category", articles.c.category_id)
Index("ix_articles_series", articles.c.series_id)
Index("ix_articles_published", articles.c.published, articles.c.created_at)
Index("ix_article_tags_tag", article_tags.c.tag_id)
