"""Record store schema and engine via SQLAlchemy Core."""

from blogsync.infrastructure.database.engine import create_db_engine, init_database, sqlite_url
from blogsync.infrastructure.database.schema import (
    article_tags,
    articles,
    categories,
    metadata,
    series,
    tags,
)

__all__ = [
    "article_tags",
    "articles",
    "categories",
    "create_db_engine",
    "init_database",
    "metadata",
    "series",
    "sqlite_url",
    "tags",
]
