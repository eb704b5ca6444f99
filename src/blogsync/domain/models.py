"""Persisted entities as frozen pydantic models.

Rows read from the record store are validated into these models at the
store boundary; timestamps are stored as ISO 8601 text and parsed back
into ``datetime`` here.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class PublishStatus(StrEnum):
    """Listing filter on the authoritative ``published`` flag."""

    PUBLISHED = "PUBLISHED"
    DRAFT = "DRAFT"


class Article(BaseModel):
    """A persisted article. ``content`` never contains a metadata block."""

    model_config = {"frozen": True}

    id: int
    slug: str
    title: str
    description: str | None = None
    cover_image: str | None = None
    content: str = ""
    category_id: int
    series_id: int | None = None
    published: bool = False
    visit_count: int = 0
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
    last_synced_at: datetime | None = None


class Category(BaseModel):
    model_config = {"frozen": True}

    id: int
    name: str
    color: str | None = None
    created_at: datetime


class Tag(BaseModel):
    model_config = {"frozen": True}

    id: int
    name: str
    color: str | None = None
    created_at: datetime


class Series(BaseModel):
    model_config = {"frozen": True}

    id: int
    title: str
    description: str | None = None
    cover_image: str | None = None
    color: str | None = None
    created_at: datetime


def reading_time_minutes(content: str) -> int:
    """Estimated reading time at 200 words per minute, at least one minute."""
    words = len(content.split())
    return max(1, -(-words // 200))
