"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, blogsync.toml only contains
overrides. A working setup needs only ``[mirror] url`` and ``local_path``.
"""

from __future__ import annotations

from pydantic import BaseModel


class MirrorConfig(BaseModel):
    """[mirror] section."""

    model_config = {"frozen": True}

    url: str | None = None
    branch: str = "main"
    local_path: str | None = None
    content_path: str = "posts"
    token: str | None = None
    author_name: str = "Blog System"
    author_email: str = "system@blog.com"


class DatabaseConfig(BaseModel):
    """[database] section. ``url`` defaults to ``<data_dir>/blogsync.db``."""

    model_config = {"frozen": True}

    url: str | None = None


class CacheConfig(BaseModel):
    """[cache] section."""

    model_config = {"frozen": True}

    max_entries: int = 2000
    ttl_seconds: int = 86400


class ImagesConfig(BaseModel):
    """[images] section."""

    model_config = {"frozen": True}

    pexels_api_key: str | None = None
    timeout_seconds: float = 10.0


class ArticlesConfig(BaseModel):
    """[articles] section."""

    model_config = {"frozen": True}

    related_limit: int = 3
    latest_limit: int = 6
    featured_limit: int = 3
    publish_on_create: bool = True


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    enabled: bool = True
