"""Pluggy hook specifications for blogsync lifecycle events.

Hooks run synchronously after the triggering transaction has committed.
"""

from __future__ import annotations

import pluggy

hookspec = pluggy.HookspecMarker("blogsync")
hookimpl = pluggy.HookimplMarker("blogsync")


class BlogSyncHookSpec:
    """Hook specifications for the blogsync plugin system."""

    @hookspec
    def post_create_article(self, article_id: int, slug: str, title: str, tags: list[str]) -> None:
        """Called after an article is created from the mirror."""

    @hookspec
    def post_update_article(self, article_id: int, slug: str, fields_changed: list[str]) -> None:
        """Called after an article's metadata is updated."""

    @hookspec
    def post_publish_article(self, article_id: int, slug: str, published: bool) -> None:
        """Called after publish or unpublish."""

    @hookspec
    def post_delete_article(self, article_id: int, slug: str) -> None:
        """Called after an article is deleted."""

    @hookspec
    def post_sync(self, synced: int, skipped: int, errors: list[str]) -> None:
        """Called after a sync run (single article or batch)."""
