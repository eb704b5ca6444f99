"""Shared pytest fixtures and test helpers for blogsync tests."""

from __future__ import annotations

import logging
import random
import subprocess
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from blogsync.config.models import MirrorConfig
from blogsync.domain.models import Article
from blogsync.infrastructure import cache
from blogsync.infrastructure.cache import CacheRegistry
from blogsync.infrastructure.mirror import RepositoryMirror
from blogsync.infrastructure.providers import GeneratedMetadata
from blogsync.infrastructure.store import Store
from blogsync.services._helpers import utc_now
from blogsync.services.taxonomy import TaxonomyUpsert


def git(*args: str, cwd: Path) -> str:
    """Run git in *cwd*, returning stdout. Raises on a non-zero exit."""
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout


class Upstream:
    """A bare remote plus an author's clone used to push content to it."""

    def __init__(self, remote: Path, work: Path) -> None:
        self.remote = remote
        self.work = work

    def publish(self, slug: str, text: str, *, extension: str = ".md") -> None:
        """Write ``posts/<slug><extension>``, commit, and push to the remote."""
        git("pull", "--no-rebase", "--no-edit", "origin", "main", cwd=self.work)
        path = self.work / "posts" / f"{slug}{extension}"
        path.write_text(text, encoding="utf-8")
        git("add", "-A", cwd=self.work)
        git("commit", "-m", f"Publish {slug}", cwd=self.work)
        git("push", "origin", "HEAD:main", cwd=self.work)

    def remote_file(self, path: str) -> str:
        """Contents of *path* at the tip of the remote ``main`` branch."""
        return git("--git-dir", str(self.remote), "show", f"main:{path}", cwd=self.work)

    def remote_log(self) -> list[str]:
        """Commit subjects on the remote ``main`` branch, newest first."""
        out = git("--git-dir", str(self.remote), "log", "--format=%s", "main", cwd=self.work)
        return out.splitlines()


class StubGenerator:
    """Metadata generator returning a fixed suggestion and recording calls."""

    def __init__(self, result: GeneratedMetadata | None = None) -> None:
        self.result = result or GeneratedMetadata(
            category="Generated", tags=["auto-tag"], description="Generated description"
        )
        self.calls: list[tuple[str, str]] = []

    def generate(self, title: str, body: str) -> GeneratedMetadata:
        self.calls.append((title, body))
        return self.result


class StubImageSearch:
    """Image search returning a fixed URL (or None) and recording titles."""

    def __init__(self, url: str | None = None) -> None:
        self.url = url
        self.calls: list[str] = []

    def search(self, title: str) -> str | None:
        self.calls.append(title)
        return self.url


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop the handler configure_logging installs during CLI invocations."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    logging.getLogger("blogsync").setLevel(logging.NOTSET)
    structlog.reset_defaults()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def store(tmp_path: Path) -> Iterator[Store]:
    """Store on a fresh SQLite file with all tables created."""
    s = Store.open(f"sqlite:///{tmp_path / 'blogsync.db'}", CacheRegistry())
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def upstream(tmp_path: Path) -> Upstream:
    """Bare remote on branch ``main`` holding an empty ``posts/`` directory.

    This is the single source of truth for the remote repository layout.
    The mirror fixtures and the CLI project fixture all point at it.
    """
    work = tmp_path / "author"
    work.mkdir()
    git("init", cwd=work)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=work)
    git("config", "user.email", "author@example.com", cwd=work)
    git("config", "user.name", "Author", cwd=work)
    git("config", "commit.gpgsign", "false", cwd=work)
    (work / "posts").mkdir()
    (work / "posts" / ".gitkeep").write_text("", encoding="utf-8")
    git("add", "-A", cwd=work)
    git("commit", "-m", "Initial commit", cwd=work)

    remote = tmp_path / "remote.git"
    git("clone", "--bare", str(work), str(remote), cwd=tmp_path)
    git("remote", "add", "origin", str(remote), cwd=work)
    return Upstream(remote, work)


@pytest.fixture
def mirror_config(upstream: Upstream, tmp_path: Path) -> MirrorConfig:
    """Mirror settings for the upstream remote. The token enables pushes."""
    return MirrorConfig(
        url=str(upstream.remote),
        branch="main",
        local_path=str(tmp_path / "mirror"),
        content_path="posts",
        token="test-token",
    )


@pytest.fixture
def mirror(mirror_config: MirrorConfig) -> Iterator[RepositoryMirror]:
    """Initialized working copy of the upstream remote."""
    m = RepositoryMirror(mirror_config)
    m.initialize()
    try:
        yield m
    finally:
        m.close()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def project_root(tmp_path: Path, upstream: Upstream) -> Path:
    """Directory holding a blogsync.toml that points at the upstream remote."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "blogsync.toml").write_text(
        "[mirror]\n"
        f'url = "{upstream.remote.as_posix()}"\n'
        'token = "test-token"\n'
        "\n"
        "[plugins]\n"
        "enabled = false\n",
        encoding="utf-8",
    )
    return root


@pytest.fixture
def _isolated_project(project_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp project so the CLI uses an isolated store and mirror.

    Use via ``@pytest.mark.usefixtures("_isolated_project")`` on command
    test classes.
    """
    monkeypatch.delenv("BLOGSYNC_CONFIG", raising=False)
    monkeypatch.chdir(project_root)


# ---------------------------------------------------------------------------
# Shared test helpers (used across service test modules)
# ---------------------------------------------------------------------------


def seed_article(
    store: Store,
    slug: str,
    *,
    content: str = "Body text",
    category: str = "General",
    tags: list[str] | None = None,
    published: bool = True,
    **values: Any,
) -> Article:
    """Insert an article straight into the record store, bypassing the mirror."""
    now = utc_now()
    row: dict[str, Any] = {
        "slug": slug,
        "title": slug.replace("-", " ").title(),
        "content": content,
        "published": published,
        "visit_count": 0,
        "created_at": now,
        "updated_at": now,
        "published_at": now if published else None,
        "last_synced_at": None,
    }
    row.update(values)
    upsert = TaxonomyUpsert(random.Random(0))
    with store.transaction(invalidates=cache.ARTICLE_CREATE_EVICTS) as txn:
        row["category_id"] = upsert.get_or_create_category(txn, category).id
        article = txn.records.insert_article(**row)
        tag_ids = upsert.get_or_create_tags(txn, tags or [])
        txn.records.replace_article_tags(article.id, tag_ids, now.isoformat())
    return article


def fetch_article(store: Store, article_id: int) -> Article:
    """Read an article back from the store, asserting it exists."""
    with store.read() as records:
        article = records.get_article(article_id)
    assert article is not None
    return article


def tag_names(store: Store, article_id: int) -> list[str]:
    """Names of the tags on an article, in stored order."""
    with store.read() as records:
        ids = records.tag_ids_for_article(article_id)
        by_id = records.tags_by_ids(ids)
    return [by_id[i].name for i in ids]


def category_name(store: Store, article: Article) -> str:
    with store.read() as records:
        category = records.get_category(article.category_id)
    assert category is not None
    return category.name


def at(text: str) -> datetime:
    """Parse an ISO timestamp (test shorthand)."""
    return datetime.fromisoformat(text)
