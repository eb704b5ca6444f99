"""Tests for RepositoryMirror against a local bare remote."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from blogsync.config.models import MirrorConfig
from blogsync.domain.errors import MirrorError
from blogsync.infrastructure.mirror import RepositoryMirror
from tests.conftest import Upstream, git


class TestInitialize:
    def test_clones_when_missing(self, mirror_config: MirrorConfig) -> None:
        mirror = RepositoryMirror(mirror_config)
        mirror.initialize()
        assert (mirror.root / ".git").is_dir()
        assert (mirror.content_root / ".gitkeep").is_file()
        assert mirror.is_ready

    def test_opens_existing_working_copy(
        self, mirror_config: MirrorConfig, upstream: Upstream
    ) -> None:
        RepositoryMirror(mirror_config).initialize()
        upstream.publish("later", "# Later\n")
        reopened = RepositoryMirror(mirror_config)
        reopened.initialize()
        assert reopened.find_document("later") is not None

    def test_token_not_persisted_in_remote(self, mirror: RepositoryMirror) -> None:
        url = git("remote", "get-url", "origin", cwd=mirror.root).strip()
        assert "test-token" not in url

    def test_missing_url_without_checkout_fails(self, tmp_path: Path) -> None:
        mirror = RepositoryMirror(MirrorConfig(local_path=str(tmp_path / "m")))
        with pytest.raises(MirrorError, match="url is not configured"):
            mirror.initialize()

    def test_missing_local_path_fails(self) -> None:
        with pytest.raises(MirrorError, match="local_path"):
            RepositoryMirror(MirrorConfig(url="https://example.com/r.git")).initialize()

    def test_unreachable_remote_fails(self, tmp_path: Path) -> None:
        config = MirrorConfig(url=str(tmp_path / "nowhere.git"), local_path=str(tmp_path / "m"))
        with pytest.raises(MirrorError, match="git clone failed"):
            RepositoryMirror(config).initialize()

    def test_context_manager_closes(self, mirror_config: MirrorConfig) -> None:
        with RepositoryMirror(mirror_config) as mirror:
            assert mirror.is_ready
        assert not mirror.is_ready


class TestPull:
    def test_pull_brings_new_documents(
        self, mirror: RepositoryMirror, upstream: Upstream
    ) -> None:
        upstream.publish("fresh", "# Fresh\nbody")
        assert mirror.find_document("fresh") is None
        mirror.pull_latest()
        assert mirror.find_document("fresh") is not None

    def test_pull_requires_initialize(self, mirror_config: MirrorConfig) -> None:
        with pytest.raises(MirrorError, match="not initialized"):
            RepositoryMirror(mirror_config).pull_latest()

    def test_pull_failure_is_mirror_error(
        self, mirror: RepositoryMirror, upstream: Upstream
    ) -> None:
        git("remote", "set-url", "origin", str(upstream.remote) + "-gone", cwd=mirror.root)
        with pytest.raises(MirrorError, match="git pull failed"):
            mirror.pull_latest()


class TestCommitAndPush:
    def test_commit_and_push(self, mirror: RepositoryMirror, upstream: Upstream) -> None:
        mirror.write_file("posts/new.md", "# New\n")
        sha = mirror.commit_and_push("Add article: New")
        assert sha == mirror.latest_commit()
        assert upstream.remote_log()[0] == "Add article: New"
        assert upstream.remote_file("posts/new.md") == "# New\n"

    def test_commit_uses_service_identity(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/new.md", "# New\n")
        mirror.commit_and_push("Add article: New")
        author = git("log", "-1", "--format=%an <%ae>", cwd=mirror.root).strip()
        assert author == "Blog System <system@blog.com>"

    def test_nothing_to_commit_returns_head(self, mirror: RepositoryMirror) -> None:
        head = mirror.latest_commit()
        assert mirror.commit_and_push("No changes") == head

    def test_without_token_push_is_skipped(
        self, mirror_config: MirrorConfig, upstream: Upstream
    ) -> None:
        mirror = RepositoryMirror(mirror_config.model_copy(update={"token": None}))
        mirror.initialize()
        mirror.write_file("posts/local.md", "# Local\n")
        mirror.commit_and_push("Local only")
        assert "Local only" not in upstream.remote_log()

    def test_push_rejected_is_mirror_error(
        self, mirror: RepositoryMirror, upstream: Upstream
    ) -> None:
        upstream.publish("diverged", "# Diverged\n")
        mirror.write_file("posts/mine.md", "# Mine\n")
        with pytest.raises(MirrorError, match="git push failed"):
            mirror.commit_and_push("Conflicting history")


class TestFiles:
    def test_read_write_roundtrip(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/nested/dir/a.md", "content")
        assert mirror.read_file("posts/nested/dir/a.md") == "content"
        assert mirror.file_exists("posts/nested/dir/a.md")

    def test_read_missing_is_none(self, mirror: RepositoryMirror) -> None:
        assert mirror.read_file("posts/none.md") is None
        assert not mirror.file_exists("posts/none.md")

    def test_path_escape_rejected(self, mirror: RepositoryMirror) -> None:
        with pytest.raises(ValueError, match="escapes"):
            mirror.read_file("../outside.md")

    def test_list_documents(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/b.md", "b")
        mirror.write_file("posts/a.mdx", "a")
        mirror.write_file("posts/notes.txt", "ignored")
        assert mirror.list_documents() == ["a", "b"]

    def test_document_path(self, mirror: RepositoryMirror) -> None:
        assert mirror.document_path("hello") == "posts/hello.md"
        assert mirror.document_path("hello", ".mdx") == "posts/hello.mdx"


class TestFindDocument:
    def test_splits_metadata_and_body(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/p.md", '---\ntitle: "P"\n---\n\n# P\nbody\n')
        document = mirror.find_document("p")
        assert document is not None
        assert document.has_metadata
        assert document.record is not None
        assert document.record.title == "P"
        assert document.body == "# P\nbody"
        assert document.path == "posts/p.md"

    def test_plain_document(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/plain.md", "# Plain\n")
        document = mirror.find_document("plain")
        assert document is not None
        assert document.record is None
        assert document.body == "# Plain"

    def test_mdx_fallback(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/comp.mdx", "# Comp\n")
        document = mirror.find_document("comp")
        assert document is not None
        assert document.path == "posts/comp.mdx"

    def test_md_preferred_over_mdx(self, mirror: RepositoryMirror) -> None:
        mirror.write_file("posts/both.md", "md")
        mirror.write_file("posts/both.mdx", "mdx")
        document = mirror.find_document("both")
        assert document is not None
        assert document.raw == "md"

    def test_missing(self, mirror: RepositoryMirror) -> None:
        assert mirror.find_document("ghost") is None


class TestAuthenticatedUrl:
    def test_token_injected_for_https(self) -> None:
        mirror = RepositoryMirror(
            MirrorConfig(url="https://github.com/me/blog.git", token="s3cret", local_path="/x")
        )
        assert mirror._authenticated_url() == "https://s3cret@github.com/me/blog.git"
        assert mirror._remote() == "https://s3cret@github.com/me/blog.git"

    def test_local_urls_untouched(self) -> None:
        config = MirrorConfig(url="/srv/blog.git", token="s3cret", local_path="/x")
        mirror = RepositoryMirror(config)
        assert mirror._authenticated_url() == "/srv/blog.git"
        assert mirror._remote() == "origin"


def test_git_missing_is_mirror_error(
    mirror_config: MirrorConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    def missing(*args: object, **kwargs: object) -> None:
        raise FileNotFoundError("git")

    monkeypatch.setattr(subprocess, "run", missing)
    with pytest.raises(MirrorError, match="git clone failed"):
        RepositoryMirror(mirror_config).initialize()
