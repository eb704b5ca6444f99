"""RepositoryMirror: the local git working copy of the content repository.

All git work goes through the ``git`` executable via :mod:`subprocess`.
The mirror is an explicit resource: construct it once, call
:meth:`RepositoryMirror.initialize`, pass it to services, and
:meth:`RepositoryMirror.close` it on shutdown (or use it as a context
manager).

Concurrency: :meth:`pull_latest` and :meth:`commit_and_push` share one
lock because both mutate the working tree and refs. File reads are not
locked against a concurrent pull.

The credential token is never written to ``.git/config``; it is injected
into the remote URL only for the duration of each network command.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from urllib.parse import urlsplit, urlunsplit

from blogsync.config.models import MirrorConfig
from blogsync.domain import frontmatter
from blogsync.domain.errors import MirrorError
from blogsync.domain.frontmatter import FrontmatterRecord

logger = logging.getLogger(__name__)

DOCUMENT_EXTENSIONS: tuple[str, ...] = (".md", ".mdx")


@dataclass(frozen=True)
class MirrorDocument:
    """A document found in the working copy, split into metadata and body."""

    slug: str
    path: str
    raw: str
    record: FrontmatterRecord | None
    body: str

    @property
    def has_metadata(self) -> bool:
        return self.record is not None


class RepositoryMirror:
    """Clone-or-open, pull, read/write, and commit+push a content repository."""

    def __init__(self, config: MirrorConfig) -> None:
        self._config = config
        self._root = Path(config.local_path).expanduser() if config.local_path else None
        self._lock = threading.Lock()
        self._ready = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def root(self) -> Path:
        if self._root is None:
            msg = "Mirror local_path is not configured"
            raise MirrorError(msg)
        return self._root

    @property
    def content_root(self) -> Path:
        return self.root / self._config.content_path

    @property
    def is_ready(self) -> bool:
        return self._ready

    def initialize(self) -> None:
        """Open the working copy if present, otherwise clone it; then pull.

        Raises:
            MirrorError: The repository could not be opened, cloned, or pulled.
        """
        root = self.root
        if (root / ".git").exists():
            logger.info("Opened existing git repository at %s", root)
        else:
            self._clone(root)
        self._ready = True
        self.pull_latest()

    def close(self) -> None:
        """Release the working copy. Further operations require re-initialization."""
        self._ready = False

    def __enter__(self) -> RepositoryMirror:
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    def pull_latest(self) -> None:
        """Fetch and merge the tracked branch from the remote.

        Raises:
            MirrorError: git pull failed.
        """
        self._require_ready()
        with self._lock:
            logger.info("Pulling latest changes from branch: %s", self._config.branch)
            try:
                self._run_git(
                    "pull", "--no-rebase", "--no-edit", self._remote(), self._config.branch
                )
            except (OSError, subprocess.CalledProcessError) as exc:
                raise MirrorError(f"git pull failed: {_describe(exc)}") from exc

    def commit_and_push(self, message: str) -> str:
        """Stage everything, commit as the service identity, push if a token is set.

        Returns the HEAD commit SHA. When nothing is staged no commit is
        created and the current HEAD is returned.

        Raises:
            MirrorError: git add, commit, or push failed.
        """
        self._require_ready()
        with self._lock:
            try:
                self._run_git("add", "-A")
                if self._has_staged_changes():
                    self._run_git(
                        "commit",
                        "-m",
                        message,
                        "--author",
                        f"{self._config.author_name} <{self._config.author_email}>",
                    )
                    logger.info("Committed: %s", message.splitlines()[0] if message else "")
                else:
                    logger.debug("Nothing to commit for: %s", message)
                sha = self._run_git("rev-parse", "HEAD").stdout.strip()
            except (OSError, subprocess.CalledProcessError) as exc:
                raise MirrorError(f"git commit failed: {_describe(exc)}") from exc

            if self._config.token:
                try:
                    self._run_git("push", self._remote(), f"HEAD:{self._config.branch}")
                except (OSError, subprocess.CalledProcessError) as exc:
                    raise MirrorError(f"git push failed: {_describe(exc)}") from exc
                logger.info("Pushed %s to remote", sha[:7])
            else:
                logger.warning("Mirror token not set - skipping push of %s", sha[:7])
            return sha

    def latest_commit(self) -> str | None:
        """SHA of HEAD, or None if it cannot be resolved."""
        try:
            return self._run_git("rev-parse", "HEAD").stdout.strip() or None
        except (OSError, subprocess.CalledProcessError) as exc:
            logger.debug("git rev-parse failed: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Working-tree file access
    # ------------------------------------------------------------------

    def read_file(self, path: str) -> str | None:
        """Read a file relative to the repository root. Missing ⇒ None."""
        target = self._resolve(path)
        if not target.is_file():
            logger.debug("File not found: %s", path)
            return None
        return target.read_text(encoding="utf-8")

    def write_file(self, path: str, content: str) -> None:
        """Write a file relative to the repository root, creating parents."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        logger.debug("Wrote file: %s (%d chars)", path, len(content))

    def file_exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def document_path(self, slug: str, extension: str = ".md") -> str:
        """Repository-relative path of the document for *slug*."""
        return (Path(self._config.content_path) / f"{slug}{extension}").as_posix()

    def list_documents(self) -> list[str]:
        """Slugs of every ``.md``/``.mdx`` document under the content root."""
        content_root = self.content_root
        if not content_root.is_dir():
            logger.warning("Content directory not found: %s", content_root)
            return []
        slugs = {
            p.stem
            for p in content_root.iterdir()
            if p.is_file() and p.suffix in DOCUMENT_EXTENSIONS
        }
        return sorted(slugs)

    def find_document(self, slug: str) -> MirrorDocument | None:
        """Locate the document for *slug*, trying ``.md`` then ``.mdx``."""
        for extension in DOCUMENT_EXTENSIONS:
            path = self.document_path(slug, extension)
            raw = self.read_file(path)
            if raw is None:
                continue
            record = frontmatter.parse(raw) if frontmatter.has_metadata_block(raw) else None
            body = frontmatter.document_body(raw)
            return MirrorDocument(slug=slug, path=path, raw=raw, record=record, body=body)
        logger.debug("No document found for slug: %s", slug)
        return None

    # ------------------------------------------------------------------
    # git subprocess helpers
    # ------------------------------------------------------------------

    def _run_git(self, *args: str, cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
        """Run a git command in the working copy. Raises on failure."""
        return subprocess.run(
            [
                "git",
                "-c",
                f"user.name={self._config.author_name}",
                "-c",
                f"user.email={self._config.author_email}",
                *args,
            ],
            cwd=cwd or self.root,
            capture_output=True,
            text=True,
            check=True,
        )

    def _clone(self, root: Path) -> None:
        if not self._config.url:
            msg = "Mirror url is not configured and no working copy exists"
            raise MirrorError(msg)
        logger.info("Cloning repository from %s to %s", self._config.url, root)
        root.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._run_git(
                "clone",
                "--branch",
                self._config.branch,
                self._authenticated_url(),
                str(root),
                cwd=root.parent,
            )
            # Keep the token out of the persisted remote configuration.
            self._run_git("remote", "set-url", "origin", self._config.url)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise MirrorError(f"git clone failed: {_describe(exc)}") from exc

    def _has_staged_changes(self) -> bool:
        try:
            self._run_git("diff", "--cached", "--quiet")
        except subprocess.CalledProcessError as exc:
            if exc.returncode == 1:
                return True
            raise
        return False

    def _remote(self) -> str:
        """Remote argument for network commands (token-bearing URL or ``origin``)."""
        if self._config.token and self._config.url and _is_http(self._config.url):
            return self._authenticated_url()
        return "origin"

    def _authenticated_url(self) -> str:
        url = self._config.url or ""
        token = self._config.token
        if not token or not _is_http(url):
            return url
        parts = urlsplit(url)
        host = parts.hostname or ""
        if parts.port:
            host = f"{host}:{parts.port}"
        netloc = f"{token}@{host}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    def _resolve(self, path: str) -> Path:
        root = self.root.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            msg = f"Path escapes the working copy: {path}"
            raise ValueError(msg)
        return target

    def _require_ready(self) -> None:
        if not self._ready:
            msg = "Mirror is not initialized"
            raise MirrorError(msg)


def _is_http(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def _describe(exc: BaseException) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = (exc.stderr or "").strip()
        return stderr.splitlines()[-1] if stderr else f"exit status {exc.returncode}"
    return str(exc)
