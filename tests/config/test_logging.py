"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from blogsync.config.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    blog = logging.getLogger("blogsync")
    blog_level = blog.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    blog.setLevel(blog_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger("blogsync").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger("blogsync").level == logging.WARNING

    def test_json_mode_output(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("blogsync.sync").warning("sync_completed", synced=3)
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "sync_completed"
        assert parsed["synced"] == 3
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "blogsync.sync"
        assert "timestamp" in parsed

    def test_stdlib_logger_gets_structured_fields(
        self, capfd: pytest.CaptureFixture[str]
    ) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("blogsync.infrastructure.mirror").debug("Pulled latest from main")
        parsed = json.loads(capfd.readouterr().err.strip())
        assert parsed["event"] == "Pulled latest from main"
        assert parsed["level"] == "debug"
        assert parsed["logger"] == "blogsync.infrastructure.mirror"

    def test_debug_hidden_without_verbose(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=False, log_json=True)
        logging.getLogger("blogsync.services.sync").info("Synced post (12 chars)")
        assert capfd.readouterr().err == ""

    def test_third_party_debug_is_suppressed(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        logging.getLogger("httpx").debug("request noise")
        logging.getLogger("sqlalchemy").debug("engine noise")
        assert capfd.readouterr().err == ""

    def test_idempotent_calls(self) -> None:
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1
