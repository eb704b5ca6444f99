"""Tests for the cache command group."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from blogsync.cli import cli


@pytest.mark.usefixtures("_isolated_project")
class TestCacheCommands:
    def test_clear(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "cache", "clear"])
        assert result.exit_code == 0, result.stderr
        payload = json.loads(result.stdout)
        assert payload["op"] == "clear_cache"
        assert payload["data"]["cleared"] == 0
        assert "articles" in payload["data"]["regions"]

    def test_stats_table(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["cache", "stats"])
        assert result.exit_code == 0, result.stderr
        assert "cache_stats" in result.stdout
        assert "article_by_slug" in result.stdout
