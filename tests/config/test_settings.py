"""Tests for BlogSyncSettings: unified settings with a TOML source."""

from pathlib import Path

import click
import pytest

from blogsync.config.settings import BlogSyncSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BLOGSYNC_CONFIG", "BLOGSYNC_MIRROR__TOKEN", "BLOGSYNC_MIRROR__URL"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.mirror.branch == "main"
        assert settings.mirror.content_path == "posts"
        assert settings.mirror.author_name == "Blog System"
        assert settings.cache.ttl_seconds == 86400
        assert settings.articles.related_limit == 3
        assert settings.plugins.enabled is True

    def test_frozen(self, tmp_path: Path) -> None:
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]

    def test_default_paths_under_data_dir(self, tmp_path: Path) -> None:
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.database_url == f"sqlite:///{tmp_path / '.blogsync' / 'blogsync.db'}"
        assert settings.mirror_path == tmp_path / ".blogsync" / "mirror"


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "blogsync.toml").write_text(
            '[mirror]\nurl = "https://github.com/me/blog.git"\nbranch = "trunk"\n'
            "[articles]\nrelated_limit = 5\n"
        )
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.mirror.url == "https://github.com/me/blog.git"
        assert settings.mirror.branch == "trunk"
        assert settings.mirror.content_path == "posts"
        assert settings.articles.related_limit == 5
        assert settings.articles.latest_limit == 6

    def test_project_root_from_discovered_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "blogsync.toml").write_text("")
        nested = tmp_path / "drafts"
        nested.mkdir()
        monkeypatch.chdir(nested)
        settings = BlogSyncSettings.from_cli()
        assert settings.project_root == tmp_path
        assert settings.config_path == tmp_path / "blogsync.toml"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text("[cache]\nmax_entries = 10\n")
        settings = BlogSyncSettings.from_cli(config_path=str(custom), project_root=tmp_path)
        assert settings.cache.max_entries == 10
        assert settings.config_path == custom

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "blogsync.toml").write_text("[mirror\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            BlogSyncSettings.from_cli(project_root=tmp_path)

    def test_relative_local_path_resolves_against_root(self, tmp_path: Path) -> None:
        (tmp_path / "blogsync.toml").write_text('[mirror]\nlocal_path = "content-repo"\n')
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.mirror_path == tmp_path / "content-repo"
        assert settings.resolved_mirror_config().local_path == str(tmp_path / "content-repo")

    def test_database_url_override(self, tmp_path: Path) -> None:
        (tmp_path / "blogsync.toml").write_text('[database]\nurl = "sqlite:///other.db"\n')
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.database_url == "sqlite:///other.db"


class TestPriority:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "blogsync.toml").write_text('[mirror]\ntoken = "from-file"\n')
        monkeypatch.setenv("BLOGSYNC_MIRROR__TOKEN", "from-env")
        settings = BlogSyncSettings.from_cli(project_root=tmp_path)
        assert settings.mirror.token == "from-env"

    def test_cli_flags_override(self, tmp_path: Path) -> None:
        settings = BlogSyncSettings.from_cli(
            project_root=tmp_path, json_output=True, quiet=True, verbose=True, log_json=True
        )
        assert settings.json_output is True
        assert settings.quiet is True
        assert settings.verbose is True
        assert settings.log_json is True
