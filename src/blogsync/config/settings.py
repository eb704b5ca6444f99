"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``BLOGSYNC_*`` prefix, ``__`` for nested sections
                    (e.g. ``BLOGSYNC_MIRROR__TOKEN``)
  3. TOML file    — ``blogsync.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from blogsync.config.discovery import find_config
from blogsync.config.models import (
    ArticlesConfig,
    CacheConfig,
    DatabaseConfig,
    ImagesConfig,
    MirrorConfig,
    PluginsConfig,
)

DATA_DIRNAME = ".blogsync"
DB_FILENAME = "blogsync.db"


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``blogsync.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class BlogSyncSettings(BaseSettings):
    """Unified settings for the blogsync CLI and services.

    Attributes:
        project_root: Directory holding ``blogsync.toml`` (or CWD).
        config_path: Resolved config file, or None when none was found.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "BLOGSYNC_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved path (derived from the config location, not read from TOML) ---
    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    mirror: MirrorConfig = Field(default_factory=MirrorConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    images: ImagesConfig = Field(default_factory=ImagesConfig)
    articles: ArticlesConfig = Field(default_factory=ArticlesConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @property
    def data_dir(self) -> Path:
        """Directory for the default database and mirror checkout."""
        return self.project_root / DATA_DIRNAME

    @property
    def database_url(self) -> str:
        if self.database.url:
            return self.database.url
        return f"sqlite:///{self.data_dir / DB_FILENAME}"

    @property
    def mirror_path(self) -> Path:
        """Working-copy location; relative paths resolve against the project root."""
        if self.mirror.local_path:
            path = Path(self.mirror.local_path).expanduser()
            return path if path.is_absolute() else self.project_root / path
        return self.data_dir / "mirror"

    def resolved_mirror_config(self) -> MirrorConfig:
        """The [mirror] section with ``local_path`` made absolute."""
        return self.mirror.model_copy(update={"local_path": str(self.mirror_path)})

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> BlogSyncSettings:
        """Construct settings from CLI invocation.

        Discovers ``blogsync.toml`` via walk-up (or explicit *config_path*),
        resolves *project_root* from the config file's parent directory,
        and merges CLI flags as highest-priority overrides.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(project_root)

        resolved_root = project_root
        if resolved_root is None:
            resolved_root = toml_path.parent if toml_path else Path.cwd()

        _tls.toml_path = toml_path
        try:
            return cls(
                project_root=resolved_root,
                config_path=toml_path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
