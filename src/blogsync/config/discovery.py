"""Locate ``blogsync.toml``.

The ``BLOGSYNC_CONFIG`` environment variable wins when set. Otherwise the
search walks from the starting directory towards the filesystem root and
stops at the first directory holding the file.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "blogsync.toml"
CONFIG_ENV_VAR = "BLOGSYNC_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Return the config file for *start* (default: cwd), or None."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
