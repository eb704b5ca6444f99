"""Frontmatter codec: detect, parse, strip, and render the metadata block.

A document may begin with a ``---`` delimited YAML mapping::

    ---
    title: "Hello"
    category: Backend
    tags:
      - java
    description: "desc"
    coverImage: ""
    publishedAt: null
    ---

    # Hello
    Body text

Only the recognized keys below are mapped onto :class:`FrontmatterRecord`.
Parsing never raises: a broken block is logged and treated as absent, and
a date that cannot be read drops only that field.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from io import StringIO
from typing import Any

from pydantic import BaseModel
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor
from ruamel.yaml.error import YAMLError
from ruamel.yaml.representer import RoundTripRepresenter
from ruamel.yaml.scalarstring import DoubleQuotedScalarString

logger = logging.getLogger(__name__)

_FRONTMATTER_DELIMITER = "---"

# Tried in order after ISO 8601; first success wins.
_DATETIME_FORMATS: tuple[str, ...] = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


class FrontmatterRecord(BaseModel):
    """Parsed metadata block. ``None`` means the key was absent."""

    model_config = {"frozen": True}

    title: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    description: str | None = None
    cover_image: str | None = None
    published_at: datetime | None = None

    @property
    def has_cover_image(self) -> bool:
        """An empty ``coverImage`` is treated as unset."""
        return bool(self.cover_image)


class _LenientConstructor(SafeConstructor):
    """Safe loader that keeps an impossible timestamp as its raw text."""

    def construct_yaml_timestamp(self, node: Any, values: Any = None) -> Any:
        try:
            return super().construct_yaml_timestamp(node, values)
        except ValueError:
            return self.construct_scalar(node)


_LenientConstructor.add_constructor(
    "tag:yaml.org,2002:timestamp", _LenientConstructor.construct_yaml_timestamp
)


class _BlockRepresenter(RoundTripRepresenter):
    """Round-trip representer writing None as ``null`` and datetimes as ISO 8601."""

    def represent_none(self, data: Any) -> Any:
        return self.represent_scalar("tag:yaml.org,2002:null", "null")

    def represent_iso_datetime(self, data: datetime) -> Any:
        return self.represent_scalar("tag:yaml.org,2002:timestamp", data.isoformat())


_BlockRepresenter.add_representer(type(None), _BlockRepresenter.represent_none)
_BlockRepresenter.add_representer(datetime, _BlockRepresenter.represent_iso_datetime)


def _new_yaml() -> YAML:
    """Create a fresh safe YAML loader per call (loader state is not reusable)."""
    y = YAML(typ="safe", pure=True)
    y.Constructor = _LenientConstructor
    return y


def _new_emitter() -> YAML:
    y = YAML()
    y.Representer = _BlockRepresenter
    y.indent(mapping=2, sequence=4, offset=2)
    y.width = 4096
    return y


def _split(text: str) -> tuple[str, str] | None:
    """Split *text* into ``(yaml_block, remainder)`` or None without a block."""
    normalized = text.replace("\r\n", "\n")
    lines = normalized.split("\n")
    if not lines or lines[0].strip() != _FRONTMATTER_DELIMITER:
        return None

    for i, line in enumerate(lines[1:], start=1):
        if line.strip() == _FRONTMATTER_DELIMITER:
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1 :])
    return None


# ---------------------------------------------------------------------------
# Public codec API
# ---------------------------------------------------------------------------


def has_metadata_block(text: str) -> bool:
    """True iff *text* opens with a delimiter line and a second one follows."""
    if not text:
        return False
    return _split(text) is not None


def parse(text: str) -> FrontmatterRecord | None:
    """Parse the metadata block of *text* into a :class:`FrontmatterRecord`.

    Returns None when there is no block, the block is empty or not a
    mapping, or the YAML is malformed.
    """
    if not text or not text.strip():
        return None

    parts = _split(text)
    if parts is None:
        return None
    yaml_block, _ = parts

    try:
        data = _new_yaml().load(yaml_block)
    except (YAMLError, ValueError) as exc:
        logger.warning("Failed to parse frontmatter YAML: %s", exc)
        return None

    if not data or not isinstance(data, dict):
        logger.debug("Frontmatter block is empty or not a mapping")
        return None

    return FrontmatterRecord(
        title=_get_string(data, "title"),
        category=_get_string(data, "category"),
        tags=_get_string_list(data, "tags"),
        description=_get_string(data, "description"),
        cover_image=_get_string(data, "coverImage"),
        published_at=_get_datetime(data, "publishedAt"),
    )


def strip_metadata_block(text: str) -> str:
    """Return the body after the metadata block, trimmed.

    Text without a block is returned unchanged.
    """
    if not text:
        return text
    parts = _split(text)
    if parts is None:
        return text
    return parts[1].strip()


def document_body(text: str) -> str:
    """Body of *text* without its metadata block, trimmed whether or not it had one."""
    return strip_metadata_block(text).strip() if text else ""


def serialize(record: FrontmatterRecord) -> str:
    """Render *record* as block text (without delimiters).

    Output is deterministic: ``title``, ``category``, ``tags`` (only when
    non-empty), ``description``, ``coverImage`` (always), ``publishedAt``
    (``null`` when absent).
    """
    block: dict[str, Any] = {}
    if record.title is not None:
        block["title"] = DoubleQuotedScalarString(record.title)
    if record.category is not None:
        block["category"] = DoubleQuotedScalarString(record.category)
    if record.tags:
        block["tags"] = list(record.tags)
    if record.description is not None:
        block["description"] = DoubleQuotedScalarString(record.description)
    block["coverImage"] = DoubleQuotedScalarString(record.cover_image or "")
    block["publishedAt"] = record.published_at
    buf = StringIO()
    _new_emitter().dump(block, buf)
    return buf.getvalue()


def replace(text: str, record: FrontmatterRecord) -> str:
    """Replace (or add) the metadata block of *text*, keeping its body."""
    body = strip_metadata_block(text or "")
    return f"{_FRONTMATTER_DELIMITER}\n{serialize(record)}{_FRONTMATTER_DELIMITER}\n\n{body}"


# ---------------------------------------------------------------------------
# Field coercion helpers
# ---------------------------------------------------------------------------


def _get_string(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    return str(value).strip()


def _get_string_list(data: dict[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None]
    # A scalar where a sequence is expected becomes a one-element list.
    return [str(value).strip()]


def _get_datetime(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    raw = str(value).strip()
    if not raw or raw.lower() == "null":
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        pass
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            continue
    logger.warning("Could not parse date: %s", raw)
    return None

