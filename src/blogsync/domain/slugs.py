"""Slug generation and collision handling.

INVARIANT: A slug is write-once. Once an article is created under a slug
it never changes; the slug doubles as the document's filename stem.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase ASCII slug: accents stripped, runs of other chars become ``-``.

    Examples:
        >>> slugify("Xin chào Spring Boot!")
        'xin-chao-spring-boot'
        >>> slugify("  --C# & .NET--  ")
        'c-net'
    """
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALPHANUMERIC.sub("-", stripped.lower()).strip("-")


def unique_slug(base: str, exists: Callable[[str], bool]) -> str:
    """Return *base*, or *base* with the first free ``-N`` suffix.

    The suffix counter is unbounded; callers supply *exists* to check
    both the record store and the mirror.
    """
    slug = base
    counter = 1
    while exists(slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug
