"""External collaborators: metadata generation and cover-image search.

Both are consumed through narrow protocols and must never propagate a
failure into the sync engine:

- :class:`MetadataGenerator` returns ``("Uncategorized", [], None)`` on
  any failure.
- :class:`ImageSearch` returns None on any failure; None is a valid,
  non-error outcome.
"""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Callable, Sequence
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Uncategorized"

_CONTENT_LIMIT = 1000
_CATEGORY_RE = re.compile(r"<!--\s*CATEGORY:\s*(.+?)\s*-->", re.IGNORECASE)
_TAGS_RE = re.compile(r"<!--\s*TAGS:\s*(.+?)\s*-->", re.IGNORECASE)
_DESCRIPTION_RE = re.compile(r"<!--\s*DESCRIPTION:\s*(.+?)\s*-->", re.IGNORECASE | re.DOTALL)


class GeneratedMetadata(BaseModel):
    """Suggested category, tags, and description for an article."""

    model_config = {"frozen": True}

    category: str = DEFAULT_CATEGORY
    tags: list[str] = Field(default_factory=list)
    description: str | None = None


class MetadataGenerator(Protocol):
    def generate(self, title: str, body: str) -> GeneratedMetadata: ...


class TextProvider(Protocol):
    """Any text-completion backend (prompt in, text out)."""

    def complete(self, prompt: str) -> str: ...


class ImageSearch(Protocol):
    def search(self, title: str) -> str | None: ...


# ---------------------------------------------------------------------------
# Metadata generation
# ---------------------------------------------------------------------------


class DefaultMetadataGenerator:
    """Generator used when no text provider is configured."""

    def generate(self, title: str, body: str) -> GeneratedMetadata:
        return GeneratedMetadata()


class PromptMetadataGenerator:
    """Ask a :class:`TextProvider` for metadata and parse marker comments.

    The provider is expected to answer with::

        <!-- CATEGORY: Backend -->
        <!-- TAGS: java, spring-boot -->
        <!-- DESCRIPTION: One or two sentences. -->

    ``existing_names`` supplies current category and tag names so the
    provider can prefer them over inventing new ones.
    """

    def __init__(
        self,
        provider: TextProvider,
        existing_names: Callable[[], tuple[Sequence[str], Sequence[str]]] | None = None,
    ) -> None:
        self._provider = provider
        self._existing_names = existing_names

    def generate(self, title: str, body: str) -> GeneratedMetadata:
        try:
            response = self._provider.complete(self.build_prompt(title, body))
            return parse_generated(response)
        except Exception:
            logger.warning("Metadata generation failed; using defaults", exc_info=True)
            return GeneratedMetadata()

    def build_prompt(self, title: str, body: str) -> str:
        categories: Sequence[str] = ()
        tags: Sequence[str] = ()
        if self._existing_names is not None:
            categories, tags = self._existing_names()
        truncated = body if len(body) <= _CONTENT_LIMIT else body[:_CONTENT_LIMIT] + "..."
        category_list = ", ".join(c for c in categories if c.lower() != DEFAULT_CATEGORY.lower())
        return (
            "Analyze this blog post and generate metadata.\n\n"
            f"Title: {title}\n"
            f"Content:\n{truncated}\n\n"
            "1. Category: a broad topic area in Title Case. Reuse an existing name "
            f"when one fits. Existing categories: {category_list}\n"
            "2. Tags: 3-5 specific topics in kebab-case. Reuse existing names when "
            f"they match. Existing tags: {', '.join(tags)}\n"
            "3. Description: one or two short sentences, under 200 characters.\n\n"
            "Format your response EXACTLY as:\n"
            "<!-- CATEGORY: [category] -->\n"
            "<!-- TAGS: [tag1, tag2, tag3] -->\n"
            "<!-- DESCRIPTION: [description] -->\n"
        )


def parse_generated(response: str) -> GeneratedMetadata:
    """Extract marker comments from a provider response; missing markers use defaults."""
    category_match = _CATEGORY_RE.search(response)
    tags_match = _TAGS_RE.search(response)
    description_match = _DESCRIPTION_RE.search(response)

    category = category_match.group(1).strip() if category_match else DEFAULT_CATEGORY
    tags: list[str] = []
    if tags_match:
        tags = [t.strip() for t in re.split(r"\s*,\s*", tags_match.group(1).strip()) if t.strip()]
    description = description_match.group(1).strip() if description_match else None
    return GeneratedMetadata(
        category=category or DEFAULT_CATEGORY, tags=tags, description=description
    )


# ---------------------------------------------------------------------------
# Image search
# ---------------------------------------------------------------------------

PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"

TOPIC_POOL: tuple[str, ...] = (
    "technology",
    "software",
    "programming",
    "coding",
    "computer",
    "science",
    "space",
    "cosmos",
    "abstract",
    "geometry",
)


def build_search_query(title: str, rng: random.Random) -> str:
    """Up to six title words longer than two characters, plus a random topic."""
    cleaned = re.sub(r"[^\w\s-]", " ", title.lower()).strip()
    words = [w for w in cleaned.split() if len(w) > 2][:6]
    topic = rng.choice(TOPIC_POOL)
    if not words:
        return topic
    return " ".join([*words, topic])


class NullImageSearch:
    """Image search used when no API key is configured."""

    def search(self, title: str) -> str | None:
        return None


class PexelsImageSearch:
    """Cover-image lookup against the Pexels search API via httpx."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = 10.0,
        rng: random.Random | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._rng = rng or random.Random()
        self._transport = transport

    def search(self, title: str) -> str | None:
        query = build_search_query(title, self._rng)
        logger.info("Searching Pexels for: %s", query)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(
                    PEXELS_SEARCH_URL,
                    params={"query": query, "per_page": 1},
                    headers={"Authorization": self._api_key},
                )
                response.raise_for_status()
                payload: dict[str, Any] = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Pexels search failed: %s", exc)
            return None

        photos = payload.get("photos") or []
        if not photos:
            logger.info("No photos found for query: %s", query)
            return None
        src = photos[0].get("src") or {}
        url = src.get("large2x") or src.get("large") or src.get("original")
        return str(url) if url else None
