"""Tests for the metadata generator and image search collaborators."""

from __future__ import annotations

import random

import httpx

from blogsync.infrastructure.providers import (
    DEFAULT_CATEGORY,
    TOPIC_POOL,
    DefaultMetadataGenerator,
    GeneratedMetadata,
    NullImageSearch,
    PexelsImageSearch,
    PromptMetadataGenerator,
    build_search_query,
    parse_generated,
)


class FakeProvider:
    def __init__(self, response: str = "", error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


class TestParseGenerated:
    def test_all_markers(self) -> None:
        response = (
            "Sure!\n"
            "<!-- CATEGORY: Backend -->\n"
            "<!-- TAGS: java, spring-boot , testing -->\n"
            "<!-- DESCRIPTION: Getting started with Spring. -->\n"
        )
        assert parse_generated(response) == GeneratedMetadata(
            category="Backend",
            tags=["java", "spring-boot", "testing"],
            description="Getting started with Spring.",
        )

    def test_missing_markers_use_defaults(self) -> None:
        assert parse_generated("no markers here") == GeneratedMetadata()

    def test_markers_case_insensitive(self) -> None:
        parsed = parse_generated("<!-- category: Ops -->")
        assert parsed.category == "Ops"


class TestGenerators:
    def test_default_generator(self) -> None:
        generated = DefaultMetadataGenerator().generate("T", "body")
        assert generated.category == DEFAULT_CATEGORY
        assert generated.tags == []
        assert generated.description is None

    def test_prompt_generator_parses_response(self) -> None:
        provider = FakeProvider("<!-- CATEGORY: Frontend -->\n<!-- TAGS: css -->")
        generated = PromptMetadataGenerator(provider).generate("Grid", "body")
        assert generated.category == "Frontend"
        assert generated.tags == ["css"]

    def test_prompt_generator_failure_returns_defaults(self) -> None:
        provider = FakeProvider(error=RuntimeError("quota exceeded"))
        generated = PromptMetadataGenerator(provider).generate("T", "body")
        assert generated == GeneratedMetadata()

    def test_prompt_lists_existing_names(self) -> None:
        provider = FakeProvider("")
        generator = PromptMetadataGenerator(
            provider, existing_names=lambda: (["Backend", "Uncategorized"], ["java"])
        )
        prompt = generator.build_prompt("T", "x" * 1500)
        assert "Existing categories: Backend\n" in prompt
        assert "Existing tags: java" in prompt
        assert "x" * 1000 + "..." in prompt
        assert "x" * 1001 not in prompt


class TestBuildSearchQuery:
    def test_long_words_plus_topic(self) -> None:
        query = build_search_query("A Guide to Spring Boot, Testing!", random.Random(3))
        words = query.split()
        assert words[:4] == ["guide", "spring", "boot", "testing"]
        assert words[-1] in TOPIC_POOL

    def test_title_without_long_words(self) -> None:
        assert build_search_query("Go", random.Random(3)) in TOPIC_POOL

    def test_at_most_six_title_words(self) -> None:
        query = build_search_query("one two three four five six seven eight", random.Random(1))
        assert len(query.split()) == 7


class TestPexelsImageSearch:
    def test_returns_first_photo(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"photos": [{"src": {"large2x": "https://img/1.jpg", "large": "x"}}]},
            )

        search = PexelsImageSearch(
            "key-123", rng=random.Random(0), transport=httpx.MockTransport(handler)
        )
        assert search.search("Spring Boot") == "https://img/1.jpg"
        assert seen[0].headers["Authorization"] == "key-123"
        assert seen[0].url.params["per_page"] == "1"
        assert seen[0].url.params["query"].startswith("spring boot ")

    def test_no_photos_is_none(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"photos": []}))
        assert PexelsImageSearch("k", transport=transport).search("T") is None

    def test_http_error_is_none(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        assert PexelsImageSearch("k", transport=transport).search("T") is None

    def test_invalid_json_is_none(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="not json"))
        assert PexelsImageSearch("k", transport=transport).search("T") is None

    def test_falls_back_to_large(self) -> None:
        transport = httpx.MockTransport(
            lambda r: httpx.Response(200, json={"photos": [{"src": {"large": "https://img/l"}}]})
        )
        assert PexelsImageSearch("k", transport=transport).search("T") == "https://img/l"

    def test_null_image_search(self) -> None:
        assert NullImageSearch().search("anything") is None
