"""Tests for the record-store port: listings, batch fetches, and counts."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from blogsync.domain.models import PublishStatus
from blogsync.infrastructure.repositories.records import ArticleQuery
from blogsync.infrastructure.store import Store
from tests.conftest import seed_article

BASE = datetime(2024, 1, 1, tzinfo=UTC)


def _seed_corpus(store: Store) -> None:
    seed_article(
        store,
        "spring-intro",
        title="Spring Intro",
        category="Backend",
        tags=["java", "spring"],
        created_at=BASE,
    )
    seed_article(
        store,
        "java-streams",
        title="Java Streams",
        category="Backend",
        tags=["java"],
        created_at=BASE + timedelta(days=1),
        visit_count=10,
    )
    seed_article(
        store,
        "css-grid",
        title="CSS Grid",
        category="Frontend",
        tags=["css"],
        created_at=BASE + timedelta(days=2),
        visit_count=3,
    )
    seed_article(
        store,
        "draft-post",
        title="Draft Post",
        category="Backend",
        tags=["java", "spring"],
        published=False,
        created_at=BASE + timedelta(days=3),
    )


def _slugs(store: Store, query: ArticleQuery) -> list[str]:
    with store.read() as records:
        items, _ = records.list_articles(query)
    return [a.slug for a in items]


class TestListArticles:
    def test_default_newest_first(self, store: Store) -> None:
        _seed_corpus(store)
        assert _slugs(store, ArticleQuery()) == [
            "draft-post",
            "css-grid",
            "java-streams",
            "spring-intro",
        ]

    def test_search_matches_title_or_slug(self, store: Store) -> None:
        _seed_corpus(store)
        assert _slugs(store, ArticleQuery(search="JAVA")) == ["java-streams"]
        assert _slugs(store, ArticleQuery(search="grid")) == ["css-grid"]

    def test_category_filter_case_insensitive(self, store: Store) -> None:
        _seed_corpus(store)
        assert set(_slugs(store, ArticleQuery(category="backend"))) == {
            "spring-intro",
            "java-streams",
            "draft-post",
        }

    def test_status_filter(self, store: Store) -> None:
        _seed_corpus(store)
        assert _slugs(store, ArticleQuery(status=PublishStatus.DRAFT)) == ["draft-post"]
        assert "draft-post" not in _slugs(store, ArticleQuery(status=PublishStatus.PUBLISHED))

    def test_tags_use_and_semantics(self, store: Store) -> None:
        _seed_corpus(store)
        assert set(_slugs(store, ArticleQuery(tags=["java", "spring"]))) == {
            "spring-intro",
            "draft-post",
        }
        assert set(_slugs(store, ArticleQuery(tags=["java"]))) == {
            "spring-intro",
            "java-streams",
            "draft-post",
        }
        assert _slugs(store, ArticleQuery(tags=["java", "css"])) == []

    def test_combined_filters(self, store: Store) -> None:
        _seed_corpus(store)
        query = ArticleQuery(tags=["java", "spring"], status=PublishStatus.PUBLISHED)
        assert _slugs(store, query) == ["spring-intro"]

    def test_pagination_and_total(self, store: Store) -> None:
        _seed_corpus(store)
        with store.read() as records:
            items, total = records.list_articles(ArticleQuery(page=1, size=3))
        assert total == 4
        assert [a.slug for a in items] == ["spring-intro"]

    def test_sort_ascending_by_visits(self, store: Store) -> None:
        _seed_corpus(store)
        query = ArticleQuery(sort="visit_count", descending=False, status=PublishStatus.PUBLISHED)
        assert _slugs(store, query) == ["spring-intro", "css-grid", "java-streams"]

    def test_series_filter(self, store: Store) -> None:
        with store.transaction() as txn:
            created = txn.records.insert_series(
                title="Rust Basics", created_at="2024-01-01T00:00:00"
            )
        seed_article(store, "rust-1", series_id=created.id)
        seed_article(store, "other")
        assert _slugs(store, ArticleQuery(series="rust basics")) == ["rust-1"]


class TestCacheKey:
    def test_distinct_queries_distinct_keys(self) -> None:
        assert ArticleQuery(page=0).cache_key() != ArticleQuery(page=1).cache_key()
        assert ArticleQuery(tags=["a"]).cache_key() != ArticleQuery(tags=["b"]).cache_key()

    def test_equal_queries_equal_keys(self) -> None:
        assert ArticleQuery(search="x").cache_key() == ArticleQuery(search="x").cache_key()


class TestBatchFetches:
    def test_tag_ids_grouped_by_article(self, store: Store) -> None:
        a = seed_article(store, "a", tags=["one", "two"])
        b = seed_article(store, "b", tags=["two"])
        c = seed_article(store, "c")
        with store.read() as records:
            grouped = records.tag_ids_by_article_ids([a.id, b.id, c.id])
            tags = records.tags_by_ids(t for ids in grouped.values() for t in ids)
        assert [tags[t].name for t in grouped[a.id]] == ["one", "two"]
        assert [tags[t].name for t in grouped[b.id]] == ["two"]
        assert c.id not in grouped

    def test_empty_inputs(self, store: Store) -> None:
        with store.read() as records:
            assert records.categories_by_ids([]) == {}
            assert records.tags_by_ids([]) == {}
            assert records.series_by_ids([]) == {}
            assert records.tag_ids_by_article_ids([]) == {}

    def test_replace_article_tags_dedupes(self, store: Store) -> None:
        article = seed_article(store, "a", tags=["x", "y"])
        with store.transaction() as txn:
            ids = txn.records.tag_ids_for_article(article.id)
            written = txn.records.replace_article_tags(
                article.id, [ids[1], ids[0], ids[1]], "2024-01-01"
            )
        assert written == [ids[1], ids[0]]
        with store.read() as records:
            assert records.tag_ids_for_article(article.id) == [ids[1], ids[0]]


class TestCountsAndShortcuts:
    def test_published_counts(self, store: Store) -> None:
        _seed_corpus(store)
        with store.read() as records:
            backend = records.get_category_by_name("Backend")
            java = records.get_tag_by_name("java")
            assert backend is not None
            assert java is not None
            assert records.published_counts_by_category()[backend.id] == 2
            assert records.published_counts_by_tag()[java.id] == 2
            assert records.count_articles_in_category(backend.id) == 3
            assert records.article_counts() == {"total": 4, "published": 3, "drafts": 1}

    def test_related_same_category_published_only(self, store: Store) -> None:
        _seed_corpus(store)
        with store.read() as records:
            source = records.get_article_by_slug("spring-intro")
            assert source is not None
            related = records.related_articles(source, 5)
        assert [a.slug for a in related] == ["java-streams"]

    def test_featured_by_visits(self, store: Store) -> None:
        _seed_corpus(store)
        with store.read() as records:
            featured = records.featured_articles(2)
        assert [a.slug for a in featured] == ["java-streams", "css-grid"]

    def test_latest_by_published_at(self, store: Store) -> None:
        seed_article(store, "old", published_at=BASE)
        seed_article(store, "new", published_at=BASE + timedelta(days=5))
        seed_article(store, "hidden", published=False)
        with store.read() as records:
            latest = records.latest_articles(5)
        assert [a.slug for a in latest] == ["new", "old"]

    def test_increment_visits(self, store: Store) -> None:
        article = seed_article(store, "a")
        with store.transaction() as txn:
            assert txn.records.increment_visits(article.id) == 1
            assert txn.records.increment_visits(article.id) == 2

    def test_unused_tags(self, store: Store) -> None:
        seed_article(store, "a", tags=["used"])
        with store.transaction() as txn:
            orphan = txn.records.insert_tag("orphan", None, "2024-01-01T00:00:00")
        with store.read() as records:
            assert records.unused_tag_ids() == [orphan.id]

    def test_delete_series_detaches_articles(self, store: Store) -> None:
        with store.transaction() as txn:
            created = txn.records.insert_series(title="S", created_at="2024-01-01T00:00:00")
        article = seed_article(store, "a", series_id=created.id)
        with store.transaction() as txn:
            assert txn.records.delete_series(created.id) == 1
        with store.read() as records:
            reloaded = records.get_article(article.id)
        assert reloaded is not None
        assert reloaded.series_id is None


@pytest.mark.parametrize("sort", ["created_at", "title", "visit_count", "id"])
def test_every_sort_column_is_accepted(store: Store, sort: str) -> None:
    _seed_corpus(store)
    with store.read() as records:
        _, total = records.list_articles(ArticleQuery(sort=sort))
    assert total == 4
