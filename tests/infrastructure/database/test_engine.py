"""Tests for engine setup and table creation."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError

from blogsync.infrastructure.database import init_database, sqlite_url


class TestInitDatabase:
    def test_creates_all_tables(self, tmp_path: Path) -> None:
        engine = init_database(sqlite_url(tmp_path / "blog.db"))
        try:
            names = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert {"articles", "categories", "tags", "series", "article_tags"} <= names

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "blog.db"
        engine = init_database(sqlite_url(db_path))
        engine.dispose()
        assert db_path.is_file()

    def test_idempotent(self, tmp_path: Path) -> None:
        url = sqlite_url(tmp_path / "blog.db")
        engine = init_database(url)
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO tags (name, created_at) VALUES ('python', '2024-01-01')")
            )
        engine.dispose()

        again = init_database(url)
        try:
            with again.connect() as conn:
                count = conn.execute(text("SELECT count(*) FROM tags")).scalar_one()
        finally:
            again.dispose()
        assert count == 1

    def test_sqlite_pragmas(self, tmp_path: Path) -> None:
        engine = init_database(sqlite_url(tmp_path / "blog.db"))
        try:
            with engine.connect() as conn:
                assert conn.execute(text("PRAGMA foreign_keys")).scalar_one() == 1
                assert conn.execute(text("PRAGMA journal_mode")).scalar_one() == "wal"
        finally:
            engine.dispose()

    def test_unique_names_enforced(self, tmp_path: Path) -> None:
        engine = init_database(sqlite_url(tmp_path / "blog.db"))
        insert = text("INSERT INTO categories (name, created_at) VALUES ('A', '2024-01-01')")
        try:
            with engine.begin() as conn:
                conn.execute(insert)
            with pytest.raises(IntegrityError), engine.begin() as conn:
                conn.execute(insert)
        finally:
            engine.dispose()
