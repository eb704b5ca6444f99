"""Database engine setup for the record store.

SQLite is the default persistence layer (WAL mode, foreign keys on).
Any SQLAlchemy URL may be configured instead; tables are created with
``metadata.create_all`` since schema migrations are out of scope.

SQLAlchemy Core (not ORM) keeps every query explicit, including the
batch-by-id fetches used to assemble article listings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from blogsync.infrastructure.database.schema import metadata


def create_db_engine(url: str) -> Engine:
    """Create an engine; SQLite connections get WAL mode and foreign keys."""
    engine = create_engine(url, echo=False)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
            # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly.
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

    return engine


def sqlite_url(db_path: Path) -> str:
    """SQLAlchemy URL for a SQLite file."""
    return f"sqlite:///{db_path}"


def init_database(url: str) -> Engine:
    """Create the engine and all tables. Idempotent."""
    if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
        Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(url)
    metadata.create_all(engine)
    return engine
