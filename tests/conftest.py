"""Shared fixtures: temporary SQLite databases behind a test-only driver."""

import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from tapsql.drivers import DriverSpec, default_registry
from tapsql.pool import ConnectionPool


def create_sqlite_engine(path, **engine_options):
    """Engine factory for the test-only sqlite driver."""
    return create_engine(f"sqlite:///{path}", **engine_options)


SQLITE = DriverSpec(
    name="sqlite",
    render=lambda params: params["database"],
    create_engine=create_sqlite_engine,
)


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database file."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    # Cleanup
    Path(db_path).unlink(missing_ok=True)


@pytest.fixture
def registry():
    """Default registry plus a sqlite driver for tests."""
    registry = default_registry()
    registry.register(SQLITE, aliases=("sqlite3",))
    return registry


@pytest.fixture
def pool(registry):
    """Connection pool over the test registry."""
    pool = ConnectionPool(registry=registry)
    yield pool
    pool.shutdown()


@pytest.fixture
def events_db(temp_db):
    """Events table with ids 5, 7, 9 inserted out of order."""
    engine = create_engine(f"sqlite:///{temp_db}")
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE events (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    payload BLOB
                )
                """
            )
        )
        conn.execute(
            text(
                """
                INSERT INTO events (id, name, payload)
                VALUES
                    (9, 'gamma', X'6e696e65'),
                    (5, 'alpha', X'66697665'),
                    (7, 'beta', NULL)
                """
            )
        )
    engine.dispose()
    return temp_db


@pytest.fixture
def events_engine(pool, events_db):
    """Pooled engine for the events database."""
    return pool.acquire("sqlite", {"database": events_db})
