"""Tests for query planning and execution."""

import pytest
from sqlalchemy import create_engine, text

from tapsql.exceptions import ConnectionError, DuplicateHeadersError, QueryError, ValidationError
from tapsql.models.incremental import FullScanMode, OffsetMode, RangeMode, TimestampMode
from tapsql.query import (
    build_query,
    execute_query,
    has_duplicate_headers,
    open_cursor,
    quote_identifier,
)


def _ids(cursor):
    with cursor:
        return [row["id"] for row in cursor]


class TestBuildQuery:
    """Test SQL construction per mode."""

    def test_full_scan(self):
        statement, params = build_query("events", "id", FullScanMode())
        assert statement.text == 'SELECT * FROM "events" ORDER BY "id" ASC'
        assert params == {}

    def test_range(self):
        statement, params = build_query("events", "id", RangeMode(min=5, max=9))
        assert statement.text == (
            'SELECT * FROM "events" WHERE "id" >= :min AND "id" < :max ORDER BY "id" ASC'
        )
        assert params == {"min": 5, "max": 9}

    def test_offset(self):
        statement, params = build_query("events", "id", OffsetMode(offset=7))
        assert statement.text == 'SELECT * FROM "events" WHERE "id" > :offset ORDER BY "id" ASC'
        assert params == {"offset": 7}

    def test_timestamp(self):
        statement, params = build_query("events", "ts", TimestampMode(timestamp=3))
        assert statement.text == 'SELECT * FROM "events" WHERE "ts" = :timestamp ORDER BY "ts" ASC'
        assert params == {"timestamp": 3}

    def test_values_are_never_interpolated(self):
        """Bound values stay out of the SQL text."""
        statement, params = build_query("events", "id", OffsetMode(offset="1; DROP TABLE x"))
        assert "DROP" not in statement.text
        assert params == {"offset": "1; DROP TABLE x"}

    def test_quote_identifier(self):
        assert quote_identifier("XAGX") == '"XAGX"'
        assert quote_identifier('a"b') == '"a""b"'

    def test_empty_identifier(self):
        with pytest.raises(ValidationError):
            build_query("", "id", FullScanMode())


class TestDuplicateHeaders:
    """Test duplicate column detection."""

    def test_detects(self):
        assert has_duplicate_headers(["id", "name", "id"])

    def test_unique(self):
        assert not has_duplicate_headers(["id", "name"])
        assert not has_duplicate_headers([])

    def test_rejected_before_rows(self, events_engine):
        """Two columns named id fail at execution, not while encoding."""
        with pytest.raises(DuplicateHeadersError) as exc_info:
            open_cursor(events_engine, text("SELECT id, name, id FROM events"))
        assert exc_info.value.columns == ["id", "name", "id"]
        assert isinstance(exc_info.value, QueryError)


class TestExecuteQuery:
    """Test incremental extraction against SQLite."""

    def test_full_scan_ascending(self, events_engine):
        """No parameters reads everything in ascending sync order."""
        assert _ids(execute_query(events_engine, "events", "id", {})) == [5, 7, 9]

    def test_none_params(self, events_engine):
        assert _ids(execute_query(events_engine, "events", "id", None)) == [5, 7, 9]

    def test_offset(self, events_engine):
        assert _ids(execute_query(events_engine, "events", "id", {"offset": 7})) == [9]

    def test_offset_zero(self, events_engine):
        """offset 0 is offset mode, not a full scan."""
        assert _ids(execute_query(events_engine, "events", "id", {"offset": 0})) == [5, 7, 9]

    def test_range_upper_bound_exclusive(self, events_engine):
        cursor = execute_query(events_engine, "events", "id", {"min": 5, "max": 9})
        assert _ids(cursor) == [5, 7]

    def test_range_beats_offset(self, events_engine):
        cursor = execute_query(events_engine, "events", "id", {"min": 5, "max": 9, "offset": 7})
        assert _ids(cursor) == [5, 7]

    def test_timestamp_exact(self, events_engine):
        cursor = execute_query(events_engine, "events", "id", {"timestamp": 7})
        assert _ids(cursor) == [7]

    def test_extra_params_ignored(self, events_engine):
        """Keys outside the chosen mode are not bound."""
        cursor = execute_query(events_engine, "events", "id", {"offset": 5, "limit": 1})
        assert _ids(cursor) == [7, 9]

    def test_missing_table(self, events_engine):
        with pytest.raises(QueryError) as exc_info:
            execute_query(events_engine, "nope", "id", {})
        assert exc_info.value.__cause__ is not None

    def test_connection_released(self, events_engine):
        """Closed cursors give their connection back to the engine pool."""
        cursor = execute_query(events_engine, "events", "id", {})
        assert events_engine.pool.checkedout() == 1
        cursor.close()
        assert events_engine.pool.checkedout() == 0

    def test_unreachable_database(self, tmp_path):
        """Failing to open a connection is a connection error, not a query error."""
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'db.sqlite'}")
        try:
            with pytest.raises(ConnectionError) as exc_info:
                execute_query(engine, "events", "id", {})
        finally:
            engine.dispose()
        assert not isinstance(exc_info.value, QueryError)
