"""Tests for the row cursor."""

import pytest

from tapsql.cursor import normalize_record, normalize_value
from tapsql.exceptions import QueryError
from tapsql.query import execute_query


class TestNormalize:
    """Test binary-to-text conversion."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (b"abc", "abc"),
            (bytearray(b"abc"), "abc"),
            (memoryview(b"abc"), "abc"),
            (b"\xff", "�"),
            (1, 1),
            (1.5, 1.5),
            ("x", "x"),
            (None, None),
            (True, True),
        ],
    )
    def test_normalize_value(self, value, expected):
        assert normalize_value(value) == expected

    def test_normalize_record_in_place(self):
        record = {"id": 1, "payload": b"five"}
        assert normalize_record(record) is record
        assert record == {"id": 1, "payload": "five"}


class TestRowCursor:
    """Test iteration and release."""

    def test_advance(self, events_engine):
        """advance fills the supplied record and decodes blobs."""
        cursor = execute_query(events_engine, "events", "id", {})
        record = {}
        try:
            assert cursor.columns == ["id", "name", "payload"]
            assert cursor.has_next()
            assert cursor.advance(record) is record
            assert record == {"id": 5, "name": "alpha", "payload": "five"}
            cursor.advance(record)
            assert record == {"id": 7, "name": "beta", "payload": None}
            cursor.advance(record)
            assert record["payload"] == "nine"
            assert not cursor.has_next()
        finally:
            cursor.close()

    def test_has_next_is_idempotent(self, events_engine):
        """Asking twice does not skip a row."""
        with execute_query(events_engine, "events", "id", {}) as cursor:
            assert cursor.has_next()
            assert cursor.has_next()
            assert cursor.advance({})["id"] == 5

    def test_advance_past_end(self, events_engine):
        with execute_query(events_engine, "events", "id", {"offset": 9}) as cursor:
            assert not cursor.has_next()
            with pytest.raises(QueryError):
                cursor.advance({})

    def test_close_mid_iteration(self, events_engine):
        """Closing early is safe and repeatable."""
        cursor = execute_query(events_engine, "events", "id", {})
        cursor.advance({})
        cursor.close()
        cursor.close()
        assert cursor.closed
        assert not cursor.has_next()
        assert events_engine.pool.checkedout() == 0

    def test_iteration(self, events_engine):
        with execute_query(events_engine, "events", "id", {}) as cursor:
            rows = list(cursor)
        assert [r["name"] for r in rows] == ["alpha", "beta", "gamma"]
        assert rows[0] is not rows[1]
