"""Forward-only cursor over a query result.

Rows are exposed as plain dictionaries keyed by column name. Binary
values are decoded to text on the way out because every encoder expects
printable scalars.
"""

from __future__ import annotations

from typing import Any, Iterator, Optional

from sqlalchemy.engine import Connection, CursorResult, Row

from tapsql.exceptions import QueryError

MappedRow = dict[str, Any]

_NO_ROW = object()


def normalize_value(value: Any) -> Any:
    """Return binary values as text, everything else unchanged.

    Examples:
        >>> normalize_value(b"42")
        '42'
        >>> normalize_value(42)
        42
    """
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def normalize_record(record: MappedRow) -> MappedRow:
    """Rewrite the binary values of ``record`` in place."""
    for key, value in record.items():
        record[key] = normalize_value(value)
    return record


class RowCursor:
    """Iterator over the rows of one executed query.

    Owns the connection it was opened on and returns it to the engine's
    pool on :meth:`close`. Closing is safe at any point, including before
    the last row has been read.

    Examples:
        >>> with execute_query(engine, "events", "id", {}) as cursor:
        ...     record = {}
        ...     while cursor.has_next():
        ...         cursor.advance(record)
    """

    def __init__(self, connection: Connection, result: CursorResult) -> None:
        self._connection = connection
        self._result = result
        self._columns = list(result.keys())
        self._pending: Any = _NO_ROW
        self._exhausted = False
        self.closed = False

    @property
    def columns(self) -> list[str]:
        return list(self._columns)

    def has_next(self) -> bool:
        """Return True if another row is available.

        Raises:
            QueryError: If fetching from the database fails
        """
        if self._pending is not _NO_ROW:
            return True
        if self._exhausted or self.closed:
            return False
        try:
            row: Optional[Row] = self._result.fetchone()
        except Exception as e:
            raise QueryError(f"Failed to fetch row: {e}") from e
        if row is None:
            self._exhausted = True
            return False
        self._pending = row
        return True

    def advance(self, record: MappedRow) -> MappedRow:
        """Fill ``record`` with the next row's values.

        Args:
            record: Dictionary to populate; reused across calls

        Returns:
            The same dictionary, normalized

        Raises:
            QueryError: If no row is left or fetching fails
        """
        if not self.has_next():
            raise QueryError("No more rows")
        row = self._pending
        self._pending = _NO_ROW
        record.update(zip(self._columns, row))
        return normalize_record(record)

    def close(self) -> None:
        """Release the result and its connection."""
        if self.closed:
            return
        self.closed = True
        self._pending = _NO_ROW
        try:
            self._result.close()
        finally:
            self._connection.close()

    def __iter__(self) -> Iterator[MappedRow]:
        while self.has_next():
            yield self.advance({})

    def __enter__(self) -> RowCursor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
