"""Incremental query planning and execution.

Builds one ``SELECT *`` per run from a table name, a sync column and the
incremental mode, executes it on a pooled engine and hands back a
:class:`~tapsql.cursor.RowCursor`.

Table and column names are quoted identifiers; bound values always travel
as named parameters. Every mode orders by the sync column ascending, so
the last row emitted carries the largest sync value of the run.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.sql.elements import TextClause

from tapsql.cursor import RowCursor
from tapsql.exceptions import ConnectionError, DuplicateHeadersError, QueryError, ValidationError
from tapsql.models.incremental import IncrementalMode, parse_incremental_mode

_log = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    """Quote a table or column name for interpolation into SQL.

    Examples:
        >>> quote_identifier("events")
        '"events"'
        >>> quote_identifier('we"ird')
        '"we""ird"'
    """
    if not name:
        raise ValidationError("Identifier must not be empty")
    return '"' + name.replace('"', '""') + '"'


def build_query(
    table: str, sync_column: str, mode: IncrementalMode
) -> tuple[TextClause, dict[str, Any]]:
    """Build the statement and bind parameters for one extraction run.

    Args:
        table: Table name
        sync_column: Column to filter and order by
        mode: Incremental mode from :func:`parse_incremental_mode`

    Returns:
        Tuple of (statement, bind parameters)
    """
    table_sql = quote_identifier(table)
    column_sql = quote_identifier(sync_column)

    query = f"SELECT * FROM {table_sql}"
    predicate = mode.predicate(column_sql)
    if predicate:
        query += f" WHERE {predicate}"
    query += f" ORDER BY {column_sql} ASC"

    return text(query), mode.bind_params()


def has_duplicate_headers(columns: list[str]) -> bool:
    seen: set[str] = set()
    for column in columns:
        if column in seen:
            return True
        seen.add(column)
    return False


def open_cursor(
    engine: Engine, statement: TextClause, params: Optional[Mapping[str, Any]] = None
) -> RowCursor:
    """Execute ``statement`` and wrap its result in a cursor.

    The result's column names are checked before any row is read; a
    repeated name closes everything and raises.

    Raises:
        DuplicateHeadersError: If a column name repeats
        ConnectionError: If no connection can be opened
        QueryError: If execution fails
    """
    try:
        connection = engine.connect()
    except Exception as e:
        raise ConnectionError(f"Failed to open connection: {e}") from e

    try:
        result = connection.execution_options(stream_results=True).execute(
            statement, dict(params or {})
        )
    except Exception as e:
        connection.close()
        raise QueryError(f"Failed to execute query: {e}") from e

    cursor = RowCursor(connection, result)
    if has_duplicate_headers(cursor.columns):
        cursor.close()
        raise DuplicateHeadersError(cursor.columns)
    return cursor


def execute_query(
    engine: Engine,
    table: str,
    sync_column: str,
    params: Optional[Mapping[str, Any]] = None,
) -> RowCursor:
    """Run the incremental query for ``table`` and return its rows.

    Args:
        engine: Engine from :class:`~tapsql.pool.ConnectionPool`
        table: Table name
        sync_column: Integer column used to order and bound the run
        params: Raw incremental parameters (``min``/``max``, ``offset``,
            ``timestamp``), or None for a full scan

    Returns:
        An open RowCursor; the caller must close it

    Raises:
        ValidationError: If a name is empty
        ConnectionError: If no connection can be opened
        QueryError: If execution fails or the result has duplicate headers
    """
    mode = parse_incremental_mode(params)
    statement, bind_params = build_query(table, sync_column, mode)
    _log.debug("Extracting %s in %s mode", table, mode.name)
    return open_cursor(engine, statement, bind_params)
