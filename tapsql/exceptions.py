"""tapsql exception hierarchy."""

from __future__ import annotations


class TapSQLError(Exception):
    """Base exception for all tapsql errors."""

    pass


class ValidationError(TapSQLError):
    """Raised when configuration is invalid or a required field is missing."""

    pass


class ConnectionError(TapSQLError):
    """Raised when a database handle cannot be opened or pinged."""

    pass


class QueryError(TapSQLError):
    """Raised when a query cannot be executed or its result is unusable."""

    pass


class DuplicateHeadersError(QueryError):
    """Raised when a result set repeats a column name."""

    def __init__(self, columns: list[str]):
        self.columns = columns
        super().__init__(f"Has duplicate headers: {columns}")


class EncodingError(TapSQLError):
    """Raised when a row cannot be encoded or the output sink fails."""

    pass
