"""tapsql - Incremental SQL table extraction."""

__version__ = "0.1.0"

# Re-export the extraction API for embedding applications
from tapsql.cursor import RowCursor
from tapsql.drivers import DriverRegistry, DriverSpec, default_registry
from tapsql.encoders import (
    CSVEncoder,
    Encoder,
    JSONArrayEncoder,
    JSONLinesEncoder,
    encoder_for_media_type,
    get_encoder,
)
from tapsql.exceptions import (
    ConnectionError,
    DuplicateHeadersError,
    EncodingError,
    QueryError,
    TapSQLError,
    ValidationError,
)
from tapsql.models import (
    FullScanMode,
    IncrementalMode,
    OffsetMode,
    RangeMode,
    TapConfig,
    TapState,
    TimestampMode,
    parse_incremental_mode,
)
from tapsql.pool import ConnectionPool, connection_key
from tapsql.query import build_query, execute_query
from tapsql.runner import RunResult, run_extract

__all__ = [
    # Version
    "__version__",
    # Connections
    "ConnectionPool",
    "DriverRegistry",
    "DriverSpec",
    "connection_key",
    "default_registry",
    # Querying
    "IncrementalMode",
    "RangeMode",
    "OffsetMode",
    "TimestampMode",
    "FullScanMode",
    "parse_incremental_mode",
    "build_query",
    "execute_query",
    "RowCursor",
    # Encoding
    "Encoder",
    "JSONArrayEncoder",
    "JSONLinesEncoder",
    "CSVEncoder",
    "get_encoder",
    "encoder_for_media_type",
    # Runs
    "TapConfig",
    "TapState",
    "RunResult",
    "run_extract",
    # Errors
    "TapSQLError",
    "ValidationError",
    "ConnectionError",
    "QueryError",
    "DuplicateHeadersError",
    "EncodingError",
]
