"""Single extraction run.

Coordinates the pieces a caller would otherwise wire by hand: resume
offset, pooled connection, incremental query and streaming encoder.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field as PydanticField

from tapsql.encoders import Encoder, TextSink, get_encoder, process_timestamp
from tapsql.exceptions import ValidationError
from tapsql.models.incremental import parse_incremental_mode, with_resume_offset
from tapsql.models.payload import TapConfig
from tapsql.pool import ConnectionPool
from tapsql.query import execute_query

_log = logging.getLogger(__name__)


class RunResult(BaseModel):
    """Outcome of one extraction run."""

    table: str = PydanticField(
        ...,
        description="Extracted table",
    )

    mode: str = PydanticField(
        ...,
        description="Incremental mode used: range, offset, timestamp or full",
    )

    encoding: str = PydanticField(
        ...,
        description="Output encoding name",
    )

    last_record: Optional[int] = PydanticField(
        None,
        description="Last sync column value emitted; None when no rows matched",
    )

    started_at: datetime = PydanticField(
        ...,
        description="Run start time",
    )

    completed_at: datetime = PydanticField(
        ...,
        description="Run completion time",
    )

    params: dict[str, Any] = PydanticField(
        default_factory=dict,
        description="Incremental parameters after applying the resume offset",
    )

    model_config = {"extra": "forbid"}

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


def run_extract(
    tap_config: TapConfig,
    pool: ConnectionPool,
    sink: TextSink,
    encoding: Union[str, Encoder, None] = None,
    last_record: Optional[int] = None,
    timestamp: Optional[str] = None,
) -> RunResult:
    """Extract ``tap_config.tablename`` into ``sink``.

    Args:
        tap_config: Validated tap configuration
        pool: Connection pool owned by the caller
        sink: Output with ``write(str)``
        encoding: Encoder or encoder name (json, jsonld, csv); jsonld if None
        last_record: Previous run's resume value, used as ``offset`` when
            the configuration sets no incremental bound of its own
        timestamp: ``Process_Date`` annotation; now if None

    Returns:
        RunResult carrying the new resume value

    Raises:
        ValidationError: Unknown driver or encoding
        ConnectionError: Database unreachable
        QueryError: Query failed or returned duplicate headers
        EncodingError: Sync column not integer or sink failure
    """
    started_at = datetime.now()
    encoder = encoding if isinstance(encoding, Encoder) else get_encoder(encoding)
    if not pool.registry.is_valid(tap_config.driver):
        raise ValidationError(f"Error validating driver: {tap_config.driver}")

    params = with_resume_offset(tap_config.params, last_record)
    mode = parse_incremental_mode(params)

    engine = pool.acquire(tap_config.driver, tap_config.connection)
    pool.ping(engine)

    with execute_query(engine, tap_config.tablename, tap_config.sync_col, params) as cursor:
        new_last = encoder.encode(
            sink, cursor, tap_config.sync_col, timestamp or process_timestamp()
        )

    completed_at = datetime.now()
    _log.info(
        "Extracted %s (%s mode, %s) last record %s in %.2fs",
        tap_config.tablename,
        mode.name,
        encoder.name,
        new_last,
        (completed_at - started_at).total_seconds(),
    )
    return RunResult(
        table=tap_config.tablename,
        mode=mode.name,
        encoding=encoder.name,
        last_record=new_last,
        started_at=started_at,
        completed_at=completed_at,
        params=params,
    )
