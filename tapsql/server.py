"""HTTP server mode.

POST a tap configuration (YAML or JSON) to ``/`` and the table comes back
as the body, encoded according to the ``Accept`` header:

    text/csv                         CSV
    application/json, */*            JSON array (default)
    application/json; boundary=NL    line-delimited JSON
    application/x-ldjson             line-delimited JSON

``POST /?ping`` only checks that the database is reachable.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import iterate_in_threadpool, run_in_threadpool
from fastapi.responses import PlainTextResponse, StreamingResponse

from tapsql import __version__
from tapsql.cursor import RowCursor
from tapsql.encoders import Encoder, encoder_for_media_type, process_timestamp
from tapsql.exceptions import TapSQLError, ValidationError
from tapsql.pool import ConnectionPool
from tapsql.query import execute_query
from tapsql.utils.yaml_utils import parse_yaml, tap_config_from_data

_log = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code)


async def _stream_rows(
    encoder: Encoder, cursor: RowCursor, sync_column: str, timestamp: str
) -> AsyncIterator[str]:
    # Headers are already sent once this runs; a failure can only cut the body short.
    try:
        async for chunk in iterate_in_threadpool(
            encoder.chunks(cursor, sync_column, timestamp)
        ):
            yield chunk
    except TapSQLError as e:
        _log.error("Error encoding output: %s", e)
        raise
    finally:
        cursor.close()


def create_app(pool: Optional[ConnectionPool] = None) -> FastAPI:
    """Build the server application around a connection pool.

    The pool is shut down when the application stops.
    """
    pool = pool if pool is not None else ConnectionPool()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        pool.shutdown()

    app = FastAPI(title="tapsql", version=__version__, lifespan=lifespan)
    app.state.pool = pool

    @app.api_route("/", methods=["GET", "HEAD"])
    def index() -> Response:
        return Response(status_code=200)

    @app.post("/")
    async def extract(request: Request) -> Response:
        ping_only = "ping" in request.query_params

        encoder: Optional[Encoder] = None
        if not ping_only:
            encoder = encoder_for_media_type(request.headers.get("accept"))
            if encoder is None:
                return Response(status_code=406)

        body = await request.body()
        try:
            tap_config = tap_config_from_data(parse_yaml(body, "request body"), "request body")
        except ValidationError as e:
            return _error(422, f"Error decoding body: {e}")

        if not pool.registry.is_valid(tap_config.driver):
            return _error(422, f"Error validating driver: {tap_config.driver}")

        try:
            engine = await run_in_threadpool(
                pool.acquire, tap_config.driver, tap_config.connection
            )
        except TapSQLError as e:
            _log.warning("Error connecting to database: %s", e)
            return _error(503, f"Error connecting to database: {e}")

        if ping_only:
            try:
                await run_in_threadpool(pool.ping, engine)
            except TapSQLError as e:
                return _error(503, str(e))
            return Response(status_code=200)

        try:
            cursor = await run_in_threadpool(
                execute_query,
                engine,
                tap_config.tablename,
                tap_config.sync_col,
                tap_config.params,
            )
        except TapSQLError as e:
            _log.warning("Error executing query: %s", e)
            return _error(503, f"Error executing query: {e}")

        return StreamingResponse(
            _stream_rows(encoder, cursor, tap_config.sync_col, process_timestamp()),
            media_type=encoder.media_type,
        )

    return app
