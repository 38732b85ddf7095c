"""Streaming encoders.

Each encoder is a fold over a :class:`~tapsql.cursor.RowCursor`: it yields
text chunks as rows arrive and returns the last value seen in the sync
column, which the caller persists as resume state. Only the current row is
held in memory.

The sync column must hold integers. A value that cannot be read as an
integer stops the stream with :class:`~tapsql.exceptions.EncodingError`;
whatever was already yielded stays written.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from email.message import Message
from typing import Any, Generator, Optional, Protocol
from uuid import UUID

from tapsql.cursor import MappedRow, RowCursor
from tapsql.exceptions import EncodingError, ValidationError

PROCESS_DATE_FIELD = "Process_Date"

EncodeStream = Generator[str, None, Optional[int]]


class TextSink(Protocol):
    def write(self, data: str) -> Any: ...


def process_timestamp() -> str:
    """Current local time as RFC 3339 with seconds precision."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


def sync_value_to_int(value: Any, column: str) -> int:
    """Read a sync column value as an integer.

    Raises:
        EncodingError: If the value is not integer-representable
    """
    if isinstance(value, bool):
        raise EncodingError(f"Sync column {column!r} is boolean, expected integer")
    if isinstance(value, int):
        return value
    if isinstance(value, (Decimal, float)):
        try:
            if value == int(value):
                return int(value)
        except (ValueError, OverflowError):
            pass
    elif isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise EncodingError(
        f"Sync column {column!r} value {value!r} is not an integer; "
        "incremental extraction requires an integer sync column"
    )


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID, timedelta)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_record(record: MappedRow) -> str:
    try:
        return json.dumps(record, default=_json_default, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodingError(f"Failed to serialize record: {e}") from e


def _last_record(record: MappedRow, sync_column: str) -> int:
    if sync_column not in record:
        raise EncodingError(f"Sync column {sync_column!r} not found in result")
    return sync_value_to_int(record[sync_column], sync_column)


class Encoder:
    """Base class for output formats."""

    name: str = ""
    media_type: str = ""

    def chunks(self, cursor: RowCursor, sync_column: str, timestamp: str) -> EncodeStream:
        """Yield encoded text; return the last sync value (None if no rows)."""
        raise NotImplementedError

    def encode(
        self, sink: TextSink, cursor: RowCursor, sync_column: str, timestamp: str
    ) -> Optional[int]:
        """Stream the whole cursor into ``sink``.

        Args:
            sink: Anything with ``write(str)``
            cursor: Open row cursor
            sync_column: Integer column tracked for resume state
            timestamp: Annotation attached to each record

        Returns:
            Last sync column value written, or None for an empty result

        Raises:
            EncodingError: If a row cannot be encoded or the sink fails
            QueryError: If fetching a row fails
        """
        stream = self.chunks(cursor, sync_column, timestamp)
        while True:
            try:
                chunk = next(stream)
            except StopIteration as stop:
                return stop.value
            try:
                sink.write(chunk)
            except Exception as e:
                stream.close()
                raise EncodingError(f"Failed to write output: {e}") from e


class JSONLinesEncoder(Encoder):
    """One JSON object per line, no wrapper."""

    name = "jsonld"
    media_type = "application/x-ldjson"

    def chunks(self, cursor: RowCursor, sync_column: str, timestamp: str) -> EncodeStream:
        record: MappedRow = {}
        last: Optional[int] = None
        while cursor.has_next():
            cursor.advance(record)
            record[PROCESS_DATE_FIELD] = timestamp
            yield dump_record(record) + "\n"
            last = _last_record(record, sync_column)
        return last


class JSONArrayEncoder(Encoder):
    """A single JSON array of records."""

    name = "json"
    media_type = "application/json"
    delimiter = ",\n"

    def chunks(self, cursor: RowCursor, sync_column: str, timestamp: str) -> EncodeStream:
        record: MappedRow = {}
        last: Optional[int] = None
        count = 0
        yield "["
        while cursor.has_next():
            cursor.advance(record)
            record[PROCESS_DATE_FIELD] = timestamp
            line = dump_record(record)
            yield line if count == 0 else self.delimiter + line
            count += 1
            last = _last_record(record, sync_column)
        yield "]"
        return last


class CSVEncoder(Encoder):
    """Header line from the first row's columns, then one line per row."""

    name = "csv"
    media_type = "text/csv"

    def chunks(self, cursor: RowCursor, sync_column: str, timestamp: str) -> EncodeStream:
        record: MappedRow = {}
        last: Optional[int] = None
        header: Optional[list[str]] = None
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        while cursor.has_next():
            cursor.advance(record)
            if header is None:
                header = list(record)
                writer.writerow(header)
            writer.writerow([record[col] for col in header])
            yield buf.getvalue()
            buf.seek(0)
            buf.truncate()
            last = _last_record(record, sync_column)
        return last


ENCODERS: dict[str, type[Encoder]] = {
    JSONArrayEncoder.name: JSONArrayEncoder,
    JSONLinesEncoder.name: JSONLinesEncoder,
    CSVEncoder.name: CSVEncoder,
}

DEFAULT_MEDIA_TYPE = JSONArrayEncoder.media_type

MEDIA_TYPES: dict[str, type[Encoder]] = {
    "*/*": JSONArrayEncoder,
    JSONArrayEncoder.media_type: JSONArrayEncoder,
    JSONLinesEncoder.media_type: JSONLinesEncoder,
    CSVEncoder.media_type: CSVEncoder,
}


def get_encoder(name: Optional[str] = None) -> Encoder:
    """Return an encoder by name: ``json``, ``jsonld`` or ``csv``.

    No name means ``jsonld``.

    Raises:
        ValidationError: If the name is unknown
    """
    key = (name or JSONLinesEncoder.name).strip().lower()
    try:
        return ENCODERS[key]()
    except KeyError:
        raise ValidationError(
            f"Unknown encoding: {name!r}. Must be one of: {sorted(ENCODERS)}"
        ) from None


def parse_media_type(accept: Optional[str]) -> tuple[str, dict[str, str]]:
    """Split an Accept value into its media type and parameters."""
    if not accept or not accept.strip():
        return "", {}
    msg = Message()
    msg["content-type"] = accept
    params = dict((msg.get_params() or [])[1:])
    return accept.split(";", 1)[0].strip().lower(), params


def encoder_for_media_type(accept: Optional[str]) -> Optional[Encoder]:
    """Pick an encoder from an HTTP Accept value.

    ``application/json; boundary=NL`` selects line-delimited JSON. Returns
    None when the media type is not supported.

    Examples:
        >>> encoder_for_media_type("text/csv").name
        'csv'
        >>> encoder_for_media_type("application/json; boundary=NL").name
        'jsonld'
    """
    media_type, params = parse_media_type(accept)
    if not media_type:
        media_type = DEFAULT_MEDIA_TYPE
    if media_type == JSONArrayEncoder.media_type and params.get("boundary") == "NL":
        return JSONLinesEncoder()
    encoder_cls = MEDIA_TYPES.get(media_type)
    return encoder_cls() if encoder_cls else None
