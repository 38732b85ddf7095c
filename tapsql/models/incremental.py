"""Incremental extraction modes.

A run fetches either a bounded range of the sync column, everything past
an offset, rows at one exact value, or the whole table. Which one is
decided by the keys present in the ``params`` mapping, never by their
values: ``{"offset": 0}`` is still offset mode.

Priority: ``min`` + ``max`` > ``offset`` > ``timestamp`` > full scan.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class RangeMode:
    """Rows with ``min <= sync < max``. The upper bound is exclusive."""

    min: Any
    max: Any
    name = "range"

    def predicate(self, column: str) -> Optional[str]:
        return f"{column} >= :min AND {column} < :max"

    def bind_params(self) -> dict[str, Any]:
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class OffsetMode:
    """Rows with ``sync > offset``."""

    offset: Any
    name = "offset"

    def predicate(self, column: str) -> Optional[str]:
        return f"{column} > :offset"

    def bind_params(self) -> dict[str, Any]:
        return {"offset": self.offset}


@dataclass(frozen=True)
class TimestampMode:
    """Rows with ``sync = timestamp``."""

    timestamp: Any
    name = "timestamp"

    def predicate(self, column: str) -> Optional[str]:
        return f"{column} = :timestamp"

    def bind_params(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp}


@dataclass(frozen=True)
class FullScanMode:
    """Every row of the table."""

    name = "full"

    def predicate(self, column: str) -> Optional[str]:
        return None

    def bind_params(self) -> dict[str, Any]:
        return {}


IncrementalMode = Union[RangeMode, OffsetMode, TimestampMode, FullScanMode]


def parse_incremental_mode(params: Optional[Mapping[str, Any]]) -> IncrementalMode:
    """Select the extraction mode from a raw parameter mapping.

    Examples:
        >>> parse_incremental_mode({"min": 5, "max": 9, "offset": 1})
        RangeMode(min=5, max=9)
        >>> parse_incremental_mode({"offset": 7, "timestamp": 3})
        OffsetMode(offset=7)
        >>> parse_incremental_mode(None)
        FullScanMode()
    """
    if not params:
        return FullScanMode()
    if "min" in params and "max" in params:
        return RangeMode(min=params["min"], max=params["max"])
    if "offset" in params:
        return OffsetMode(offset=params["offset"])
    if "timestamp" in params:
        return TimestampMode(timestamp=params["timestamp"])
    return FullScanMode()


def with_resume_offset(
    params: Optional[Mapping[str, Any]], last_record: Optional[int]
) -> dict[str, Any]:
    """Feed a previous run's resume value back as the ``offset`` bound.

    A configured range, offset or timestamp wins. The offset is added
    whenever ``params`` would otherwise select a full scan, including a
    lone ``min`` or ``max`` without its partner.

    Examples:
        >>> with_resume_offset({"min": 1}, 9)
        {'min': 1, 'offset': 9}
        >>> with_resume_offset({"min": 1, "max": 5}, 9)
        {'min': 1, 'max': 5}
    """
    merged = dict(params or {})
    if last_record is None:
        return merged
    if not isinstance(parse_incremental_mode(merged), FullScanMode):
        return merged
    merged["offset"] = last_record
    return merged
