"""tapsql models package.

Pydantic models for user-facing configuration and the incremental
extraction modes derived from it.
"""

from tapsql.models.incremental import (
    FullScanMode,
    IncrementalMode,
    OffsetMode,
    RangeMode,
    TimestampMode,
    parse_incremental_mode,
    with_resume_offset,
)
from tapsql.models.payload import TapConfig, TapState

__all__ = [
    # Incremental modes
    "IncrementalMode",
    "RangeMode",
    "OffsetMode",
    "TimestampMode",
    "FullScanMode",
    "parse_incremental_mode",
    "with_resume_offset",
    # Payloads
    "TapConfig",
    "TapState",
]
