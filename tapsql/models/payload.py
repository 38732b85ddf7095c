"""Tap configuration and resume state models.

These map directly to the YAML files (or HTTP request bodies) that drive
an extraction run.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator


class TapConfig(BaseModel):
    """What to extract and from where.

    Examples:
        >>> TapConfig.model_validate({
        ...     "driver": "postgres",
        ...     "connection": {"host": "localhost", "dbname": "app"},
        ...     "tablename": "events",
        ...     "syncCol": "id",
        ... })
    """

    driver: str = PydanticField(
        ...,
        description="Logical driver name (e.g., 'postgres', 'postgresql')",
    )

    connection: dict[str, Any] = PydanticField(
        default_factory=dict,
        description="Connection parameters; empty-string values are ignored",
    )

    tablename: str = PydanticField(
        ...,
        description="Table to extract",
    )

    sync_col: str = PydanticField(
        ...,
        alias="syncCol",
        description="Integer column used to order and bound extraction",
    )

    params: dict[str, Any] = PydanticField(
        default_factory=dict,
        description="Incremental parameters: min/max, offset, or timestamp",
    )

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("tablename", "sync_col")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("connection", "params", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class TapState(BaseModel):
    """Resume state carried between runs."""

    last_record: Optional[int] = PydanticField(
        None,
        alias="lastRecord",
        description="Last sync column value emitted by the previous run",
    )

    model_config = ConfigDict(populate_by_name=True, extra="ignore")
