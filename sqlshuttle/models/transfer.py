"""Transfer configuration bundle.

This module defines TransferConfig, the validated option set every
import/export component receives at construction.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field as PydanticField, field_validator


def _split_csv(value: Any) -> Any:
    """Accept "a, b,c" as well as a list; drop empty entries."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(part).strip() for part in value if str(part).strip()]
    return value


class TransferConfig(BaseModel):
    """Options shared by the exporter, the executor and the runners.

    Boolean options accept the usual string spellings
    ("1", "0", "true", "false", "yes", "no", "on", "off"), and the table
    lists accept comma-separated strings, so values coming from a profile
    file or an environment variable validate the same way as Python values.

    Examples:
        >>> TransferConfig(chunk_size=500, exclude_patterns="cache_%, %_tmp")
        >>> TransferConfig(stop_on_error="yes", include_tables=["users", "orders"])
    """

    # Export
    chunk_size: int = PydanticField(
        1000,
        description="Rows fetched per offset/limit window during export",
        gt=0,
    )

    extended_insert: bool = PydanticField(
        True,
        description="Emit one multi-row INSERT per window instead of one INSERT per row",
    )

    hex_encode_binary: bool = PydanticField(
        False,
        description="Render byte-string values as hexadecimal literals",
    )

    include_tables: set[str] = PydanticField(
        default_factory=set,
        description="Tables to export; when non-empty, exclude_patterns are ignored",
    )

    exclude_patterns: list[str] = PydanticField(
        default_factory=list,
        description="Exclusion patterns: 'prefix%', '%suffix', 'wild*card' or a plain prefix",
    )

    drop_table: bool = PydanticField(
        True,
        description="Emit DROP ... IF EXISTS before each CREATE",
    )

    include_views: bool = PydanticField(
        True,
        description="Export view definitions",
    )

    include_data: bool = PydanticField(
        True,
        description="Export row data (False = schema only)",
    )

    routines: bool = PydanticField(
        True,
        description="Export stored procedures and functions",
    )

    triggers: bool = PydanticField(
        True,
        description="Export triggers",
    )

    gzip: bool = PydanticField(
        False,
        description="Compress export output with gzip",
    )

    # Import
    batch_size: int = PydanticField(
        100,
        description="Statements per committed batch",
        gt=0,
    )

    batch_time_seconds: int = PydanticField(
        30,
        description="Maximum seconds a batch stays open before it is committed",
        gt=0,
    )

    stop_on_error: bool = PydanticField(
        False,
        description="Abort the run (with rollback) on the first failing statement",
    )

    ignore_table_exists: bool = PydanticField(
        False,
        description="Count 'table already exists' failures as warnings instead of errors",
    )

    encoding: str = PydanticField(
        "utf-8",
        description="Text encoding of SQL streams",
    )

    model_config = {"extra": "forbid"}

    @field_validator("include_tables", mode="before")
    @classmethod
    def parse_include_tables(cls, v: Any) -> Any:
        """Split comma-separated table lists."""
        return _split_csv(v)

    @field_validator("exclude_patterns", mode="before")
    @classmethod
    def parse_exclude_patterns(cls, v: Any) -> Any:
        """Split comma-separated pattern lists."""
        return _split_csv(v)

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the codec exists."""
        import codecs

        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
        return v
