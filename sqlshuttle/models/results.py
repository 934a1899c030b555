"""Result models for import and export runs.

This module defines result classes that capture outcomes and metrics
from statement execution, per-table export, and whole runs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field as PydanticField

from sqlshuttle.models.table import TableKind


class ExecutionStats(BaseModel):
    """Counters produced by the transactional executor.

    ``statements_executed`` includes statements carried over from a resumed
    checkpoint, so it always describes the whole source stream.
    """

    statements_executed: int = PydanticField(
        0,
        description="Statements processed (executed, skipped or failed)",
        ge=0,
    )

    errors: int = PydanticField(
        0,
        description="Statements that failed in this run",
        ge=0,
    )

    warnings: int = PydanticField(
        0,
        description="Failures downgraded to warnings (e.g. table already exists)",
        ge=0,
    )

    batches_committed: int = PydanticField(
        0,
        description="Transactions committed in this run",
        ge=0,
    )

    position: int = PydanticField(
        0,
        description="Last committed stream offset",
        ge=0,
    )

    error_messages: list[str] = PydanticField(
        default_factory=list,
        description="Messages of failed statements, in order",
    )

    model_config = {"extra": "forbid"}


class ImportResult(BaseModel):
    """Result of an import run.

    A run that finishes with any recorded error is unsuccessful and keeps
    its checkpoint for resume.
    """

    source: str = PydanticField(
        ...,
        description="SQL source path",
    )

    success: bool = PydanticField(
        ...,
        description="True when the run completed without recorded errors",
    )

    resumed_from: int = PydanticField(
        0,
        description="Offset the run resumed from (0 for a fresh run)",
        ge=0,
    )

    stats: ExecutionStats = PydanticField(
        default_factory=ExecutionStats,
        description="Executor counters",
    )

    checkpoint_cleared: bool = PydanticField(
        False,
        description="Whether the checkpoint was removed after a clean run",
    )

    duration_seconds: float = PydanticField(
        0.0,
        description="Duration of the run in seconds",
        ge=0.0,
    )

    started_at: datetime = PydanticField(
        ...,
        description="Run start time",
    )

    completed_at: Optional[datetime] = PydanticField(
        None,
        description="Run completion time",
    )

    metadata: dict[str, Any] = PydanticField(
        default_factory=dict,
        description="Additional metadata",
    )

    model_config = {"extra": "forbid"}

    @property
    def statements_executed(self) -> int:
        return self.stats.statements_executed

    @property
    def errors(self) -> int:
        return self.stats.errors


class TableExportResult(BaseModel):
    """Outcome of exporting one table or view."""

    table: str = PydanticField(
        ...,
        description="Table name",
    )

    kind: TableKind = PydanticField(
        TableKind.BASE_TABLE,
        description="Base table or view",
    )

    success: bool = PydanticField(
        ...,
        description="Whether DDL and data were written completely",
    )

    rows_exported: int = PydanticField(
        0,
        description="Rows written as INSERT values",
        ge=0,
    )

    windows_fetched: int = PydanticField(
        0,
        description="Offset/limit windows queried",
        ge=0,
    )

    insert_statements: int = PydanticField(
        0,
        description="INSERT statements written",
        ge=0,
    )

    skipped: bool = PydanticField(
        False,
        description="True when the table was already completed by a previous run",
    )

    error_message: Optional[str] = PydanticField(
        None,
        description="Error message if the table was aborted",
    )

    model_config = {"extra": "forbid"}


class ExportResult(BaseModel):
    """Result of an export run."""

    output: str = PydanticField(
        ...,
        description="Output path ('-' for stdout)",
    )

    success: bool = PydanticField(
        ...,
        description="True when every table and section was written without error",
    )

    tables: list[TableExportResult] = PydanticField(
        default_factory=list,
        description="Per-table results in export order",
    )

    statements_written: int = PydanticField(
        0,
        description="SQL statements written (comments excluded)",
        ge=0,
    )

    errors: list[str] = PydanticField(
        default_factory=list,
        description="Table and section errors",
    )

    checkpoint_cleared: bool = PydanticField(
        False,
        description="Whether the export checkpoint was removed after a clean run",
    )

    duration_seconds: float = PydanticField(
        0.0,
        description="Duration of the run in seconds",
        ge=0.0,
    )

    started_at: datetime = PydanticField(
        ...,
        description="Run start time",
    )

    completed_at: Optional[datetime] = PydanticField(
        None,
        description="Run completion time",
    )

    model_config = {"extra": "forbid"}

    @property
    def rows_exported(self) -> int:
        """Total rows written across all tables."""
        return sum(t.rows_exported for t in self.tables)

    @property
    def tables_failed(self) -> int:
        return sum(1 for t in self.tables if not t.success)
