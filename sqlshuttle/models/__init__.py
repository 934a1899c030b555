"""sqlshuttle models package.

This package contains the Pydantic models and small value types that
describe run configuration, resume state, and results.
"""

from sqlshuttle.models.checkpoint import Checkpoint
from sqlshuttle.models.results import (
    ExecutionStats,
    ExportResult,
    ImportResult,
    TableExportResult,
)
from sqlshuttle.models.statement import StatementBoundary
from sqlshuttle.models.table import (
    ExportCursor,
    FilterRule,
    MatchKind,
    TableDescriptor,
    TableKind,
)
from sqlshuttle.models.transfer import TransferConfig

__all__ = [
    # Configuration
    "TransferConfig",
    # Resume state
    "Checkpoint",
    "StatementBoundary",
    # Table models
    "TableDescriptor",
    "TableKind",
    "FilterRule",
    "MatchKind",
    "ExportCursor",
    # Result models
    "ExecutionStats",
    "ImportResult",
    "ExportResult",
    "TableExportResult",
]
