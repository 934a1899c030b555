"""sqlshuttle - resumable SQL dump and import for large databases."""

__version__ = "0.1.0"

# Re-export key models for convenience
from sqlshuttle.models import (
    Checkpoint,
    ExecutionStats,
    ExportResult,
    ImportResult,
    StatementBoundary,
    TableDescriptor,
    TableExportResult,
    TransferConfig,
)

# Re-export core components
from sqlshuttle.core import (
    CheckpointStore,
    ChunkedExporter,
    ExportRunner,
    ImportRunner,
    SQLSource,
    StatementScanner,
    TableFilter,
    TransactionalExecutor,
)

from sqlshuttle.operators import create_connector

__all__ = [
    # Version
    "__version__",
    # Models
    "Checkpoint",
    "ExecutionStats",
    "ExportResult",
    "ImportResult",
    "StatementBoundary",
    "TableDescriptor",
    "TableExportResult",
    "TransferConfig",
    # Core
    "CheckpointStore",
    "ChunkedExporter",
    "ExportRunner",
    "ImportRunner",
    "SQLSource",
    "StatementScanner",
    "TableFilter",
    "TransactionalExecutor",
    # Connectors
    "create_connector",
]
