"""sqlshuttle core package.

This package contains the streaming components of import and export runs:
source, scanner, checkpoint store, executor, exporter, sink and runners.
"""

from sqlshuttle.core.checkpoint import CheckpointStore
from sqlshuttle.core.connector import Connector
from sqlshuttle.core.executor import ExecutorState, TransactionalExecutor
from sqlshuttle.core.exporter import ChunkedExporter
from sqlshuttle.core.runner import ExportRunner, ImportRunner
from sqlshuttle.core.scanner import StatementScanner
from sqlshuttle.core.sink import OutputSink
from sqlshuttle.core.source import SQLSource
from sqlshuttle.core.table_filter import TableFilter, compile_rule

__all__ = [
    "CheckpointStore",
    "ChunkedExporter",
    "Connector",
    "ExecutorState",
    "ExportRunner",
    "ImportRunner",
    "OutputSink",
    "SQLSource",
    "StatementScanner",
    "TableFilter",
    "TransactionalExecutor",
    "compile_rule",
]
