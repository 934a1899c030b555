"""Import and export runners.

Runners wire the components of one run together: source, scanner,
executor and checkpoint store for imports; exporter, sink and an optional
table-level checkpoint for exports. They receive a connected connector and
a TransferConfig and return a result model.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from sqlshuttle.core.checkpoint import CheckpointStore
from sqlshuttle.core.executor import TransactionalExecutor
from sqlshuttle.core.exporter import ChunkedExporter
from sqlshuttle.core.scanner import StatementScanner
from sqlshuttle.core.sink import OutputSink
from sqlshuttle.core.source import SQLSource
from sqlshuttle.exceptions import ConfigurationError, ShuttleError
from sqlshuttle.models.checkpoint import Checkpoint
from sqlshuttle.models.results import ExportResult, ImportResult, TableExportResult
from sqlshuttle.models.transfer import TransferConfig
from sqlshuttle.operators.sql.connector import SQLConnector

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _same_path(a: PathLike, b: PathLike) -> bool:
    return Path(a).resolve() == Path(b).resolve()


class ImportRunner:
    """Run a SQL file into a database with checkpointed resume.

    A fresh run discards any previous checkpoint at the same path. A resumed
    run continues from the persisted offset and may omit the file, which is
    then taken from the checkpoint. The checkpoint is removed only after a
    run with no recorded errors.

    Examples:
        >>> with create_connector("sqlite:///shop.db") as connector:
        ...     runner = ImportRunner(connector, TransferConfig(), "shop.checkpoint.json")
        ...     result = runner.run("shop.sql")
        >>> result.success
        True
    """

    def __init__(
        self,
        connector: SQLConnector,
        config: TransferConfig,
        checkpoint_path: Optional[PathLike] = None,
    ):
        self.connector = connector
        self.config = config
        self.store = CheckpointStore(checkpoint_path) if checkpoint_path else None

    def _initial_state(self, source_path: Optional[PathLike], resume: bool) -> Checkpoint:
        if not resume:
            if source_path is None:
                raise ConfigurationError("No SQL file given")
            if self.store is not None and self.store.clear():
                logger.info("Starting fresh; previous checkpoint discarded")
            return Checkpoint.fresh(str(Path(source_path).resolve()))

        if self.store is None:
            raise ConfigurationError("Resume requires a checkpoint path")

        state = self.store.load()
        if source_path is None:
            if not state.file:
                raise ConfigurationError(f"No checkpoint to resume at {self.store.path}; give a SQL file")
            return state

        if state.file and not _same_path(state.file, source_path):
            raise ConfigurationError(
                f"Checkpoint {self.store.path} belongs to {state.file}, not {source_path}"
            )
        if not state.file:
            state.file = str(Path(source_path).resolve())
        return state

    def _restore_session_after_failure(self) -> None:
        # The run error propagates; a failed restore must not replace it
        try:
            self.connector.end_import_session()
        except ShuttleError as e:
            logger.warning("Could not restore session settings after failure: %s", e)

    def run(self, source_path: Optional[PathLike] = None, resume: bool = False) -> ImportResult:
        """Import a SQL file.

        Args:
            source_path: Plain, .gz or .zip SQL file (optional when resuming)
            resume: Continue from the persisted checkpoint

        Returns:
            ImportResult (success is False if any statement failed)

        Raises:
            ConfigurationError: If there is nothing to import or resume
            SourceNotFoundError, UnsupportedSourceFormatError: Source problems
            CorruptCheckpointError: If the checkpoint cannot be decoded
            StatementExecutionError: On failure with stop_on_error
            TransportError: If the connection fails
        """
        started_at = datetime.now()
        state = self._initial_state(source_path, resume)
        resumed_from = state.position

        if resumed_from:
            logger.info(
                "Resuming %s from offset %d (%d statements done)",
                state.file,
                resumed_from,
                state.statements_executed,
            )
        else:
            logger.info("Importing %s", state.file)

        with SQLSource.open(state.file) as source:
            scanner = StatementScanner(source, start_offset=resumed_from, encoding=self.config.encoding)
            executor = TransactionalExecutor(self.connector, self.config, self.store, state)
            self.connector.begin_import_session()
            try:
                stats = executor.run(scanner)
            except Exception:
                self._restore_session_after_failure()
                raise
            self.connector.end_import_session()

        success = stats.errors == 0
        cleared = False
        if success and self.store is not None:
            cleared = self.store.clear()
        elif self.store is not None:
            logger.warning("Import finished with %d errors; checkpoint kept at %s", stats.errors, self.store.path)

        completed_at = datetime.now()
        return ImportResult(
            source=state.file,
            success=success,
            resumed_from=resumed_from,
            stats=stats,
            checkpoint_cleared=cleared,
            duration_seconds=(completed_at - started_at).total_seconds(),
            started_at=started_at,
            completed_at=completed_at,
            metadata={"database": self.connector.database},
        )


class ExportRunner:
    """Run an export with an optional table-level checkpoint.

    With a checkpoint path, every completed table marks a durable boundary
    in the output and records it. A resumed run truncates the output to the
    last boundary and skips the tables already written.
    """

    def __init__(
        self,
        connector: SQLConnector,
        config: TransferConfig,
        checkpoint_path: Optional[PathLike] = None,
    ):
        self.connector = connector
        self.config = config
        self.store = CheckpointStore(checkpoint_path) if checkpoint_path else None

    def _initial_state(self, sink: OutputSink, resume: bool) -> Checkpoint:
        if not resume:
            if self.store is not None:
                self.store.clear()
            return Checkpoint.fresh(sink.name)

        if self.store is None:
            raise ConfigurationError("Resume requires a checkpoint path")
        if not sink.resumable:
            raise ConfigurationError("Resume requires an output file")

        state = self.store.load()
        if state.file and not _same_path(state.file, sink.name):
            raise ConfigurationError(f"Checkpoint {self.store.path} belongs to {state.file}, not {sink.name}")
        state.file = sink.name
        return state

    def run(self, output: Optional[PathLike] = None, resume: bool = False) -> ExportResult:
        """Export the database.

        Args:
            output: Output file path (None or "-" for stdout)
            resume: Continue an interrupted export from its checkpoint

        Returns:
            ExportResult

        Raises:
            ConfigurationError: If resume is impossible
            CorruptCheckpointError: If the checkpoint cannot be decoded
            ExportError: If the output cannot be reopened for resume
            TransportError: If the connection fails
        """
        sink = OutputSink(output, compress=self.config.gzip, encoding=self.config.encoding)
        state = self._initial_state(sink, resume)
        resumed = resume and state.position > 0

        sink.open(resume_offset=state.position if resumed else None)
        exporter = ChunkedExporter(self.connector, self.config)
        statements_before = state.statements_executed

        def on_checkpoint(table_result: Optional[TableExportResult]) -> None:
            offset = sink.mark()
            if table_result is not None and table_result.success:
                state.completed_tables.append(table_result.table)
            state.record_commit(offset, statements_before + sink.statements_written)
            self.store.save(state)

        try:
            result = exporter.export(
                sink,
                skip_tables=state.completed_tables if resumed else (),
                write_header=not resumed,
                on_checkpoint=on_checkpoint if self.store is not None and sink.resumable else None,
            )
        finally:
            sink.close()

        if result.success and self.store is not None:
            result.checkpoint_cleared = self.store.clear()
        elif self.store is not None:
            logger.warning("Export finished with errors; checkpoint kept at %s", self.store.path)

        logger.info(
            "Export finished: %d tables, %d rows, %d errors",
            len(result.tables),
            result.rows_exported,
            len(result.errors),
        )
        return result
