"""Transactional batched statement execution.

The executor applies a statement stream to the target inside transactions
of bounded size and age. The checkpoint moves only after a batch commit
has succeeded, so a persisted position never covers uncommitted work.
After a crash between commit and checkpoint write, that batch is applied
again on resume (at-least-once delivery).
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Iterable, Optional

from sqlshuttle.core.checkpoint import CheckpointStore
from sqlshuttle.exceptions import ShuttleError, StatementExecutionError, TransportError
from sqlshuttle.models.checkpoint import Checkpoint
from sqlshuttle.models.results import ExecutionStats
from sqlshuttle.models.statement import StatementBoundary
from sqlshuttle.models.transfer import TransferConfig
from sqlshuttle.operators.sql.connector import SQLConnector
from sqlshuttle.utils.sql import preview, statement_fingerprint, strip_leading_comments

logger = logging.getLogger(__name__)

# Error messages kept in ExecutionStats; the count is always exact
MAX_ERROR_MESSAGES = 100


class ExecutorState(str, Enum):
    """Lifecycle of a TransactionalExecutor."""

    IDLE = "idle"
    BATCH_OPEN = "batch_open"
    COMMITTING = "committing"
    FAILED = "failed"
    DONE = "done"


class TransactionalExecutor:
    """Apply statements in committed batches and persist checkpoints.

    A batch commits after ``config.batch_size`` statements or
    ``config.batch_time_seconds`` seconds, whichever comes first. Each commit
    is followed by a checkpoint save at the offset of the last statement in
    the batch.

    Failed statements are counted and, unless ``stop_on_error`` is set,
    consumed: the checkpoint moves past them like any other statement.
    Statements that cannot be decoded in the source encoding fail the same
    way and are never sent to the target.
    Transport failures roll back the open batch and propagate.

    Examples:
        >>> executor = TransactionalExecutor(connector, config, store, checkpoint)
        >>> stats = executor.run(StatementScanner(source, checkpoint.position))
        >>> stats.errors
        0
    """

    def __init__(
        self,
        connector: SQLConnector,
        config: TransferConfig,
        store: Optional[CheckpointStore] = None,
        checkpoint: Optional[Checkpoint] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize executor.

        Args:
            connector: Connected target
            config: Transfer options (batch size/time, error policy)
            store: Where checkpoints are persisted (None = not persisted)
            checkpoint: State to resume from (fresh state if None)
            clock: Monotonic clock used for batch age
        """
        self.connector = connector
        self.config = config
        self.store = store
        self.checkpoint = checkpoint or Checkpoint.fresh()
        self.clock = clock

        self.state = ExecutorState.IDLE
        self.stats = ExecutionStats(
            statements_executed=self.checkpoint.statements_executed,
            position=self.checkpoint.position,
        )

        self._batch_count = 0
        self._batch_started = 0.0
        self._pending_position = self.checkpoint.position
        self._pending_hash: Optional[str] = None

    def run(self, statements: Iterable[StatementBoundary]) -> ExecutionStats:
        """Execute a statement stream to exhaustion.

        Returns:
            Execution counters

        Raises:
            StatementExecutionError: On the first failing statement when
                stop_on_error is set (the open batch is rolled back)
            TransportError: If the connection fails (open batch rolled back)
        """
        self._open_batch()
        try:
            for boundary in statements:
                self._apply(boundary)
                if self._batch_due():
                    self._commit_batch()
                    self._open_batch()
            self._commit_batch()
        except Exception:
            self._abort()
            raise

        self.state = ExecutorState.DONE
        logger.info(
            "Import finished: %d statements, %d errors, %d warnings",
            self.stats.statements_executed,
            self.stats.errors,
            self.stats.warnings,
        )
        return self.stats

    def _open_batch(self) -> None:
        self.connector.begin_transaction()
        self.state = ExecutorState.BATCH_OPEN
        self._batch_count = 0
        self._batch_started = self.clock()

    def _batch_due(self) -> bool:
        if self._batch_count >= self.config.batch_size:
            return True
        return self.clock() - self._batch_started >= self.config.batch_time_seconds

    def _apply(self, boundary: StatementBoundary) -> None:
        if boundary.decode_error is not None:
            self._fail(boundary, StatementExecutionError(boundary.decode_error, statement=boundary.sql))
        else:
            sql = strip_leading_comments(boundary.sql)
            if sql:
                self._execute(boundary, sql)
            else:
                logger.debug("Skipping comment at offset %d", boundary.offset)

        self._batch_count += 1
        self.stats.statements_executed += 1
        self._pending_position = boundary.offset
        self._pending_hash = statement_fingerprint(boundary.sql)

    def _execute(self, boundary: StatementBoundary, sql: str) -> None:
        try:
            self.connector.execute(sql)
        except TransportError:
            raise
        except StatementExecutionError as e:
            if self.config.ignore_table_exists and self._is_create_table(sql) \
                    and self.connector.is_table_exists_error(e):
                self.stats.warnings += 1
                logger.warning("Table already exists, skipped: %s", preview(sql, 80))
                return
            self._fail(boundary, e)

    def _fail(self, boundary: StatementBoundary, error: StatementExecutionError) -> None:
        """Count a failed statement; re-raise it under stop_on_error."""
        self.stats.errors += 1
        message = f"offset {boundary.offset}: {error}"
        if len(self.stats.error_messages) < MAX_ERROR_MESSAGES:
            self.stats.error_messages.append(message)
        logger.error("Statement failed at %s | %s", message, preview(boundary.sql))

        if self.config.stop_on_error:
            raise error

    @staticmethod
    def _is_create_table(sql: str) -> bool:
        return sql.lstrip()[:12].upper() == "CREATE TABLE"

    def _commit_batch(self) -> None:
        self.state = ExecutorState.COMMITTING
        self.connector.commit()

        if self._batch_count == 0:
            return

        self.stats.batches_committed += 1
        self.checkpoint.record_commit(
            self._pending_position,
            self.stats.statements_executed,
            self._pending_hash,
        )
        if self.store is not None:
            self.store.save(self.checkpoint)
        self.stats.position = self.checkpoint.position

        logger.info(
            "Committed batch %d: %d statements, %d errors, position %d",
            self.stats.batches_committed,
            self.stats.statements_executed,
            self.stats.errors,
            self.stats.position,
        )

    def _abort(self) -> None:
        self.state = ExecutorState.FAILED
        try:
            self.connector.rollback()
        except ShuttleError as e:
            logger.warning("Rollback after failure did not complete: %s", e)
        logger.error(
            "Import aborted; last committed position %d (%d statements)",
            self.checkpoint.position,
            self.checkpoint.statements_executed,
        )
