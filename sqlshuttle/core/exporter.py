"""Chunked table export.

Rows are read through offset/limit windows of ``chunk_size`` rows, so
peak memory is one window regardless of table size. Each selected table is
written as optional DROP, CREATE, then INSERTs. Schema and data of one
table are self-contained, so a partially written dump stays valid up to
its last complete table.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Iterator, Optional

from sqlshuttle import __version__
from sqlshuttle.core.sink import OutputSink
from sqlshuttle.core.table_filter import TableFilter
from sqlshuttle.exceptions import PermissionDeniedError, StatementExecutionError, TransportError
from sqlshuttle.models.results import ExportResult, TableExportResult
from sqlshuttle.models.table import ExportCursor, TableDescriptor
from sqlshuttle.models.transfer import TransferConfig
from sqlshuttle.operators.sql.connector import SQLConnector
from sqlshuttle.utils.sql import build_insert_statements

logger = logging.getLogger(__name__)

DUMP_TITLE = "sqlshuttle SQL dump"

# Called after the preamble (None) and after each table (its result)
CheckpointHook = Callable[[Optional[TableExportResult]], None]


class ChunkedExporter:
    """Produce a SQL dump of a database through a connector.

    Examples:
        >>> exporter = ChunkedExporter(connector, TransferConfig(chunk_size=500))
        >>> with OutputSink("shop.sql") as sink:
        ...     result = exporter.export(sink)
        >>> result.rows_exported
        12000
    """

    def __init__(
        self,
        connector: SQLConnector,
        config: TransferConfig,
        table_filter: Optional[TableFilter] = None,
    ):
        self.connector = connector
        self.config = config
        self.table_filter = table_filter or TableFilter.from_config(config)

    # Table selection

    def resolve_tables(self) -> list[TableDescriptor]:
        """Tables to export, in the connector's listing order."""
        tables = self.table_filter.select(self.connector.list_tables())
        if not self.config.include_views:
            tables = [t for t in tables if not t.is_view]
        return tables

    # Statement production

    def structure_statements(self, table: TableDescriptor) -> list[str]:
        """DROP (optional) and CREATE statements, or a comment if no DDL is available."""
        statements = []
        if self.config.drop_table:
            keyword = "VIEW" if table.is_view else "TABLE"
            statements.append(f"DROP {keyword} IF EXISTS {self.connector.quote_identifier(table.name)};")

        try:
            create = self.connector.show_create(table)
        except TransportError:
            raise
        except StatementExecutionError as e:
            logger.warning("Could not get CREATE statement for %s: %s", table.name, e)
            create = None

        if create:
            statements.append(create.rstrip().rstrip(";") + ";")
        else:
            statements.append(f"-- Could not get CREATE statement for {table.name}")
        return statements

    def iter_windows(self, table: TableDescriptor, cursor: Optional[ExportCursor] = None) -> Iterator[list[tuple]]:
        """Yield non-empty row windows of a table.

        Args:
            table: Descriptor with columns resolved
            cursor: Window position (a new cursor at offset 0 if None)
        """
        cursor = cursor or ExportCursor(table_name=table.name, chunk_size=self.config.chunk_size)
        while True:
            rows = self.connector.fetch_window(table.name, table.columns, cursor.chunk_size, cursor.row_offset)
            more = cursor.advance(len(rows))
            if rows:
                yield rows
            if not more:
                break

    def data_statements(self, table: TableDescriptor, rows: list[tuple]) -> list[str]:
        return build_insert_statements(
            table.name,
            table.columns,
            rows,
            extended=self.config.extended_insert,
            hex_binary=self.config.hex_encode_binary,
            backslash_escapes=self.connector.backslash_escapes,
            quote_identifier=self.connector.quote_identifier,
        )

    def table_statements(self, table: TableDescriptor) -> Iterator[str]:
        """Full statement sequence of one table (DDL, then INSERTs)."""
        yield from self.structure_statements(table)
        if table.is_view or not self.config.include_data:
            return
        described = self.connector.describe_table(table)
        for rows in self.iter_windows(described):
            yield from self.data_statements(described, rows)

    # Writing

    def write_header(self, sink: OutputSink) -> None:
        sink.write_comment(DUMP_TITLE)
        sink.write_comment(f"Version: {__version__}")
        if self.connector.database:
            sink.write_comment(f"Database: {self.connector.database}")
        sink.write_comment(f"Generated: {datetime.now().isoformat(sep=' ', timespec='seconds')}")
        sink.write_blank()
        sink.write_statements(self.connector.dump_preamble())

    def export_table(self, table: TableDescriptor, sink: OutputSink) -> TableExportResult:
        """Write one table; a failure aborts this table only.

        Raises:
            TransportError: If the connection fails
        """
        result = TableExportResult(table=table.name, kind=table.kind, success=True)
        logger.info("Exporting %s %s", "view" if table.is_view else "table", table.name)

        try:
            sink.write_blank()
            sink.write_comment()
            sink.write_comment(f"Table structure for {table.name}")
            sink.write_comment()
            sink.write_blank()
            for sql in self.structure_statements(table):
                if sql.startswith("--"):
                    sink.write_comment(sql[2:])
                else:
                    sink.write_statement(sql)

            if table.is_view or not self.config.include_data:
                return result

            described = self.connector.describe_table(table)
            cursor = ExportCursor(table_name=table.name, chunk_size=self.config.chunk_size)
            sink.write_blank()
            sink.write_comment()
            sink.write_comment(f"Dumping data for {table.name}")
            sink.write_comment()
            sink.write_blank()
            for rows in self.iter_windows(described, cursor):
                statements = self.data_statements(described, rows)
                sink.write_statements(statements)
                result.rows_exported += len(rows)
                result.insert_statements += len(statements)
                logger.debug("%s: %d rows written", table.name, result.rows_exported)
            result.windows_fetched = cursor.windows_fetched

        except TransportError:
            raise
        except StatementExecutionError as e:
            logger.error("Export of %s failed: %s", table.name, e)
            sink.write_comment(f"Error exporting {table.name}: {e}")
            result.success = False
            result.error_message = str(e)

        logger.info("Exported %s: %d rows", table.name, result.rows_exported)
        return result

    def _write_definitions(
        self,
        sink: OutputSink,
        label: str,
        fetch: Callable[[], list[tuple[str, str, str]]],
    ) -> Optional[str]:
        """Write DROP/CREATE pairs of routines or triggers.

        Returns:
            Error message if the definitions could not be read for a reason
            other than missing privileges
        """
        try:
            definitions = fetch()
        except TransportError:
            raise
        except PermissionDeniedError as e:
            logger.warning("Could not dump %s: %s", label, e)
            sink.write_comment(f"Could not dump {label}: {e}")
            return None
        except StatementExecutionError as e:
            logger.error("Could not dump %s: %s", label, e)
            sink.write_comment(f"Could not dump {label}: {e}")
            return f"{label}: {e}"

        if not definitions:
            return None

        sink.write_blank()
        sink.write_comment(label.capitalize())
        sink.write_blank()
        for kind, name, create in definitions:
            if self.config.drop_table:
                sink.write_statement(f"DROP {kind} IF EXISTS {self.connector.quote_identifier(name)};")
            sink.write_statement(create.rstrip().rstrip(";") + ";")
        return None

    def write_routines(self, sink: OutputSink) -> Optional[str]:
        return self._write_definitions(sink, "routines", self.connector.list_routines)

    def write_triggers(self, sink: OutputSink) -> Optional[str]:
        return self._write_definitions(
            sink,
            "triggers",
            lambda: [("TRIGGER", name, create) for name, create in self.connector.list_triggers()],
        )

    def write_footer(self, sink: OutputSink) -> None:
        sink.write_blank()
        sink.write_statements(self.connector.dump_postamble())
        sink.write_blank()
        sink.write_comment("End of dump")

    def export(
        self,
        sink: OutputSink,
        skip_tables: Iterable[str] = (),
        write_header: bool = True,
        on_checkpoint: Optional[CheckpointHook] = None,
    ) -> ExportResult:
        """Write a complete dump to an open sink.

        Args:
            sink: Open output
            skip_tables: Tables completed by a previous run
            write_header: False when resuming after the header was written
            on_checkpoint: Called at every durable section boundary

        Returns:
            ExportResult

        Raises:
            TransportError: If the connection fails
        """
        started_at = datetime.now()
        result = ExportResult(output=sink.name, success=True, started_at=started_at)
        skip = set(skip_tables)
        statements_before = sink.statements_written

        if write_header:
            self.write_header(sink)
            if on_checkpoint is not None:
                on_checkpoint(None)

        tables = self.resolve_tables()
        logger.info("Exporting %d tables (%d already complete)", len(tables), len(skip))

        for table in tables:
            if table.name in skip:
                result.tables.append(
                    TableExportResult(table=table.name, kind=table.kind, success=True, skipped=True)
                )
                continue

            table_result = self.export_table(table, sink)
            result.tables.append(table_result)
            if not table_result.success:
                result.errors.append(f"{table.name}: {table_result.error_message}")
            if on_checkpoint is not None:
                on_checkpoint(table_result)

        if self.config.routines:
            error = self.write_routines(sink)
            if error:
                result.errors.append(error)
        if self.config.triggers:
            error = self.write_triggers(sink)
            if error:
                result.errors.append(error)
        self.write_footer(sink)

        result.success = not result.errors
        result.statements_written = sink.statements_written - statements_before
        result.completed_at = datetime.now()
        result.duration_seconds = (result.completed_at - started_at).total_seconds()
        return result
