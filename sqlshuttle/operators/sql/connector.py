"""SQL-based connector base class using SQLAlchemy.

This module provides a base class for SQL database connectors
that use SQLAlchemy for connection management.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    InterfaceError,
    ResourceClosedError,
    SQLAlchemyError,
)

from sqlshuttle.core.connector import Connector
from sqlshuttle.exceptions import (
    ConnectionError,
    PermissionDeniedError,
    ShuttleError,
    StatementExecutionError,
    TransportError,
)
from sqlshuttle.models.table import TableDescriptor

logger = logging.getLogger(__name__)

# Dump text goes to the driver untouched: no '%' or ':name' interpretation
RAW_SQL = {"no_parameters": True}


class SQLConnector(Connector):
    """Base class for SQL database connectors using SQLAlchemy.

    Provides common functionality for SQL-based databases including:
    - SQLAlchemy engine and a single persistent Connection per run
    - Explicit transaction control (begin, commit, rollback)
    - Raw statement execution for dump text
    - Error classification into statement, permission and transport errors
    - Offset/limit row windows and column discovery for export

    Subclasses must implement:
    - _build_connection_string(): Database-specific connection string
    - _get_database_name(): Return database name for error messages
    - list_tables(): Tables and views in dump order
    - show_create(): CREATE statement of a table or view

    Dialect hooks with defaults (override as needed):
    - list_routines(), list_triggers(): empty
    - dump_preamble(), dump_postamble(): empty
    - IMPORT_SESSION_SETUP / IMPORT_SESSION_RESTORE: session switches for imports

    This class is abstract and cannot be instantiated directly.
    """

    # String literal syntax of the dialect (see sqlshuttle.utils.sql)
    backslash_escapes: bool = True

    # Driver error codes (first DBAPI exception argument)
    transport_error_codes: frozenset[int] = frozenset()
    permission_error_codes: frozenset[int] = frozenset()
    table_exists_error_codes: frozenset[int] = frozenset()

    IMPORT_SESSION_SETUP: tuple[str, ...] = ()
    IMPORT_SESSION_RESTORE: tuple[str, ...] = ()

    def __init__(self, config: dict[str, Any]):
        """Initialize SQL connector.

        Args:
            config: Connection configuration dictionary
        """
        super().__init__(config)
        self.engine: Optional[Engine] = None
        self.connection: Optional[Connection] = None

    @abstractmethod
    def _build_connection_string(self) -> str:
        """Build database-specific connection string from config.

        Returns:
            SQLAlchemy connection string (e.g., "mysql+pymysql://...", "sqlite:///...")

        Raises:
            ConfigurationError: If required config is missing or invalid
        """
        pass

    @abstractmethod
    def _get_database_name(self) -> str:
        """Get database name for error messages.

        Returns:
            Human-readable database name (e.g., "MySQL", "SQLite")
        """
        pass

    @abstractmethod
    def list_tables(self) -> list[TableDescriptor]:
        """List tables and views in the dialect's listing order.

        Returns:
            Descriptors without columns (see describe_table)
        """
        pass

    @abstractmethod
    def show_create(self, table: TableDescriptor) -> Optional[str]:
        """Get the CREATE statement of a table or view (no terminator).

        Returns:
            CREATE statement, or None if the catalog has none
        """
        pass

    def connect(self) -> None:
        """Establish connection to the SQL database.

        Creates a SQLAlchemy engine with the connection string from
        _build_connection_string() and opens the run's connection.

        Raises:
            ConnectionError: If connection fails
        """
        connection_string = self._build_connection_string()
        try:
            self.engine = create_engine(
                connection_string,
                pool_pre_ping=True,  # Verify connections before using
                echo=self.config.get("echo", False),  # SQL logging
            )
            self.connection = self.engine.connect()
            self.connection.exec_driver_sql("SELECT 1")
            self.connection.rollback()
        except Exception as e:
            self.disconnect()
            db_name = self._get_database_name()
            raise ConnectionError(f"Failed to connect to {db_name}: {e}") from e

        logger.info("Connected to %s database %s", self._get_database_name(), self.database)

    def disconnect(self) -> None:
        """Close connection to the SQL database.

        Any open transaction is rolled back by closing the connection.
        Safe to call even if already disconnected.
        """
        if self.connection is not None:
            self.connection.close()
            self.connection = None
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    def test_connection(self) -> bool:
        """Test connectivity to the SQL database.

        Returns:
            True if connection is successful, False otherwise
        """
        try:
            if not self.is_connected:
                self.connect()
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
            return True
        except (ShuttleError, SQLAlchemyError):
            return False

    @property
    def database(self) -> str:
        """Name of the connected database (used for default checkpoint names)."""
        if self.engine is not None and self.engine.url.database:
            return self.engine.url.database
        return ""

    def _require_connection(self) -> Connection:
        if self.connection is None:
            raise ConnectionError("Not connected to database")
        return self.connection

    # Statement execution

    def execute(self, sql: str) -> None:
        """Execute a statement verbatim inside the current transaction.

        Args:
            sql: Statement text without terminator

        Raises:
            StatementExecutionError: If the statement fails
            TransportError: If the connection fails
        """
        conn = self._require_connection()
        try:
            conn.exec_driver_sql(sql, execution_options=RAW_SQL)
        except SQLAlchemyError as e:
            raise self.classify_error(e, sql) from e

    def query(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """Execute a query with bound parameters and return the rows.

        Args:
            sql: SQL query string (``:name`` placeholders)
            params: Bind parameter values

        Returns:
            List of records as dictionaries (column_name -> value)
        """
        conn = self._require_connection()
        try:
            result = conn.execute(text(sql), params or {})
            return [dict(row._mapping) for row in result]
        except SQLAlchemyError as e:
            raise self.classify_error(e, sql) from e

    def fetch_rows(self, sql: str) -> tuple[list[str], list[tuple]]:
        """Execute a raw query and return column names and row tuples."""
        conn = self._require_connection()
        try:
            result = conn.exec_driver_sql(sql, execution_options=RAW_SQL)
            columns = list(result.keys())
            rows = [tuple(row) for row in result]
            return columns, rows
        except SQLAlchemyError as e:
            raise self.classify_error(e, sql) from e

    # Transaction control

    def begin_transaction(self) -> None:
        conn = self._require_connection()
        if conn.in_transaction():
            return
        try:
            conn.begin()
        except SQLAlchemyError as e:
            raise self.classify_error(e) from e

    def commit(self) -> None:
        conn = self._require_connection()
        try:
            conn.commit()
        except SQLAlchemyError as e:
            raise self.classify_error(e) from e

    def rollback(self) -> None:
        conn = self._require_connection()
        try:
            conn.rollback()
        except SQLAlchemyError as e:
            raise self.classify_error(e) from e

    # Error classification

    def error_code(self, error: BaseException) -> Optional[int]:
        """Driver error code of a DBAPI failure, if it has one."""
        orig = getattr(error, "orig", None)
        args = getattr(orig, "args", ())
        if args and isinstance(args[0], int):
            return args[0]
        return None

    def classify_error(self, error: SQLAlchemyError, statement: Optional[str] = None) -> ShuttleError:
        """Map a SQLAlchemy/DBAPI error onto the sqlshuttle error taxonomy.

        Returns:
            TransportError for lost or invalidated connections,
            PermissionDeniedError for privilege failures,
            StatementExecutionError for everything else
        """
        orig = getattr(error, "orig", None)
        message = str(orig) if orig is not None else str(error)

        if isinstance(error, DBAPIError):
            if error.connection_invalidated or isinstance(error, InterfaceError):
                return TransportError(f"Connection to {self._get_database_name()} lost: {message}")
            code = self.error_code(error)
            if code in self.transport_error_codes:
                return TransportError(f"Connection to {self._get_database_name()} lost: {message}")
            if code in self.permission_error_codes:
                return PermissionDeniedError(message, statement)
            return StatementExecutionError(message, statement)

        if isinstance(error, (DisconnectionError, ResourceClosedError)):
            return TransportError(f"Connection to {self._get_database_name()} lost: {message}")

        return StatementExecutionError(message, statement)

    def is_table_exists_error(self, error: StatementExecutionError) -> bool:
        """True if a failed statement tried to create an existing table."""
        cause = error.__cause__
        if cause is not None and self.error_code(cause) in self.table_exists_error_codes:
            return True
        return "already exists" in str(error).lower()

    # Export helpers

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier only where the dialect requires it."""
        if self.engine is None:
            raise ConnectionError("Not connected to database")
        return self.engine.dialect.identifier_preparer.quote(name)

    def get_columns(self, table: str) -> list[str]:
        """Column names of a table in storage order."""
        columns, _ = self.fetch_rows(f"SELECT * FROM {self.quote_identifier(table)} LIMIT 0")
        return columns

    def describe_table(self, table: TableDescriptor) -> TableDescriptor:
        """Return the descriptor with its columns resolved."""
        return table.model_copy(update={"columns": tuple(self.get_columns(table.name))})

    def fetch_window(self, table: str, columns: Sequence[str], limit: int, offset: int) -> list[tuple]:
        """Fetch one offset/limit window in natural storage order."""
        column_list = ", ".join(self.quote_identifier(c) for c in columns) or "*"
        sql = (
            f"SELECT {column_list} FROM {self.quote_identifier(table)} "
            f"LIMIT {int(limit)} OFFSET {int(offset)}"
        )
        _, rows = self.fetch_rows(sql)
        return rows

    def list_routines(self) -> list[tuple[str, str, str]]:
        """Stored routines as (kind, name, create statement)."""
        return []

    def list_triggers(self) -> list[tuple[str, str]]:
        """Triggers as (name, create statement)."""
        return []

    def dump_preamble(self) -> list[str]:
        """Session statements written at the top of a dump."""
        return []

    def dump_postamble(self) -> list[str]:
        """Session statements written at the end of a dump."""
        return []

    # Import session

    def begin_import_session(self) -> None:
        """Apply session switches for a bulk import and commit them."""
        for statement in self.IMPORT_SESSION_SETUP:
            self.execute(statement)
        self.commit()

    def end_import_session(self) -> None:
        """Restore session switches changed by begin_import_session."""
        for statement in self.IMPORT_SESSION_RESTORE:
            self.execute(statement)
        self.commit()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(database={self.database!r})"
