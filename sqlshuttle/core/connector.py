"""Base Connector abstract class.

This module defines the Connector interface: the connection handle that
import and export components receive. It covers connection lifecycle,
statement execution, and explicit transaction control.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class Connector(ABC):
    """Base class for database connection handles.

    A connector holds exactly one live connection per run. Components never
    open their own connections; they are handed a connected connector.

    Examples:
        Using a connector as a context manager:
        >>> with SQLiteConnector({"database": "shop.db"}) as conn:
        ...     conn.begin_transaction()
        ...     conn.execute("INSERT INTO t VALUES (1)")
        ...     conn.commit()
    """

    def __init__(self, config: dict[str, Any]):
        """Initialize connector with configuration.

        Args:
            config: Connection configuration dictionary
        """
        self.config = config
        self.connection: Optional[Any] = None

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the database.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Close connection to the database.

        Should handle cases where connection is already closed gracefully.
        """
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Test connectivity to the database.

        Returns:
            True if connection is successful, False otherwise
        """
        pass

    @abstractmethod
    def execute(self, sql: str) -> None:
        """Execute one statement verbatim, inside the current transaction.

        Raises:
            StatementExecutionError: If the statement fails
            TransportError: If the connection fails
        """
        pass

    @abstractmethod
    def query(self, sql: str, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        """Run a query and return its rows as dictionaries.

        Raises:
            StatementExecutionError: If the query fails
            TransportError: If the connection fails
        """
        pass

    @abstractmethod
    def begin_transaction(self) -> None:
        """Open a transaction (no-op if one is already open)."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the open transaction."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the open transaction."""
        pass

    def __enter__(self) -> Connector:
        """Context manager entry: establish connection.

        Returns:
            Self
        """
        self.connect()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit: close connection.

        Args:
            exc_type: Exception type (if any)
            exc_val: Exception value (if any)
            exc_tb: Exception traceback (if any)
        """
        self.disconnect()

    @property
    def is_connected(self) -> bool:
        """Check if connection is established.

        Returns:
            True if connected, False otherwise
        """
        return self.connection is not None
