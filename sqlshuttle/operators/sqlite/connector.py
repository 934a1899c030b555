"""SQLite connector implementation using SQLAlchemy.

This module provides connection management and dump introspection
for SQLite databases.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.engine import make_url

from sqlshuttle.exceptions import ConfigurationError
from sqlshuttle.models.table import TableDescriptor, TableKind
from sqlshuttle.operators.sql.connector import SQLConnector


class SQLiteConnector(SQLConnector):
    """SQLite connector using SQLAlchemy.

    SQLite string literals have no backslash escapes, so exported text
    values double their quotes instead (see sqlshuttle.utils.sql).

    Configuration keys:
        - database: Database file path (required, or ":memory:" for in-memory)
        - connection_string: Full connection string (alternative)
        - echo: Enable SQL logging (default: False)

    Examples:
        >>> config = {"database": "/path/to/database.db"}
        >>> with SQLiteConnector(config) as conn:
        ...     tables = conn.list_tables()

        >>> # In-memory database
        >>> config = {"database": ":memory:"}
        >>> with SQLiteConnector(config) as conn:
        ...     conn.execute("CREATE TABLE test (id INTEGER PRIMARY KEY)")
    """

    backslash_escapes = False

    IMPORT_SESSION_SETUP = ("PRAGMA foreign_keys = OFF",)
    IMPORT_SESSION_RESTORE = ("PRAGMA foreign_keys = ON",)

    def _build_connection_string(self) -> str:
        """Build SQLite connection string from config.

        Returns:
            SQLAlchemy connection string

        Raises:
            ConfigurationError: If required config is missing
        """
        # If connection_string provided, use it directly
        if "connection_string" in self.config:
            return self.config["connection_string"]

        # Build from database path
        if "database" not in self.config:
            raise ConfigurationError("Missing required config key: database")

        database = self.config["database"]

        # SQLite connection string format
        return f"sqlite:///{database}"

    def _get_database_name(self) -> str:
        """Get database name for error messages.

        Returns:
            "SQLite"
        """
        return "SQLite"

    @property
    def database(self) -> str:
        """Database file stem (e.g. "shop" for /data/shop.db)."""
        path = make_url(self._build_connection_string()).database or ""
        if not path or path == ":memory:":
            return "memory"
        return path.replace("\\", "/").rsplit("/", 1)[-1].split(".", 1)[0]

    def list_tables(self) -> list[TableDescriptor]:
        rows = self.query(
            "SELECT name, type FROM sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' "
            "ORDER BY name"
        )
        return [
            TableDescriptor(
                name=row["name"],
                kind=TableKind.VIEW if row["type"] == "view" else TableKind.BASE_TABLE,
            )
            for row in rows
        ]

    def show_create(self, table: TableDescriptor) -> Optional[str]:
        rows = self.query(
            "SELECT sql FROM sqlite_master WHERE name = :name AND type IN ('table', 'view')",
            {"name": table.name},
        )
        if not rows or not rows[0]["sql"]:
            return None
        return rows[0]["sql"]

    def list_triggers(self) -> list[tuple[str, str]]:
        rows = self.query(
            "SELECT name, sql FROM sqlite_master WHERE type = 'trigger' AND sql IS NOT NULL ORDER BY name"
        )
        return [(row["name"], row["sql"]) for row in rows]

    def dump_preamble(self) -> list[str]:
        return ["PRAGMA foreign_keys = OFF;"]

    def dump_postamble(self) -> list[str]:
        return ["PRAGMA foreign_keys = ON;"]
