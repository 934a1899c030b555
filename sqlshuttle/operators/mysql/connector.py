"""MySQL connector implementation using SQLAlchemy and PyMySQL.

This module provides connection management, dump introspection
(tables, views, routines, triggers) and import session switches for
MySQL and MariaDB servers.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.engine import URL, make_url

from sqlshuttle.exceptions import ConfigurationError
from sqlshuttle.models.table import TableDescriptor, TableKind
from sqlshuttle.operators.sql.connector import SQLConnector

logger = logging.getLogger(__name__)

DEFAULT_DRIVER = "mysql+pymysql"


def _create_column(row: dict[str, Any], marker: str = "create") -> Optional[str]:
    """Value of the first column whose name contains marker (SHOW CREATE output)."""
    for key, value in row.items():
        if marker in key.lower():
            return value
    return None


class MySQLConnector(SQLConnector):
    """MySQL connector using SQLAlchemy with the PyMySQL driver.

    Configuration keys:
        - host: Server host (default: localhost)
        - port: Server port (default: 3306)
        - user: User name (required unless connection_string is given)
        - password: Password (default: empty)
        - database: Database name (required unless connection_string is given)
        - connection_string: Full SQLAlchemy URL (alternative); a bare
          ``mysql://`` URL is switched to the PyMySQL driver
        - echo: Enable SQL logging (default: False)

    Examples:
        >>> config = {"host": "localhost", "user": "root", "database": "shop"}
        >>> with MySQLConnector(config) as conn:
        ...     for table in conn.list_tables():
        ...         print(table.name, table.kind)
    """

    # 2006 server gone away, 2013 lost connection during query,
    # 2055 lost connection at reading/writing
    transport_error_codes = frozenset({2006, 2013, 2055})
    # 1044 db access denied, 1142 table access, 1227 SUPER-like privilege,
    # 1370 routine access
    permission_error_codes = frozenset({1044, 1142, 1227, 1370})
    table_exists_error_codes = frozenset({1050})

    IMPORT_SESSION_SETUP = (
        "SET autocommit = 0",
        "SET unique_checks = 0",
        "SET foreign_key_checks = 0",
    )
    IMPORT_SESSION_RESTORE = (
        "SET foreign_key_checks = 1",
        "SET unique_checks = 1",
        "SET autocommit = 1",
    )

    def _build_connection_string(self) -> str:
        """Build MySQL connection string from config.

        Returns:
            SQLAlchemy connection string

        Raises:
            ConfigurationError: If required config is missing
        """
        if "connection_string" in self.config:
            url = make_url(self.config["connection_string"])
            if url.drivername in ("mysql", "mariadb"):
                url = url.set(drivername=DEFAULT_DRIVER)
            return url.render_as_string(hide_password=False)

        missing = [key for key in ("user", "database") if key not in self.config]
        if missing:
            raise ConfigurationError(f"Missing required config keys: {', '.join(missing)}")

        url = URL.create(
            DEFAULT_DRIVER,
            username=self.config["user"],
            password=self.config.get("password") or None,
            host=self.config.get("host", "localhost"),
            port=int(self.config.get("port", 3306)),
            database=self.config["database"],
            query={"charset": "utf8mb4"},
        )
        return url.render_as_string(hide_password=False)

    def _get_database_name(self) -> str:
        """Get database name for error messages.

        Returns:
            "MySQL"
        """
        return "MySQL"

    def list_tables(self) -> list[TableDescriptor]:
        rows = self.query("SHOW FULL TABLES WHERE Table_type IN ('BASE TABLE', 'VIEW')")
        tables = []
        for row in rows:
            name, table_type = list(row.values())[:2]
            kind = TableKind.VIEW if table_type == "VIEW" else TableKind.BASE_TABLE
            tables.append(TableDescriptor(name=name, kind=kind))
        return tables

    def show_create(self, table: TableDescriptor) -> Optional[str]:
        keyword = "VIEW" if table.is_view else "TABLE"
        rows = self.query(f"SHOW CREATE {keyword} {self.quote_identifier(table.name)}")
        if not rows:
            return None
        return _create_column(rows[0])

    def list_routines(self) -> list[tuple[str, str, str]]:
        """Procedures and functions of the current database.

        Raises:
            PermissionDeniedError: If the user cannot read routine definitions
        """
        routines = []
        for kind in ("PROCEDURE", "FUNCTION"):
            for status in self.query(f"SHOW {kind} STATUS WHERE Db = :db", {"db": self.database}):
                name = status["Name"]
                rows = self.query(f"SHOW CREATE {kind} {self.quote_identifier(name)}")
                create = _create_column(rows[0]) if rows else None
                if create is None:
                    logger.warning("No definition visible for %s %s", kind.lower(), name)
                    continue
                routines.append((kind, name, create))
        return routines

    def list_triggers(self) -> list[tuple[str, str]]:
        triggers = []
        for status in self.query("SHOW TRIGGERS"):
            name = status["Trigger"]
            rows = self.query(f"SHOW CREATE TRIGGER {self.quote_identifier(name)}")
            create = rows[0].get("SQL Original Statement") if rows else None
            if create:
                triggers.append((name, create))
        return triggers

    def dump_preamble(self) -> list[str]:
        return [
            "SET NAMES utf8mb4;",
            "SET time_zone = '+00:00';",
            "SET sql_mode = 'NO_AUTO_VALUE_ON_ZERO';",
            "SET FOREIGN_KEY_CHECKS = 0;",
        ]

    def dump_postamble(self) -> list[str]:
        return ["SET FOREIGN_KEY_CHECKS = 1;"]
