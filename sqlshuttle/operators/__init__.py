"""Database operators for sqlshuttle.

Connectors are resolved from the backend name of a SQLAlchemy URL through
DEFAULT_CONNECTORS and loaded lazily, so a missing driver only matters
for the backend that needs it.
"""

from __future__ import annotations

import importlib
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from sqlshuttle.exceptions import ConfigurationError
from sqlshuttle.operators.sql.connector import SQLConnector

# Maps URL backend name to connector class
DEFAULT_CONNECTORS = {
    "mysql": "sqlshuttle.operators.mysql.connector.MySQLConnector",
    "mariadb": "sqlshuttle.operators.mysql.connector.MySQLConnector",
    "sqlite": "sqlshuttle.operators.sqlite.connector.SQLiteConnector",
}


def _load_connector_class(class_path: str) -> type[SQLConnector]:
    """Dynamically load a connector class from its dotted path.

    Args:
        class_path: Full path like "sqlshuttle.operators.sqlite.connector.SQLiteConnector"

    Returns:
        Connector class

    Raises:
        ConfigurationError: If the class cannot be loaded
    """
    module_path, class_name = class_path.rsplit(".", 1)
    try:
        module = importlib.import_module(module_path)
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Failed to load connector '{class_path}': {e}") from e


def backend_name(url: str) -> str:
    """Backend part of a SQLAlchemy URL ("mysql" for mysql+pymysql://...)."""
    try:
        return make_url(url).get_backend_name()
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database URL: {e}") from e


def create_connector(url: str, **options: Any) -> SQLConnector:
    """Create an (unconnected) connector for a SQLAlchemy URL.

    Args:
        url: Database URL, e.g. "mysql+pymysql://user:pw@host/shop" or "sqlite:///shop.db"
        **options: Extra connector config (e.g. echo=True)

    Returns:
        Connector instance; use it as a context manager to connect

    Raises:
        ConfigurationError: If the URL is invalid or its backend unsupported
    """
    backend = backend_name(url)
    if backend not in DEFAULT_CONNECTORS:
        supported = ", ".join(sorted(DEFAULT_CONNECTORS))
        raise ConfigurationError(f"Unsupported database backend '{backend}' (supported: {supported})")

    connector_class = _load_connector_class(DEFAULT_CONNECTORS[backend])
    return connector_class({"connection_string": url, **options})


__all__ = ["DEFAULT_CONNECTORS", "SQLConnector", "backend_name", "create_connector"]
