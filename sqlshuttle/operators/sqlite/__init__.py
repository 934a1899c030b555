"""SQLite operators for sqlshuttle."""

from sqlshuttle.operators.sqlite.connector import SQLiteConnector

__all__ = ["SQLiteConnector"]
