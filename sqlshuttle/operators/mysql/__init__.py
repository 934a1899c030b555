"""MySQL operators for sqlshuttle."""

from sqlshuttle.operators.mysql.connector import MySQLConnector

__all__ = ["MySQLConnector"]
