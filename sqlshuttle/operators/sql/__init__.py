"""Generic SQL operators for SQLAlchemy-based databases.

SQLConnector is the shared base: one persistent connection, explicit
transactions, raw statement execution and error classification.
Database-specific subclasses add catalog introspection and session
switches.
"""

from sqlshuttle.operators.sql.connector import SQLConnector

__all__ = ["SQLConnector"]
