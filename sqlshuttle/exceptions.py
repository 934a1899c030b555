"""sqlshuttle exception hierarchy."""

from __future__ import annotations


class ShuttleError(Exception):
    """Base exception for all sqlshuttle errors."""

    pass


class ConfigurationError(ShuttleError):
    """Raised when configuration is invalid or missing."""

    pass


class ConnectionError(ShuttleError):
    """Raised when connection to a database fails."""

    pass


class SourceNotFoundError(ShuttleError):
    """Raised when a SQL source file does not exist."""

    pass


class UnsupportedSourceFormatError(ShuttleError):
    """Raised when a source cannot be read (e.g. archive without a .sql member)."""

    pass


class CorruptCheckpointError(ShuttleError):
    """Raised when a checkpoint file exists but cannot be decoded.

    Never treated as "start fresh": doing so would replay statements that
    were already committed.
    """

    pass


class StatementExecutionError(ShuttleError):
    """Raised when a single statement or query fails at the target.

    Recoverable: the executor counts it and applies the stop-on-error policy.
    """

    def __init__(self, message: str, statement: str | None = None):
        super().__init__(message)
        self.statement = statement


class TransportError(ShuttleError):
    """Raised when the connection itself fails (lost, invalidated, closed).

    Always fatal; the open batch is rolled back before this propagates.
    """

    pass


class PermissionDeniedError(StatementExecutionError):
    """Raised when introspection is refused for lack of privileges."""

    pass


class ExportError(ShuttleError):
    """Raised when an export run cannot proceed."""

    pass


class ValidationError(ShuttleError):
    """Raised when a profile or option bundle fails validation."""

    pass
