"""Statement boundary model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StatementBoundary:
    """A complete SQL statement recovered from a stream.

    Attributes:
        sql: Trimmed statement text, terminator excluded
        offset: Stream offset immediately after the statement's terminator
                (end of stream for an unterminated final statement)
        decode_error: Set when the statement bytes are not valid in the
                source encoding; ``sql`` then shows the bad bytes as
                backslash escapes and must not be executed
    """

    sql: str
    offset: int
    decode_error: Optional[str] = None

    def __str__(self) -> str:
        return self.sql
