"""Statement boundary scanner.

Splits a SQL byte stream into complete statements. A statement ends at a
semicolon that is outside any quoted literal; backslash escapes are honoured
inside literals. Lines whose first non-blank characters are ``--`` or ``#``
are dropped when they start outside a literal. A comment marker later in a
line is ordinary statement text.

Every emitted statement carries the stream offset just past its terminator.
Scanning again from that offset yields exactly the remaining statements,
which is what makes checkpoint resume possible.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, Optional

from sqlshuttle.core.config import settings
from sqlshuttle.core.source import SQLSource
from sqlshuttle.models.statement import StatementBoundary

logger = logging.getLogger(__name__)

# Bytes that can change scanner state
_SPECIAL = re.compile(rb"[\\'\";]")

_BACKSLASH = ord("\\")
_SEMICOLON = ord(";")
_QUOTES = (ord("'"), ord('"'))

_COMMENT_PREFIXES = (b"--", b"#")


class StatementScanner:
    """Lazy iterator of StatementBoundary objects over a SQLSource.

    The scanner reads bounded line fragments, so memory grows only with the
    largest single statement, never with the stream.

    Examples:
        >>> with SQLSource.open("dump.sql") as source:
        ...     for stmt in StatementScanner(source):
        ...         print(stmt.offset, stmt.sql[:40])

        Resume after a checkpoint:
        >>> scanner = StatementScanner(source, start_offset=checkpoint.position)
    """

    def __init__(
        self,
        source: SQLSource,
        start_offset: int = 0,
        encoding: str = "utf-8",
        read_size: Optional[int] = None,
    ):
        """Initialize scanner.

        Args:
            source: Open source to scan
            start_offset: Boundary offset to resume from (0 = start of stream)
            encoding: Text encoding used to decode statements
            read_size: Maximum bytes per read (default from settings)
        """
        self.source = source
        self.start_offset = start_offset
        self.encoding = encoding
        self.read_size = read_size or settings.read_buffer_size
        self.statements_emitted = 0

    def __iter__(self) -> Iterator[StatementBoundary]:
        return self.statements()

    def _position_at_start(self) -> bool:
        """Seek to the start offset; return whether it is at a line start."""
        if self.start_offset == 0:
            self.source.seek(0)
            return True

        logger.info("Resuming scan of %s at offset %d", self.source.path, self.start_offset)
        self.source.seek(self.start_offset - 1)
        previous = self.source.read(1)
        return previous == b"\n"

    def _boundary(self, data: bytearray, offset: int) -> Optional[StatementBoundary]:
        """Decode a statement; None if it is blank."""
        try:
            sql = data.decode(self.encoding).strip()
        except UnicodeDecodeError as e:
            sql = data.decode(self.encoding, errors="backslashreplace").strip()
            error = f"Statement is not valid {self.encoding} (byte {e.start}: {e.reason})"
            logger.warning("Undecodable statement ending at offset %d: %s", offset, error)
            return StatementBoundary(sql=sql, offset=offset, decode_error=error)
        if not sql:
            return None
        return StatementBoundary(sql=sql, offset=offset)

    def statements(self) -> Iterator[StatementBoundary]:
        """Yield statements in stream order."""
        at_line_start = self._position_at_start()
        dropping_comment = False

        pending = bytearray()
        in_string = False
        quote: Optional[int] = None
        escaped = False

        while True:
            chunk_start = self.source.position()
            chunk = self.source.readline(self.read_size)
            if not chunk:
                break
            ends_line = chunk.endswith(b"\n")

            # Rest of an over-long comment line
            if dropping_comment:
                dropping_comment = not ends_line
                at_line_start = ends_line
                continue

            if at_line_start and not in_string and chunk.lstrip().startswith(_COMMENT_PREFIXES):
                dropping_comment = not ends_line
                at_line_start = ends_line
                continue

            segment_start = 0
            i = 0
            size = len(chunk)
            while i < size:
                if escaped:
                    escaped = False
                    i += 1
                    continue

                match = _SPECIAL.search(chunk, i)
                if match is None:
                    break
                j = match.start()
                char = chunk[j]

                if in_string:
                    if char == _BACKSLASH:
                        escaped = True
                    elif char == quote:
                        in_string = False
                        quote = None
                elif char in _QUOTES:
                    in_string = True
                    quote = char
                elif char == _SEMICOLON:
                    pending += chunk[segment_start:j]
                    segment_start = j + 1
                    boundary = self._boundary(pending, chunk_start + j + 1)
                    pending.clear()
                    if boundary is not None:
                        self.statements_emitted += 1
                        yield boundary

                i = j + 1

            pending += chunk[segment_start:]
            at_line_start = ends_line

        boundary = self._boundary(pending, self.source.position())
        if boundary is not None:
            if in_string:
                logger.warning("Stream %s ended inside a quoted literal", self.source.path)
            self.statements_emitted += 1
            yield boundary

        logger.debug("Scan of %s finished: %d statements", self.source.path, self.statements_emitted)
