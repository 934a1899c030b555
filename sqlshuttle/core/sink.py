"""Export output stream.

Writes dump text to a plain file, a gzip file, or stdout. :meth:`OutputSink.mark`
makes everything written so far durable and returns the file offset, which
an export checkpoint can later truncate back to. Gzip output is written as
one gzip member per marked section, so every marked offset is a member
boundary and the truncated file is still a valid gzip stream.
"""

from __future__ import annotations

import gzip
import logging
import os
import sys
from pathlib import Path
from typing import IO, Iterable, Optional, Union

from sqlshuttle.exceptions import ExportError

logger = logging.getLogger(__name__)

STDOUT = "-"


class OutputSink:
    """Destination of an export.

    Examples:
        >>> with OutputSink("shop.sql.gz", compress=True) as sink:
        ...     sink.write_comment("sqlshuttle SQL dump")
        ...     sink.write_statement("SET NAMES utf8mb4;")
        ...     offset = sink.mark()
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        compress: bool = False,
        encoding: str = "utf-8",
    ):
        self.path = None if path in (None, STDOUT) else Path(path)
        self.compress = compress
        self.encoding = encoding
        self.statements_written = 0

        self._raw: Optional[IO[bytes]] = None
        self._member: Optional[gzip.GzipFile] = None
        self._owns_raw = False

    @property
    def name(self) -> str:
        return str(self.path) if self.path is not None else STDOUT

    @property
    def resumable(self) -> bool:
        return self.path is not None

    def open(self, resume_offset: Optional[int] = None) -> OutputSink:
        """Open the destination.

        Args:
            resume_offset: Truncate an existing file back to this offset and
                append from there (None = start a new file)

        Raises:
            ExportError: If resuming is impossible (stdout, missing or short file)
        """
        if self.path is None:
            if resume_offset:
                raise ExportError("Cannot resume an export written to stdout")
            self._raw = sys.stdout.buffer
            return self

        if resume_offset is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._raw = open(self.path, "wb")
        else:
            if not self.path.is_file():
                raise ExportError(f"Cannot resume: output file {self.path} is missing")
            size = self.path.stat().st_size
            if size < resume_offset:
                raise ExportError(
                    f"Cannot resume: {self.path} has {size} bytes, checkpoint expects {resume_offset}"
                )
            self._raw = open(self.path, "r+b")
            self._raw.seek(resume_offset)
            self._raw.truncate(resume_offset)
            logger.info("Resuming output %s at offset %d", self.path, resume_offset)
        self._owns_raw = True
        return self

    def _stream(self) -> IO[bytes]:
        if self._raw is None:
            raise ExportError("Output sink is not open")
        if not self.compress:
            return self._raw
        if self._member is None:
            self._member = gzip.GzipFile(filename="", mode="wb", fileobj=self._raw)
        return self._member

    def write(self, text: str) -> None:
        self._stream().write(text.encode(self.encoding))

    def write_statement(self, sql: str) -> None:
        """Write one terminated statement on its own line(s)."""
        self.write(sql + "\n")
        self.statements_written += 1

    def write_statements(self, statements: Iterable[str]) -> None:
        for sql in statements:
            self.write_statement(sql)

    def write_comment(self, text: str = "") -> None:
        """Write a single-line ``--`` comment (newlines in text are flattened)."""
        text = " ".join(text.split())
        self.write(f"-- {text}\n" if text else "--\n")

    def write_blank(self) -> None:
        self.write("\n")

    def mark(self) -> int:
        """Flush everything written so far to durable storage.

        Returns:
            Byte offset of the end of the output
        """
        if self._member is not None:
            self._member.close()  # writes the member trailer, keeps the file open
            self._member = None
        raw = self._raw
        if raw is None:
            raise ExportError("Output sink is not open")
        raw.flush()
        if not self._owns_raw:
            return 0
        os.fsync(raw.fileno())
        return raw.tell()

    def close(self) -> None:
        if self._raw is None:
            return
        self.mark()
        if self._owns_raw:
            self._raw.close()
        self._raw = None

    def __enter__(self) -> OutputSink:
        if self._raw is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"OutputSink(path={self.name!r}, compress={self.compress})"
