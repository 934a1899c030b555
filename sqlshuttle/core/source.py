"""Resumable byte access over SQL dump files.

A dump may be plain text, gzip-compressed, or a zip archive holding a
``.sql`` member. All three are exposed through the same small interface
(read, readline, seek, position, close) with offsets in decompressed bytes.
"""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import IO, Optional, Union

from sqlshuttle.core.config import settings
from sqlshuttle.exceptions import SourceNotFoundError, UnsupportedSourceFormatError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"

PLAIN = "plain"
GZIP = "gzip"
ZIP = "zip"


def detect_format(path: Path) -> str:
    """Detect the container format of a dump file.

    Args:
        path: Existing file path

    Returns:
        One of "plain", "gzip", "zip"
    """
    suffix = path.suffix.lower()
    if suffix == ".zip":
        return ZIP
    if suffix == ".gz":
        return GZIP
    with open(path, "rb") as f:
        if f.read(2) == GZIP_MAGIC:
            return GZIP
    return PLAIN


class SQLSource:
    """Seekable byte stream over a (possibly compressed) SQL dump.

    Use :meth:`open` and the context manager protocol so that file handles
    and any extracted temporary payload are released on every exit path.

    Examples:
        >>> with SQLSource.open("dump.sql.gz") as source:
        ...     source.seek(1024)
        ...     line = source.readline(65536)
    """

    def __init__(
        self,
        path: Union[str, Path],
        seek_chunk_size: Optional[int] = None,
    ):
        """Initialize source (does not open the file).

        Args:
            path: Dump file path
            seek_chunk_size: Bytes decoded per step when replaying a gzip
                stream up to a seek target (default from settings)
        """
        self.path = Path(path)
        self.seek_chunk_size = seek_chunk_size or settings.seek_chunk_size
        self.format: Optional[str] = None
        self._handle: Optional[IO[bytes]] = None
        self._payload_path: Optional[Path] = None
        self._temp_path: Optional[Path] = None

    @classmethod
    def open(cls, path: Union[str, Path], seek_chunk_size: Optional[int] = None) -> SQLSource:
        """Open a dump file for reading.

        Raises:
            SourceNotFoundError: If the path does not exist
            UnsupportedSourceFormatError: If a zip archive is unreadable or
                holds no .sql member
        """
        source = cls(path, seek_chunk_size=seek_chunk_size)
        source._open()
        return source

    def _open(self) -> None:
        if not self.path.is_file():
            raise SourceNotFoundError(f"SQL file not found: {self.path}")

        self.format = detect_format(self.path)
        if self.format == ZIP:
            self._payload_path = self._extract_zip()
        else:
            self._payload_path = self.path

        self._handle = self._open_payload()
        logger.debug("Opened %s source %s", self.format, self.path)

    def _open_payload(self) -> IO[bytes]:
        if self.format == GZIP:
            return gzip.open(self._payload_path, "rb")
        return open(self._payload_path, "rb")

    def _extract_zip(self) -> Path:
        """Stream the first .sql member of the archive into a temporary file."""
        try:
            with zipfile.ZipFile(self.path) as archive:
                member = next(
                    (name for name in archive.namelist() if name.lower().endswith(".sql")),
                    None,
                )
                if member is None:
                    raise UnsupportedSourceFormatError(f"No .sql file found in archive: {self.path}")

                fd, temp_name = tempfile.mkstemp(prefix="sqlshuttle_", suffix=".sql")
                self._temp_path = Path(temp_name)
                with archive.open(member) as src, os.fdopen(fd, "wb") as dst:
                    shutil.copyfileobj(src, dst, length=self.seek_chunk_size)
        except zipfile.BadZipFile as e:
            self._remove_temp()
            raise UnsupportedSourceFormatError(f"Cannot open zip archive {self.path}: {e}") from e
        except UnsupportedSourceFormatError:
            self._remove_temp()
            raise

        logger.info("Extracted %s from %s", member, self.path)
        return self._temp_path

    @property
    def payload_path(self) -> Optional[Path]:
        """File actually read (the extracted temporary file for zip sources)."""
        return self._payload_path

    @property
    def handle(self) -> IO[bytes]:
        if self._handle is None:
            raise ValueError(f"Source is not open: {self.path}")
        return self._handle

    def read(self, max_bytes: int = -1) -> bytes:
        """Read up to max_bytes; b"" at end of stream."""
        return self.handle.read(max_bytes)

    def readline(self, limit: int = -1) -> bytes:
        """Read the next line, or a fragment of at most limit bytes."""
        return self.handle.readline(limit)

    def position(self) -> int:
        """Current logical (decompressed) offset."""
        return self.handle.tell()

    def seek(self, offset: int) -> None:
        """Move to a logical offset.

        Plain and extracted sources seek directly. Gzip streams cannot seek,
        so decompression restarts and output is discarded up to the offset.

        Raises:
            ValueError: If offset is negative or lies past end of stream
        """
        if offset < 0:
            raise ValueError(f"Invalid source offset: {offset}")

        if self.format != GZIP:
            self.handle.seek(offset)
            return

        if offset == self.position():
            return

        logger.info("Replaying compressed stream %s up to offset %d", self.path, offset)
        self.handle.close()
        self._handle = self._open_payload()
        remaining = offset
        while remaining > 0:
            chunk = self._handle.read(min(remaining, self.seek_chunk_size))
            if not chunk:
                raise ValueError(
                    f"Offset {offset} is past end of stream {self.path} ({offset - remaining} bytes)"
                )
            remaining -= len(chunk)

    def close(self) -> None:
        """Release handles and delete any extracted payload. Safe to call twice."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self._remove_temp()

    def _remove_temp(self) -> None:
        if self._temp_path is not None:
            self._temp_path.unlink(missing_ok=True)
            logger.debug("Removed extracted payload %s", self._temp_path)
            self._temp_path = None

    def __enter__(self) -> SQLSource:
        if self._handle is None:
            self._open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"SQLSource(path={str(self.path)!r}, format={self.format!r})"
