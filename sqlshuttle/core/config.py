"""sqlshuttle process settings.

This module centralizes all settings read from environment variables and
provides sensible defaults. Modules import values from here rather than
reading environment variables directly.

Per-run transfer options (chunk size, batch size, error policy, ...) are not
process settings; they live in :class:`sqlshuttle.models.transfer.TransferConfig`
and are passed explicitly to each component.

Environment Variables:
    SQLSHUTTLE_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                          Default: INFO

    SQLSHUTTLE_CHECKPOINT_DIR: Directory for default checkpoint files
                               Default: system temp directory

    SQLSHUTTLE_READ_BUFFER_SIZE: Maximum bytes read from a source per scan step
                                 Default: 65536

    SQLSHUTTLE_SEEK_CHUNK_SIZE: Bytes decoded per step while replaying a
                                compressed source up to a resume offset
                                Default: 1048576
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path


def _get_int(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.environ.get(key, "")
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default)


@dataclass
class ShuttleSettings:
    """Process-level settings container.

    Usage:
        from sqlshuttle.core.config import settings

        level = settings.log_level
        path = settings.default_checkpoint_path("shop")
    """

    # Logging Configuration
    log_level: str = field(default_factory=lambda: _get_str("SQLSHUTTLE_LOG_LEVEL", "INFO").upper())

    # Checkpoint Configuration
    checkpoint_dir: Path = field(
        default_factory=lambda: Path(_get_str("SQLSHUTTLE_CHECKPOINT_DIR", tempfile.gettempdir()))
    )

    # I/O Configuration
    read_buffer_size: int = field(default_factory=lambda: _get_int("SQLSHUTTLE_READ_BUFFER_SIZE", 64 * 1024))
    seek_chunk_size: int = field(default_factory=lambda: _get_int("SQLSHUTTLE_SEEK_CHUNK_SIZE", 1024 * 1024))

    def __post_init__(self):
        """Validate settings after initialization."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level not in valid_levels:
            raise ValueError(
                f"Invalid SQLSHUTTLE_LOG_LEVEL: {self.log_level}. "
                f"Must be one of: {valid_levels}"
            )

        if self.read_buffer_size < 1024:
            raise ValueError(
                f"SQLSHUTTLE_READ_BUFFER_SIZE must be >= 1024, got {self.read_buffer_size}"
            )

        if self.seek_chunk_size < 1024:
            raise ValueError(
                f"SQLSHUTTLE_SEEK_CHUNK_SIZE must be >= 1024, got {self.seek_chunk_size}"
            )

    def default_checkpoint_path(self, name: str) -> Path:
        """Checkpoint path used when a run is given no explicit checkpoint file.

        Args:
            name: Database name (or another run label)

        Returns:
            Path inside checkpoint_dir
        """
        return self.checkpoint_dir / f"sqlshuttle_{name or 'import'}.checkpoint.json"

    def as_dict(self) -> dict:
        """Export settings as dictionary."""
        return {
            "log_level": self.log_level,
            "checkpoint_dir": str(self.checkpoint_dir),
            "read_buffer_size": self.read_buffer_size,
            "seek_chunk_size": self.seek_chunk_size,
        }


def load_settings() -> ShuttleSettings:
    """Load settings from environment.

    Call this to refresh settings if the environment has changed.

    Returns:
        New ShuttleSettings instance
    """
    return ShuttleSettings()


# Global settings instance - loaded once at import time
settings = load_settings()
