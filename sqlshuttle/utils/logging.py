"""Logging setup for the sqlshuttle command line.

Library modules only create ``logging.getLogger(__name__)`` loggers under
the ``sqlshuttle`` namespace; handlers are installed here, once, by the CLI.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from sqlshuttle.core.config import settings

ROOT_LOGGER = "sqlshuttle"

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handlers installed by configure_logging (replaced on reconfiguration)
_installed: list[logging.Handler] = []


def configure_logging(
    level: Optional[str] = None,
    log_file: Optional[Path] = None,
    quiet: bool = False,
) -> logging.Logger:
    """Install console (and optional file) handlers on the sqlshuttle logger.

    Args:
        level: Log level name (default from SQLSHUTTLE_LOG_LEVEL)
        log_file: Also log to this file (rotated at 10 MB, 3 backups)
        quiet: Only errors on the console

    Returns:
        The configured sqlshuttle logger
    """
    level = (level or settings.log_level).upper()

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in _installed:
        logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.ERROR if quiet else level)
    console.setFormatter(formatter)
    logger.addHandler(console)
    _installed.append(console)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        _installed.append(file_handler)

    return logger
