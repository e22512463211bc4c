"""Logging setup for the mindmap CLI and MCP server.

Log lines always go to stderr: the MCP server speaks its protocol over stdout.
"""

import os
import sys
from pathlib import Path

from loguru import logger

from mindmap_core.config import LOG_LEVEL_ENV


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Replace loguru's default sink.

    The stderr level is DEBUG when verbose, else the level named by
    MINDMAP_LOG_LEVEL, else INFO. A log file, when given, always records
    DEBUG and is rotated at 1 MB.
    """
    logger.remove()
    level = "DEBUG" if verbose else os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
    if log_file is not None:
        logger.add(
            log_file,
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} {level: <8} {name}:{line} {message}",
            rotation="1 MB",
        )
