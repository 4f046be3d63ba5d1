"""
Logging configuration for okrtree.

Diagnostics go to stderr through the "okrtree" logger. User-facing messages
are not logged here; they travel through notice signals and click.echo.
"""
import logging
import sys
from typing import Union

LOGGER_NAME = "okrtree"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Union[int, str] = logging.WARNING) -> logging.Logger:
    """
    Initialize the package logger.

    Args:
        level: Log level as int or name (e.g. "DEBUG").

    Returns:
        The configured "okrtree" logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Avoid stacking handlers when called more than once
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger
