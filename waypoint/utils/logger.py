"""
utils/logger.py
---------------
Logging configuration for the ``waypoint`` logger hierarchy.
All modules should use `get_logger(__name__)` to obtain a logger instance.
"""

import logging
import sys

from ..config import get_settings

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_handler: logging.StreamHandler | None = None


def setup_logging(level: str | None = None) -> None:
    """Configure the ``waypoint`` logger.

    Args:
        level: Logging level name, defaults to the configured ``log_level``.
    """
    global _handler

    log_level = (level or get_settings().log_level).upper()
    root = logging.getLogger("waypoint")
    root.setLevel(getattr(logging, log_level, logging.WARNING))

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
        root.addHandler(_handler)
        root.propagate = False
    else:
        # Follow redirections of stderr between invocations
        _handler.setStream(sys.stderr)


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A logging.Logger below the ``waypoint`` hierarchy.
    """
    return logging.getLogger(name)
