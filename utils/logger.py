"""
utils/logger.py
---------------
Centralized logging configuration.
All modules should use `get_logger(__name__)` to obtain a logger instance,
and `bind(logger, owner=..., template=...)` when a log line belongs to a
specific owner, template or obligation.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler

from config import LOG_FILE, LOG_LEVEL

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


def _init_logging() -> None:
    """Configure the root logger once."""
    global _initialized
    if _initialized:
        return
    formatter = logging.Formatter(_LOG_FORMAT, _DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # Daily rotation, one week of history.
    if LOG_FILE:
        file_handler = TimedRotatingFileHandler(
            LOG_FILE, when="midnight", backupCount=7, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a named logger instance.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger.
    """
    _init_logging()
    return logging.getLogger(name)


class ContextAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[key=value ...]`` context."""

    def process(self, msg, kwargs):
        ctx = " ".join(f"{k}={v}" for k, v in self.extra.items() if v is not None)
        return (f"[{ctx}] {msg}" if ctx else msg), kwargs


def bind(logger: logging.Logger, **context) -> ContextAdapter:
    """
    Attach owner/template/obligation context to a logger.

    Example:
        log = bind(logger, owner=7, template=12)
        log.info("Generated 11 occurrences")
        # -> "[owner=7 template=12] Generated 11 occurrences"
    """
    return ContextAdapter(logger, context)
