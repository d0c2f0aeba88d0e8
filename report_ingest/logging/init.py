from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

"""Logging initialization with labeled prefixes.

This module provides logging setup for the importer:
- Labeled prefixes (INFO|WARN|ERROR|SUMMARY)
- Standard library logging on the ``report_ingest`` logger; modules log via
  ``logging.getLogger(__name__)`` and propagate into it
- A custom SUMMARY level for the one-line run summary
- The spreadsheet being imported, shown as ``[file]`` on every line logged
  inside import_context() (context-local)

Structured per-row errors go to report_ingest.logging.error_log instead.
"""

__all__ = [
    "setup_logging",
    "get_logger",
    "log_summary",
    "set_debug",
    "reset_logging",
    "import_context",
    "ImportContextFilter",
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
]

LOGGER_NAME = "report_ingest"

# Custom SUMMARY level (between INFO=20 and WARNING=30)
SUMMARY_LEVEL = 25

_logger: logging.Logger | None = None

_import_file: ContextVar[str | None] = ContextVar("report_ingest_import_file", default=None)


class ImportContextFilter(logging.Filter):
    """Attach the file currently being imported to each record as ``import_file``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "import_file"):
            record.import_file = _import_file.get()
        return True


@contextmanager
def import_context(file_name: str) -> Iterator[None]:
    """Label log lines emitted inside the block with ``file_name``."""
    token = _import_file.set(file_name)
    try:
        yield
    finally:
        _import_file.reset(token)


class LabeledFormatter(logging.Formatter):
    """Formatter that prefixes each message with its level label.

    - INFO: informational messages
    - WARN: warnings (taxonomy failures, coerced values)
    - ERROR: fatal run errors
    - SUMMARY: the final run summary line
    """

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
        SUMMARY_LEVEL: "SUMMARY",
    }

    def format(self, record: logging.LogRecord) -> str:
        level_label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        import_file = getattr(record, "import_file", None)
        if import_file:
            message = f"{level_label} [{import_file}] {record.getMessage()}"
        else:
            message = f"{level_label} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def setup_logging() -> logging.Logger:
    """Setup logging with labeled prefixes for the application.

    Idempotent: repeated calls return the already configured logger.

    Returns:
        Configured ``report_ingest`` logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    # Clear any existing handlers to avoid duplication
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(LabeledFormatter())
    handler.addFilter(ImportContextFilter())
    logger.addHandler(handler)

    # Prevent propagation to root logger to avoid duplicate output
    logger.propagate = False

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured application logger, configuring it on first use."""
    if _logger is None:
        return setup_logging()
    return _logger


def set_debug(enabled: bool = True) -> None:
    """Switch the application logger and its handlers to DEBUG (or back to INFO)."""
    logger = get_logger()
    level = logging.DEBUG if enabled else logging.INFO
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def log_summary(message: str) -> None:
    """Log a message at SUMMARY level.

    Args:
        message: The summary message to log (without the SUMMARY label)
    """
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Reset the global logger state. Mainly for testing purposes."""
    global _logger
    _logger = None
