"""Centralized logging setup for the customs document OCR system.

Configures the root logger once and offers helpers to keep OCR text
previews in log lines short.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", stream=None) -> None:
    """Configure the root logger with a standard format.

    Calling it again after handlers exist only adjusts the level.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        stream: Output stream for the handler. Defaults to stdout.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        root.setLevel(numeric_level)
        return

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


def preview(text: str | None, limit: int = 100) -> str:
    """Shorten OCR text for log output.

    Args:
        text: Text to shorten. ``None`` is treated as empty.
        limit: Maximum number of characters kept.

    Returns:
        The first ``limit`` characters, with an ellipsis when cut.
    """
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
