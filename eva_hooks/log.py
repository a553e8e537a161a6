"""Diagnostic logging for the EVA hooks.

stdout belongs to the host (it carries the JSON decision), so everything
here goes to stderr, and optionally to a log file for debugging hooks that
the host runs without a visible terminal.

Environment:
    EVA_HOOKS_DEBUG     - any non-empty value enables DEBUG level
    EVA_HOOKS_LOG_FILE  - also append timestamped lines to this file
"""

import logging
import os
import sys
from pathlib import Path

LOGGER_NAME = "eva"
STDERR_FORMAT = "[EVA] %(message)s"
FILE_FORMAT = "%(asctime)s [%(process)d] %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the ``eva`` logger or one of its children."""
    if not name:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(debug: bool | None = None, log_file: str | Path | None = None) -> logging.Logger:
    """Configure the ``eva`` logger. Safe to call more than once.

    Args:
        debug: Force DEBUG level; defaults to EVA_HOOKS_DEBUG
        log_file: Extra log file; defaults to EVA_HOOKS_LOG_FILE

    Returns:
        The configured ``eva`` logger
    """
    if debug is None:
        debug = bool(os.environ.get("EVA_HOOKS_DEBUG"))
    if log_file is None:
        log_file = os.environ.get("EVA_HOOKS_LOG_FILE") or None

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(STDERR_FORMAT))
    logger.addHandler(stderr_handler)

    if log_file:
        try:
            path = Path(log_file).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
            logger.addHandler(file_handler)
        except OSError as e:
            # File logging is best-effort
            logger.warning(f"Cannot open log file {log_file}: {e}")

    return logger
