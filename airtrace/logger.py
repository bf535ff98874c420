"""
Logging for AirTrace.

All modules log through children of the "AirTrace" logger. The CLI calls
setup_logging() once; library users can attach their own handlers instead.
Log files rotate in ~/.airtrace/logs/ unless another directory is given
(argument first, then $AIRTRACE_LOG_DIR).
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .config import LOG_BACKUP_COUNT, LOG_FILENAME, LOG_MAX_BYTES

BASE_LOGGER_NAME = "AirTrace"
LOG_DIR_ENV = "AIRTRACE_LOG_DIR"

# MediaPipe logs through absl and is chatty at INFO
NOISY_LOGGERS = ("absl", "mediapipe")

FILE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(name)s.%(funcName)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
CONSOLE_FORMAT = logging.Formatter(
    "%(asctime)s | %(levelname)-8s | %(message)s",
    datefmt="%H:%M:%S"
)


def get_log_directory(log_dir: Optional[str | Path] = None) -> Path:
    """
    Resolve and create the log directory.

    Args:
        log_dir: Explicit directory; falls back to $AIRTRACE_LOG_DIR, then
            ~/.airtrace/logs.
    """
    if log_dir is None:
        log_dir = os.environ.get(LOG_DIR_ENV) or Path.home() / ".airtrace" / "logs"

    path = Path(log_dir).expanduser()
    path.mkdir(parents=True, exist_ok=True)
    return path


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(CONSOLE_FORMAT)
    return handler


def _file_handler(log_path: Path) -> logging.Handler:
    handler = RotatingFileHandler(
        log_path,
        maxBytes=LOG_MAX_BYTES,
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8"
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(FILE_FORMAT)
    return handler


def setup_logging(
    debug: bool = False,
    log_to_file: bool = True,
    log_filename: Optional[str] = None,
    log_dir: Optional[str | Path] = None
) -> logging.Logger:
    """
    Configure and return the application logger.

    Calling this again replaces the handlers installed by the previous call.

    Args:
        debug: Log DEBUG to the console as well as the file.
        log_to_file: Also write a rotating log file.
        log_filename: File name inside the log directory.
        log_dir: Log directory override.

    Returns:
        The "AirTrace" logger.
    """
    level = logging.DEBUG if debug else logging.INFO

    logger = logging.getLogger(BASE_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_to_file else level)
    logger.handlers.clear()
    logger.addHandler(_console_handler(level))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if log_to_file:
        log_path = get_log_directory(log_dir) / (log_filename or LOG_FILENAME)
        logger.addHandler(_file_handler(log_path))
        logger.debug(f"Logging to file: {log_path}")

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child of the AirTrace logger, or the AirTrace logger itself."""
    base_logger = logging.getLogger(BASE_LOGGER_NAME)
    return base_logger.getChild(name) if name else base_logger
