"""Logging configuration for snapper.

This module provides logging setup and utility functions for snapshot runs.
Console output goes to stderr so it never mixes with the transfer tool's
progress on stdout. An optional log file is rotated by size and the
rotated files are gzip-compressed.
"""

import gzip
import logging
import os
import shutil
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, List, Optional

from snapper.config import LoggingConfig
from snapper.errors import SnapperError


# Logger name for the snapper package
LOGGER_NAME = "snapper"

# Log file rotation when no LoggingConfig is given
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5

CONSOLE_FORMAT = "%(name)s: %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class ErrorCode(Enum):
    """Error codes attached to logged run failures."""
    INVALID_ARGUMENT = "E1001"
    STORAGE_ERROR = "E2001"
    CORRUPT_STATE = "E3001"
    TRANSFER_FAILED = "E4001"
    LOCK_HELD = "E5001"
    CONFIG_INVALID = "E6001"
    UNKNOWN_ERROR = "E0001"


# One line of advice logged after each failed run
ERROR_GUIDANCE: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_ARGUMENT: "Check the source and snapshots paths given on the command line.",
    ErrorCode.STORAGE_ERROR: "Check that the snapshots directory exists, is writable and is not full.",
    ErrorCode.CORRUPT_STATE: "Inspect the Latest entry in the snapshots directory and replace it with a symlink to the newest complete snapshot.",
    ErrorCode.TRANSFER_FAILED: "The new snapshot directory was left in place for inspection; Latest still points to the previous snapshot.",
    ErrorCode.LOCK_HELD: "Another run is using this snapshots directory. Wait for it to finish.",
    ErrorCode.CONFIG_INVALID: "Fix the configuration file passed with --config.",
    ErrorCode.UNKNOWN_ERROR: "An unexpected error occurred. Re-run with --log-level DEBUG for details.",
}

# Maps exception class names to error codes
_ERROR_CODES_BY_TYPE: Dict[str, ErrorCode] = {
    "InvalidArgument": ErrorCode.INVALID_ARGUMENT,
    "StorageError": ErrorCode.STORAGE_ERROR,
    "CorruptState": ErrorCode.CORRUPT_STATE,
    "TransferError": ErrorCode.TRANSFER_FAILED,
    "LockError": ErrorCode.LOCK_HELD,
    "ConfigurationError": ErrorCode.CONFIG_INVALID,
    "ValidationError": ErrorCode.CONFIG_INVALID,
}


def map_exception_to_error_code(exception: Exception) -> ErrorCode:
    """Map an exception to an error code, falling back to UNKNOWN_ERROR."""
    return _ERROR_CODES_BY_TYPE.get(type(exception).__name__, ErrorCode.UNKNOWN_ERROR)


def get_error_guidance(error_code: ErrorCode) -> str:
    """Get troubleshooting guidance for an error code."""
    if error_code in ERROR_GUIDANCE:
        return ERROR_GUIDANCE[error_code]
    return ERROR_GUIDANCE[ErrorCode.UNKNOWN_ERROR]


class LoggingError(SnapperError):
    """Raised when the log level or log file location is unusable."""


class GzipRotatingFileHandler(RotatingFileHandler):
    """
    Size-rotated log file whose backups are stored as ``<name>.N.gz``.

    A backup that cannot be compressed is kept as plain ``<name>.N``.
    """

    def rotation_filename(self, default_name: str) -> str:
        return f"{default_name}.gz"

    def rotate(self, source: str, dest: str) -> None:
        if not os.path.exists(source):
            return

        try:
            with open(source, "rb") as plain, gzip.open(dest, "wb") as packed:
                shutil.copyfileobj(plain, packed)
        except OSError:
            os.replace(source, dest.removesuffix(".gz"))
            return
        os.remove(source)


def _prepare_log_file(log_file: Path) -> Path:
    """Expand ~ in a log file path and create its directory."""
    log_file = Path(log_file).expanduser()
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LoggingError(f"unable to create log directory {log_file.parent}: {e}")
    return log_file


def _parse_level(level: str) -> int:
    name = level.upper()
    if name not in VALID_LOG_LEVELS:
        raise LoggingError(
            f"invalid log level {level!r}; expected one of {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return logging.getLevelNamesMapping()[name]


def setup_logging(
    config: Optional[LoggingConfig] = None,
    log_file: Optional[Path] = None,
    level: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
) -> logging.Logger:
    """
    Install snapper's log handlers, replacing any from an earlier call.

    Messages always go to stderr, leaving stdout to the transfer tool's
    progress output. With a log file they are also written there, rotated
    by size and gzip-compressed.

    Args:
        config: Logging settings; when given, the keyword arguments are ignored
        log_file: File to log to in addition to stderr
        level: "DEBUG", "INFO", "WARNING" or "ERROR" (default INFO)
        max_bytes: Rotate the log file once it reaches this size
        backup_count: Number of compressed backups to keep

    Raises:
        LoggingError: If the level is unknown or the log directory cannot be created
    """
    if config is not None:
        log_file, level = config.log_file, config.level
        max_bytes, backup_count = config.log_max_bytes, config.log_backup_count

    log_level = _parse_level(level or "INFO")
    logger = logging.getLogger(LOGGER_NAME)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(log_level)
    logger.propagate = False

    handlers: List[logging.Handler] = []

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    handlers.append(console)

    if log_file is not None:
        rotating = GzipRotatingFileHandler(
            _prepare_log_file(log_file),
            maxBytes=DEFAULT_MAX_BYTES if max_bytes is None else max_bytes,
            backupCount=DEFAULT_BACKUP_COUNT if backup_count is None else backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        handlers.append(rotating)

    for handler in handlers:
        handler.setLevel(log_level)
        logger.addHandler(handler)

    return logger


def get_logger() -> logging.Logger:
    """Return the package logger that setup_logging configures."""
    return logging.getLogger(LOGGER_NAME)


def log_run_start(
    logger: logging.Logger,
    source: str,
    snapshots_root: Path,
    excludes: List[str],
) -> None:
    """Log the start of a snapshot run."""
    logger.info(f"Snapshot run started: {source} -> {snapshots_root}")
    if excludes:
        logger.info(f"Excluded paths: {', '.join(excludes)}")


def log_transfer_command(logger: logging.Logger, arguments: List[str]) -> None:
    """Log the transfer arguments (DEBUG level)."""
    logger.debug(f"Transfer arguments: {' '.join(arguments)}")


def log_run_completion(
    logger: logging.Logger,
    snapshot_path: Path,
    duration_seconds: float,
    link_base: Optional[Path] = None,
) -> None:
    """Log the completion of a snapshot run."""
    logger.info(f"Snapshot completed: {snapshot_path}")
    if link_base is None:
        logger.info("Hardlink base: none (full copy)")
    else:
        logger.info(f"Hardlink base: {link_base}")
    logger.info(f"Duration: {duration_seconds:.2f} seconds")


def log_run_error(
    logger: logging.Logger,
    error: Exception,
    context: Optional[str] = None,
) -> ErrorCode:
    """
    Log a failed run with its error code and guidance.

    Args:
        logger: Logger instance
        error: The exception that ended the run
        context: The step that was running when it failed

    Returns:
        The error code that was logged
    """
    error_code = map_exception_to_error_code(error)
    if context:
        logger.error(f"[{error_code.value}] Snapshot run failed during {context}: {error}")
    else:
        logger.error(f"[{error_code.value}] Snapshot run failed: {error}")
    logger.info(get_error_guidance(error_code))
    return error_code
