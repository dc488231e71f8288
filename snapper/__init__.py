"""snapper - timestamped, hard-linked incremental snapshots on top of rsync."""

__version__ = "0.1.0"

from snapper.errors import (
    SnapperError,
    InvalidArgument,
    StorageError,
    CorruptState,
    TransferError,
    EXIT_SUCCESS,
    EXIT_GENERAL_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_INVALID_ARGUMENT,
    EXIT_STORAGE_ERROR,
    EXIT_CORRUPT_STATE,
    EXIT_TRANSFER_ERROR,
    EXIT_LOCK_ERROR,
)
from snapper.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
    parse_config_string,
)
from snapper.paths import ResolvedPaths, normalize_source, resolve_paths
from snapper.chain import LATEST_LINK_NAME, find_link_base
from snapper.transfer import TransferSpec, build_arguments
from snapper.allocator import allocate_snapshot, generate_timestamp
from snapper.executor import Transport, RsyncTransport
from snapper.publisher import publish_latest
from snapper.lock import LockManager, LockError
from snapper.logger import LoggingError, setup_logging, get_logger
from snapper.run import RunState, RunResult, SnapshotRun, run_snapshot

__all__ = [
    "SnapperError",
    "InvalidArgument",
    "StorageError",
    "CorruptState",
    "TransferError",
    "EXIT_SUCCESS",
    "EXIT_GENERAL_ERROR",
    "EXIT_CONFIG_ERROR",
    "EXIT_INVALID_ARGUMENT",
    "EXIT_STORAGE_ERROR",
    "EXIT_CORRUPT_STATE",
    "EXIT_TRANSFER_ERROR",
    "EXIT_LOCK_ERROR",
    "Configuration",
    "ConfigurationError",
    "ValidationError",
    "parse_config",
    "parse_config_string",
    "ResolvedPaths",
    "normalize_source",
    "resolve_paths",
    "LATEST_LINK_NAME",
    "find_link_base",
    "TransferSpec",
    "build_arguments",
    "allocate_snapshot",
    "generate_timestamp",
    "Transport",
    "RsyncTransport",
    "publish_latest",
    "LockManager",
    "LockError",
    "LoggingError",
    "setup_logging",
    "get_logger",
    "RunState",
    "RunResult",
    "SnapshotRun",
    "run_snapshot",
]
