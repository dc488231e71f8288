"""Configuration management for snapper.

This module provides dataclasses for run settings and functions for
parsing TOML configuration files. snapper reads no configuration unless
a file is passed explicitly with ``--config``; everything has a default.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import tomllib

from snapper.errors import EXIT_CONFIG_ERROR, SnapperError


class ConfigurationError(SnapperError):
    """Raised when configuration file is missing or malformed."""

    exit_code = EXIT_CONFIG_ERROR


class ValidationError(SnapperError):
    """Raised when configuration values have invalid types."""

    exit_code = EXIT_CONFIG_ERROR


@dataclass
class TransferConfig:
    """Configuration for the external transfer tool."""
    command: str = "rsync"


@dataclass
class SnapshotConfig:
    """Configuration for snapshot creation."""
    permissions: int = 0o700
    verify_latest: bool = False  # require Latest to point at an existing snapshot
    lock: bool = False  # serialize runs with a lock file in the snapshots root
    lock_timeout: int = 0  # seconds to wait for the lock


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"  # "DEBUG", "INFO", "WARNING", "ERROR"
    log_file: Optional[Path] = None  # None = console only
    log_max_size_mb: int = 10  # Maximum log file size in MB before rotation
    log_backup_count: int = 5  # Number of rotated log files to keep

    @property
    def log_max_bytes(self) -> int:
        """Return max size in bytes for use with RotatingFileHandler."""
        return self.log_max_size_mb * 1024 * 1024


@dataclass
class Configuration:
    """Main configuration for snapper."""
    excludes: List[str] = field(default_factory=list)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _validate_type(value: Any, expected_type: type, key: str) -> None:
    """Validate that a value has the expected type."""
    # bool is a subclass of int; never accept it where a number is wanted
    if isinstance(value, bool) and expected_type is not bool:
        raise ValidationError(
            f"Key '{key}' has invalid type: expected {expected_type.__name__}, got bool"
        )
    if not isinstance(value, expected_type):
        raise ValidationError(
            f"Key '{key}' has invalid type: expected {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )


def _parse_transfer_config(data: Dict[str, Any]) -> TransferConfig:
    """Parse transfer configuration from dict."""
    transfer_data = data.get("transfer", {})

    command = transfer_data.get("command", "rsync")
    _validate_type(command, str, "transfer.command")
    if not command:
        raise ValidationError("Key 'transfer.command' must not be empty")

    return TransferConfig(command=command)


def _parse_snapshot_config(data: Dict[str, Any]) -> SnapshotConfig:
    """Parse snapshot configuration from dict."""
    snapshot_data = data.get("snapshots", {})

    # Permissions are written as a string ("0700") or a TOML octal (0o700)
    permissions = snapshot_data.get("permissions", 0o700)
    if isinstance(permissions, str):
        try:
            permissions = int(permissions, 8)
        except ValueError:
            raise ValidationError(
                f"Key 'snapshots.permissions' is not an octal mode: {permissions!r}"
            )
    _validate_type(permissions, int, "snapshots.permissions")

    verify_latest = snapshot_data.get("verify_latest", False)
    _validate_type(verify_latest, bool, "snapshots.verify_latest")

    lock = snapshot_data.get("lock", False)
    _validate_type(lock, bool, "snapshots.lock")

    lock_timeout = snapshot_data.get("lock_timeout", 0)
    _validate_type(lock_timeout, int, "snapshots.lock_timeout")

    return SnapshotConfig(
        permissions=permissions,
        verify_latest=verify_latest,
        lock=lock,
        lock_timeout=lock_timeout,
    )


def _parse_logging_config(data: Dict[str, Any]) -> LoggingConfig:
    """Parse logging configuration from dict."""
    logging_data = data.get("logging", {})

    level = logging_data.get("level", "INFO")
    _validate_type(level, str, "logging.level")

    log_file = logging_data.get("log_file")
    if log_file is not None:
        _validate_type(log_file, str, "logging.log_file")

    log_max_size_mb = logging_data.get("log_max_size_mb", 10)
    _validate_type(log_max_size_mb, int, "logging.log_max_size_mb")

    log_backup_count = logging_data.get("log_backup_count", 5)
    _validate_type(log_backup_count, int, "logging.log_backup_count")

    return LoggingConfig(
        level=level,
        log_file=Path(log_file).expanduser() if log_file else None,
        log_max_size_mb=log_max_size_mb,
        log_backup_count=log_backup_count,
    )


def parse_config_string(toml_content: str) -> Configuration:
    """
    Parse TOML string into Configuration object.

    Args:
        toml_content: TOML formatted string

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If the TOML is malformed
        ValidationError: If value has wrong type
    """
    try:
        data = tomllib.loads(toml_content)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML format: {e}")

    excludes = data.get("excludes", [])
    _validate_type(excludes, list, "excludes")
    for i, path in enumerate(excludes):
        _validate_type(path, str, f"excludes[{i}]")

    return Configuration(
        excludes=list(excludes),
        transfer=_parse_transfer_config(data),
        snapshots=_parse_snapshot_config(data),
        logging=_parse_logging_config(data),
    )


def parse_config(config_path: Path) -> Configuration:
    """
    Parse TOML configuration file into Configuration object.

    Args:
        config_path: Path to config file

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If file doesn't exist or can't be read
        ValidationError: If value has wrong type
    """
    config_path = Path(config_path).expanduser()

    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}"
        )

    try:
        content = config_path.read_text()
    except PermissionError:
        raise ConfigurationError(
            f"Permission denied reading configuration file: {config_path}"
        )
    except OSError as e:
        raise ConfigurationError(
            f"Error reading configuration file {config_path}: {e}"
        )

    return parse_config_string(content)
