"""Error kinds for snapper.

Every failure a run can hit is one of these exceptions. Each carries the
process exit code the CLI reports for it, so a run can be turned into an
exit status without inspecting messages.
"""

from typing import Optional


# Exit codes
EXIT_SUCCESS = 0
EXIT_GENERAL_ERROR = 1
EXIT_CONFIG_ERROR = 1
EXIT_INVALID_ARGUMENT = 2
EXIT_STORAGE_ERROR = 3
EXIT_CORRUPT_STATE = 4
EXIT_TRANSFER_ERROR = 5
EXIT_LOCK_ERROR = 6


class SnapperError(Exception):
    """Base exception for snapshot run errors."""

    exit_code = EXIT_GENERAL_ERROR

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgument(SnapperError):
    """Raised when a required input is missing or malformed."""

    exit_code = EXIT_INVALID_ARGUMENT


class StorageError(SnapperError):
    """Raised when a filesystem operation (create, stat, remove, symlink) fails."""

    exit_code = EXIT_STORAGE_ERROR


class CorruptState(SnapperError):
    """Raised when the latest pointer is not a usable symbolic link."""

    exit_code = EXIT_CORRUPT_STATE


class TransferError(SnapperError):
    """
    Raised when the transfer tool fails to start or exits non-zero.

    Attributes:
        returncode: Exit status of the tool, or None if it never started
    """

    exit_code = EXIT_TRANSFER_ERROR

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode
