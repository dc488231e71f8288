"""Run locking for snapper.

snapper itself assumes at most one run per snapshots root. Callers that
cannot guarantee that can opt in to this lock (``--lock``), which holds an
fcntl.flock on a file inside the snapshots root for the whole run, with
the holder's PID written into it.
"""

import fcntl
import os
import time
from pathlib import Path
from typing import Optional

from snapper.errors import EXIT_LOCK_ERROR, SnapperError


# Lock file name inside the snapshots root
LOCK_FILE_NAME = ".snapper.lock"


class LockError(SnapperError):
    """Raised when lock cannot be acquired."""

    exit_code = EXIT_LOCK_ERROR


def lock_path_for(snapshots_root: Path) -> Path:
    """Return the lock file path for a snapshots root."""
    return Path(snapshots_root) / LOCK_FILE_NAME


class LockManager:
    """
    Manages an exclusive lock for one snapshots root.

    Acquisition is a single non-blocking flock polled until the timeout.
    The kernel drops the flock when its holder exits, so a PID left by a
    dead run is overwritten by the next holder.

    Implements context manager protocol for safe lock handling.
    """

    POLL_INTERVAL = 0.1

    def __init__(self, lock_path: Path, timeout: float = 0):
        """
        Args:
            lock_path: Path to the lock file
            timeout: Seconds to keep retrying before giving up (0 = try once)
        """
        self.lock_path = Path(lock_path)
        self.timeout = timeout
        self._lock_fd: Optional[int] = None

    @property
    def acquired(self) -> bool:
        return self._lock_fd is not None

    def acquire(self) -> bool:
        """
        Acquire the exclusive lock.

        Returns True if lock acquired.

        Raises:
            LockError: If the lock file cannot be opened, or the lock is
                       still held by another process when the timeout expires
        """
        try:
            fd = os.open(str(self.lock_path), os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise LockError(f"Cannot open lock file {self.lock_path}: {e}")

        start_time = time.monotonic()
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time >= self.timeout:
                    os.close(fd)
                    holder_pid = self.get_lock_holder_pid()
                    if holder_pid:
                        raise LockError(
                            f"Snapshots directory locked by process {holder_pid}"
                        )
                    raise LockError("Snapshots directory locked by another process")
                time.sleep(self.POLL_INTERVAL)

        # Any PID still in the file is from a run that died; overwrite it
        self._lock_fd = fd
        self._write_pid()
        return True

    def release(self) -> None:
        """Release the lock. The lock file stays; only its PID is cleared."""
        if self._lock_fd is None:
            return

        os.ftruncate(self._lock_fd, 0)
        fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
        os.close(self._lock_fd)
        self._lock_fd = None

    def is_locked(self) -> bool:
        """Check if lock is currently held (by any process)."""
        try:
            fd = os.open(str(self.lock_path), os.O_RDONLY)
        except FileNotFoundError:
            return False

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(fd, fcntl.LOCK_UN)
            return False
        except BlockingIOError:
            return True
        finally:
            os.close(fd)

    def get_lock_holder_pid(self) -> Optional[int]:
        """Return PID recorded in the lock file, or None."""
        try:
            content = self.lock_path.read_text().strip()
        except OSError:
            return None

        try:
            return int(content) if content else None
        except ValueError:
            return None

    def _write_pid(self) -> None:
        """Replace the lock file contents with our PID."""
        os.ftruncate(self._lock_fd, 0)
        os.lseek(self._lock_fd, 0, os.SEEK_SET)
        os.write(self._lock_fd, str(os.getpid()).encode())

    def __enter__(self) -> "LockManager":
        """Context manager entry - acquire lock."""
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Context manager exit - release lock."""
        self.release()
        return False  # Don't suppress exceptions
