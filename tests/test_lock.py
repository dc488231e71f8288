"""Tests for the snapshots-root lock."""

import os
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

from snapper.errors import EXIT_LOCK_ERROR
from snapper.lock import LOCK_FILE_NAME, LockError, LockManager, lock_path_for


PROJECT_ROOT = Path(__file__).parent.parent

HOLDER_SCRIPT = '''
import sys
from snapper.lock import LockManager

with LockManager(sys.argv[1]):
    print("locked", flush=True)
    sys.stdin.readline()
'''


def _spawn_holder(lock_path: Path) -> subprocess.Popen:
    """Start a child process that holds the lock until its stdin closes."""
    holder = subprocess.Popen(
        [sys.executable, "-c", HOLDER_SCRIPT, str(lock_path)],
        cwd=PROJECT_ROOT,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        text=True,
    )
    assert holder.stdout.readline().strip() == "locked"
    return holder


def _stop_holder(holder: subprocess.Popen) -> None:
    holder.stdin.close()
    holder.wait(timeout=10)
    holder.stdout.close()


class TestLockManager:
    """Tests for LockManager in a single process."""

    def test_acquire_writes_pid(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            manager = LockManager(lock_path)

            assert manager.acquire() is True
            try:
                assert manager.acquired
                assert lock_path.read_text() == str(os.getpid())
                assert manager.get_lock_holder_pid() == os.getpid()
            finally:
                manager.release()

    def test_release_keeps_file_and_clears_pid(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            manager = LockManager(lock_path)
            manager.acquire()

            manager.release()

            assert not manager.acquired
            assert lock_path.exists()
            assert lock_path.read_text() == ""
            assert manager.get_lock_holder_pid() is None

    def test_release_without_acquire_is_noop(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            LockManager(Path(tmpdir) / LOCK_FILE_NAME).release()

    def test_context_manager(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME

            with LockManager(lock_path) as manager:
                assert manager.acquired
                assert manager.is_locked()

            assert not LockManager(lock_path).is_locked()

    def test_is_locked_without_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            assert not LockManager(Path(tmpdir) / LOCK_FILE_NAME).is_locked()

    def test_reacquire_after_release(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            with LockManager(lock_path):
                pass
            with LockManager(lock_path) as manager:
                assert manager.acquired

    def test_pid_from_dead_run_is_overwritten(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            # A PID left behind by a run that died; nobody holds the flock
            lock_path.write_text("999999")

            with LockManager(lock_path) as manager:
                assert manager.get_lock_holder_pid() == os.getpid()

    def test_garbage_pid_reads_as_none(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            lock_path.write_text("not-a-pid")
            assert LockManager(lock_path).get_lock_holder_pid() is None

    def test_unopenable_lock_path_raises(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            manager = LockManager(Path(tmpdir) / "missing" / LOCK_FILE_NAME)
            with pytest.raises(LockError) as exc_info:
                manager.acquire()
            assert "Cannot open lock file" in str(exc_info.value)


class TestLockContention:
    """Tests with the lock held by another process."""

    def test_held_lock_raises_with_holder_pid(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            holder = _spawn_holder(lock_path)
            try:
                with pytest.raises(LockError) as exc_info:
                    LockManager(lock_path).acquire()
                assert str(holder.pid) in str(exc_info.value)
                assert exc_info.value.exit_code == EXIT_LOCK_ERROR
                assert LockManager(lock_path).is_locked()
            finally:
                _stop_holder(holder)

    def test_timeout_waits_before_failing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            holder = _spawn_holder(lock_path)
            try:
                manager = LockManager(lock_path, timeout=0.3)
                with pytest.raises(LockError):
                    manager.acquire()
                assert not manager.acquired
            finally:
                _stop_holder(holder)

    def test_lock_available_after_holder_exits(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            lock_path = Path(tmpdir) / LOCK_FILE_NAME
            holder = _spawn_holder(lock_path)
            _stop_holder(holder)

            with LockManager(lock_path) as manager:
                assert manager.acquired


def test_lock_path_for():
    assert lock_path_for(Path("/backups")) == Path("/backups/.snapper.lock")
