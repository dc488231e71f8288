"""Snapshot run orchestration for snapper.

One run walks a fixed sequence of states:

    RESOLVING -> [LOCKING] -> INSPECTING -> BUILDING -> ALLOCATING
              -> TRANSFERRING -> PUBLISHING -> DONE

LOCKING is only entered when the run lock is configured.

A failure in any step moves the run straight to ABORTED; later steps are
never executed and nothing already created is cleaned up. In particular:
- a corrupt Latest pointer aborts before a snapshot directory exists
- a failed transfer leaves the new snapshot directory on disk and Latest
  untouched, so Latest only ever names a complete snapshot

Errors are returned as a RunResult rather than raised, so callers decide
what to do with a failed run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence
import logging
import time

from snapper.allocator import allocate_snapshot, generate_timestamp
from snapper.chain import find_link_base
from snapper.config import Configuration
from snapper.errors import EXIT_GENERAL_ERROR, EXIT_SUCCESS, SnapperError
from snapper.executor import RsyncTransport, Transport
from snapper.lock import LockManager, lock_path_for
from snapper.logger import (
    log_run_completion,
    log_run_error,
    log_run_start,
    log_transfer_command,
)
from snapper.paths import resolve_paths
from snapper.publisher import publish_latest
from snapper.transfer import TransferSpec, build_arguments


logger = logging.getLogger(__name__)


class RunState(Enum):
    """States of a single snapshot run."""
    RESOLVING = "resolving"
    LOCKING = "locking"
    INSPECTING = "inspecting"
    BUILDING = "building"
    ALLOCATING = "allocating"
    TRANSFERRING = "transferring"
    PUBLISHING = "publishing"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunResult:
    """Result of a snapshot run."""
    success: bool
    exit_code: int
    state: RunState
    failed_state: Optional[RunState] = None  # step that was running when the run aborted
    snapshot_path: Optional[Path] = None
    link_base: Optional[Path] = None
    arguments: List[str] = field(default_factory=list)
    error: Optional[Exception] = None
    error_message: Optional[str] = None
    duration_seconds: float = 0.0


class SnapshotRun:
    """
    Drives one run through its states.

    The current state is kept on the instance so a failure can be
    attributed to the step that raised it.
    """

    def __init__(
        self,
        source_root: str,
        snapshots_root: str,
        excludes: Sequence[str] = (),
        config: Optional[Configuration] = None,
        transport: Optional[Transport] = None,
        now: Optional[datetime] = None,
    ):
        self.config = config or Configuration()
        self.source_root = source_root
        self.snapshots_root = snapshots_root
        self.excludes = list(self.config.excludes) + list(excludes)
        self.transport = transport or RsyncTransport(self.config.transfer.command)
        self.now = now
        self.state = RunState.RESOLVING
        self._lock: Optional[LockManager] = None

    def _enter(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    def execute(self) -> RunResult:
        """Run every step in order and return the outcome."""
        start_time = time.time()
        result = RunResult(success=False, exit_code=EXIT_GENERAL_ERROR, state=self.state)

        try:
            self._execute(result)
        except SnapperError as e:
            self._abort(result, e, e.exit_code)
        except Exception as e:
            logger.debug("Unexpected error during snapshot run", exc_info=True)
            self._abort(result, e, EXIT_GENERAL_ERROR)
        finally:
            if self._lock is not None:
                self._lock.release()
            result.duration_seconds = time.time() - start_time

        if result.success:
            log_run_completion(
                logger,
                snapshot_path=result.snapshot_path,
                duration_seconds=result.duration_seconds,
                link_base=result.link_base,
            )
        return result

    def _execute(self, result: RunResult) -> None:
        snapshot_config = self.config.snapshots

        paths = resolve_paths(
            self.source_root, self.snapshots_root, snapshot_config.permissions
        )
        root = paths.snapshots_root
        log_run_start(logger, paths.source, root, self.excludes)

        if snapshot_config.lock:
            self._enter(RunState.LOCKING)
            self._lock = LockManager(lock_path_for(root), timeout=snapshot_config.lock_timeout)
            self._lock.acquire()

        self._enter(RunState.INSPECTING)
        result.link_base = find_link_base(root, verify_target=snapshot_config.verify_latest)

        self._enter(RunState.BUILDING)
        name = generate_timestamp(self.now)
        spec = TransferSpec(
            source=paths.source,
            destination=root / name,
            link_base=result.link_base,
            excludes=tuple(self.excludes),
        )
        result.arguments = build_arguments(spec)

        self._enter(RunState.ALLOCATING)
        result.snapshot_path = allocate_snapshot(
            root, name=name, permissions=snapshot_config.permissions
        )

        self._enter(RunState.TRANSFERRING)
        log_transfer_command(logger, result.arguments)
        self.transport.run(result.arguments)

        self._enter(RunState.PUBLISHING)
        publish_latest(root, name)

        self._enter(RunState.DONE)
        result.success = True
        result.exit_code = EXIT_SUCCESS
        result.state = RunState.DONE

    def _abort(self, result: RunResult, error: Exception, exit_code: int) -> None:
        result.failed_state = self.state
        self._enter(RunState.ABORTED)
        result.state = RunState.ABORTED
        result.success = False
        result.exit_code = exit_code
        result.error = error
        result.error_message = str(error)
        log_run_error(logger, error, result.failed_state.value)


def run_snapshot(
    source_root: str,
    snapshots_root: str,
    excludes: Sequence[str] = (),
    config: Optional[Configuration] = None,
    transport: Optional[Transport] = None,
    now: Optional[datetime] = None,
) -> RunResult:
    """
    Create one snapshot of source_root under snapshots_root.

    Args:
        source_root: Directory whose contents are snapshotted
        snapshots_root: Directory holding the snapshots and the Latest link
        excludes: Paths (relative to source_root) to exclude, in order;
                  appended after any excludes from config
        config: Run configuration (defaults apply if None)
        transport: Copy engine (defaults to rsync from config)
        now: Instant used for the snapshot identifier (defaults to now)

    Returns:
        RunResult describing the outcome; never raises for run failures
    """
    run = SnapshotRun(
        source_root,
        snapshots_root,
        excludes=excludes,
        config=config,
        transport=transport,
        now=now,
    )
    return run.execute()
