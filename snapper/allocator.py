"""Snapshot directory allocation for snapper."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging

from snapper.errors import StorageError
from snapper.paths import SNAPSHOT_PERMISSIONS


logger = logging.getLogger(__name__)

# UTC, second resolution; sorts lexicographically in creation order
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """
    Generate the snapshot identifier for an instant.

    Args:
        now: Instant to render. Naive datetimes are taken as local time.
             Defaults to the current time.

    Returns:
        Identifier in YYYYMMDDTHHMMSSZ format
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def allocate_snapshot(
    snapshots_root: Path,
    name: Optional[str] = None,
    now: Optional[datetime] = None,
    permissions: int = SNAPSHOT_PERMISSIONS,
) -> Path:
    """
    Create the directory for a new snapshot.

    The directory is created exclusively: if another run already claimed
    the same second, this one fails rather than sharing the directory.

    Args:
        snapshots_root: Directory holding the snapshots
        name: Identifier to use. If None, one is generated from ``now``.
        now: Instant used for a generated identifier (defaults to the current time)
        permissions: Mode for the new directory

    Returns:
        Path to the newly created snapshot directory

    Raises:
        StorageError: If the directory already exists or cannot be created
    """
    if name is None:
        name = generate_timestamp(now)
    snapshot = Path(snapshots_root) / name

    try:
        snapshot.mkdir(mode=permissions)
    except FileExistsError:
        raise StorageError(f"snapshot root already exists: {snapshot}")
    except OSError as e:
        raise StorageError(f"unable to create snapshot root: {e}")

    logger.debug(f"Allocated snapshot directory {snapshot}")
    return snapshot
