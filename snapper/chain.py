"""Snapshot chain inspection for snapper.

Looks at the ``Latest`` pointer in the snapshots root and decides which
prior snapshot (if any) the next transfer should hard-link against.
"""

from pathlib import Path
from typing import Optional
import logging
import os
import stat

from snapper.errors import CorruptState, StorageError


logger = logging.getLogger(__name__)

# Name of the symlink to the latest complete snapshot
LATEST_LINK_NAME = "Latest"


def latest_link_path(snapshots_root: Path) -> Path:
    """Return the path of the Latest pointer inside a snapshots root."""
    return Path(snapshots_root) / LATEST_LINK_NAME


def find_link_base(snapshots_root: Path, verify_target: bool = False) -> Optional[Path]:
    """
    Find the hardlink base for the next snapshot.

    The pointer is inspected with lstat, never followed. When it is a
    symbolic link its own path is returned; rsync resolves the link when
    it copies.

    Args:
        snapshots_root: Directory holding the snapshots
        verify_target: If True, require the link to point at an existing
                       directory. If False, a dangling link is only logged.

    Returns:
        Path to the Latest link, or None if this is the first snapshot

    Raises:
        CorruptState: If Latest exists but is not a symbolic link, or
                      verify_target is set and the target is unusable
        StorageError: If Latest cannot be inspected
    """
    link = latest_link_path(snapshots_root)

    try:
        st = os.lstat(link)
    except FileNotFoundError:
        logger.debug(f"No latest pointer at {link}, creating first snapshot")
        return None
    except OSError as e:
        raise StorageError(f"unable to inspect latest backup link path: {e}")

    if not stat.S_ISLNK(st.st_mode):
        raise CorruptState(
            f"latest backup link path exists but is not a symlink: {link}"
        )

    _check_target(link, verify_target)
    return link


def _check_target(link: Path, verify_target: bool) -> None:
    try:
        target = os.readlink(link)
    except OSError as e:
        raise StorageError(f"unable to read latest backup link: {e}")

    if (link.parent / target).is_dir():
        logger.debug(f"Latest pointer resolves to {target}")
        return

    if verify_target:
        raise CorruptState(
            f"latest backup link {link} points to {target!r}, which is not a snapshot directory"
        )
    logger.warning(
        f"Latest pointer {link} points to missing snapshot {target!r}; "
        f"passing it to the transfer tool anyway"
    )
