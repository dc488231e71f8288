"""Path resolution for snapper.

Validates the source and snapshots roots given on the command line and
puts them in the shape rsync expects: the source always ends with a
separator so its *contents* land in the snapshot, and the snapshots root
is absolute so a ``--link-dest`` built from it does not get reinterpreted
relative to the destination directory.
"""

from dataclasses import dataclass
from pathlib import Path
import logging
import os

from snapper.errors import InvalidArgument, StorageError


logger = logging.getLogger(__name__)

# Permissions for the snapshots root and individual snapshots
SNAPSHOT_PERMISSIONS = 0o700


@dataclass(frozen=True)
class ResolvedPaths:
    """Source and snapshots roots ready for a run."""
    source: str  # always ends with os.sep
    snapshots_root: Path


def normalize_source(source_root: str) -> str:
    """
    Ensure the source root ends with a path separator.

    rsync copies a directory's contents (rather than the directory itself)
    only when the source ends with a separator. It does not care about a
    trailing separator on the destination.

    Args:
        source_root: Source root as given by the caller

    Returns:
        The source root with exactly the caller's text plus a trailing
        separator if one was missing
    """
    if not source_root.endswith(os.sep):
        source_root += os.sep
    return source_root


def ensure_snapshots_root(snapshots_root: Path, permissions: int = SNAPSHOT_PERMISSIONS) -> None:
    """
    Create the snapshots root if it does not exist.

    Every directory created on the way, missing parents included, gets
    ``permissions``. Directories that already exist are left alone.

    Raises:
        StorageError: If creation fails or a path on the way is not a directory
    """
    missing = []
    path = Path(snapshots_root)
    while not os.path.isdir(path):
        missing.append(path)
        if path.parent == path:
            break
        path = path.parent

    # Outermost first, so each mkdir has an existing parent
    for directory in reversed(missing):
        try:
            os.mkdir(directory, permissions)
        except FileExistsError:
            # Lost a race to another creator, or a non-directory is in the way
            if not os.path.isdir(directory):
                raise StorageError(
                    f"unable to create snapshots directory {snapshots_root}: "
                    f"{directory} is not a directory"
                )
        except OSError as e:
            raise StorageError(f"unable to create snapshots directory {snapshots_root}: {e}")


def resolve_paths(
    source_root: str,
    snapshots_root: str,
    permissions: int = SNAPSHOT_PERMISSIONS,
) -> ResolvedPaths:
    """
    Validate and normalize both roots, creating the snapshots root.

    Args:
        source_root: Directory whose contents are snapshotted
        snapshots_root: Directory that holds the snapshots and Latest link
        permissions: Mode for the snapshots root and any parents created for it

    Returns:
        ResolvedPaths with the normalized source and absolute snapshots root

    Raises:
        InvalidArgument: If either path is empty
        StorageError: If the snapshots root cannot be created
    """
    if not source_root:
        raise InvalidArgument("empty root path")
    if not snapshots_root:
        raise InvalidArgument("empty snapshots directory path")

    source = normalize_source(source_root)
    root = Path(os.path.abspath(snapshots_root))

    ensure_snapshots_root(root, permissions)
    logger.debug(f"Resolved source {source!r} and snapshots root {root}")

    return ResolvedPaths(source=source, snapshots_root=root)
