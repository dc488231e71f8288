"""Latest-pointer publishing for snapper.

Swaps the ``Latest`` symlink to a freshly completed snapshot. The swap is
remove-then-create, so a reader racing the publisher can briefly find no
``Latest`` at all; runs that need more than that must be serialized by
the caller (see snapper.lock).
"""

from pathlib import Path
import logging
import os

from snapper.chain import latest_link_path
from snapper.errors import StorageError


logger = logging.getLogger(__name__)


def publish_latest(snapshots_root: Path, snapshot_name: str) -> Path:
    """
    Point Latest at a completed snapshot.

    The link target is the snapshot's bare name, not an absolute path, so
    the snapshots root can be moved without breaking the link.

    Args:
        snapshots_root: Directory holding the snapshots
        snapshot_name: Identifier of the snapshot to publish

    Returns:
        Path to the Latest link

    Raises:
        StorageError: If the old link cannot be removed or the new one created
    """
    link = latest_link_path(snapshots_root)

    try:
        os.remove(link)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StorageError(f"unable to remove latest backup link: {e}")

    try:
        os.symlink(snapshot_name, link)
    except OSError as e:
        raise StorageError(f"unable to update latest backup link: {e}")

    logger.debug(f"Latest now points to {snapshot_name}")
    return link
