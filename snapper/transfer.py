"""Transfer argument building for snapper.

Turns a TransferSpec into the ordered argument list handed to rsync.
Nothing here touches the filesystem.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence


# Standard archive behaviour (-a), progress (-P) and human-readable numbers (-h)
ARCHIVE_FLAGS = "-aPh"

# Snapshots never replicate sockets, FIFOs or device nodes
DISABLE_SPECIALS_FLAG = "--no-specials"
DISABLE_DEVICES_FLAG = "--no-devices"

LINK_DEST_FLAG_FORMAT = "--link-dest={}"
EXCLUDE_FLAG_FORMAT = "--exclude={}"


@dataclass(frozen=True)
class TransferSpec:
    """Everything one transfer needs, consumed once per run."""
    source: str
    destination: Path
    link_base: Optional[Path] = None
    excludes: Sequence[str] = field(default_factory=tuple)


def build_arguments(spec: TransferSpec) -> List[str]:
    """
    Build rsync arguments for a snapshot transfer.

    Order:
    - -aPh, --no-specials, --no-devices
    - --link-dest=<base> when a previous snapshot exists
    - one --exclude=<path> per exclusion, in the order given
    - source, then destination

    Args:
        spec: The transfer to describe

    Returns:
        List of arguments, not including the command itself
    """
    arguments = [ARCHIVE_FLAGS, DISABLE_SPECIALS_FLAG, DISABLE_DEVICES_FLAG]

    if spec.link_base is not None:
        arguments.append(LINK_DEST_FLAG_FORMAT.format(spec.link_base))

    for path in spec.excludes:
        arguments.append(EXCLUDE_FLAG_FORMAT.format(path))

    arguments.append(spec.source)
    arguments.append(str(spec.destination))
    return arguments
