"""Transfer execution for snapper.

The transfer tool is a black box: it gets an argument list, shares this
process's stdin/stdout/stderr, and is judged only by its exit status.
Any Transport subclass can stand in for rsync.
"""

from typing import List, Sequence
import subprocess

from snapper.errors import TransferError


# Command used to invoke rsync
RSYNC_COMMAND = "rsync"


class Transport:
    """A copy engine that runs one transfer and raises TransferError on failure."""

    def run(self, arguments: Sequence[str]) -> None:
        raise NotImplementedError


class RsyncTransport(Transport):
    """
    Runs rsync as a child process with inherited standard streams.

    Progress output shows up live on the terminal and any prompts from
    rsync reach the user. No timeout is applied; SIGINT/SIGTERM sent to
    the process group reach rsync directly.
    """

    def __init__(self, command: str = RSYNC_COMMAND):
        self.command = command

    def build_command(self, arguments: Sequence[str]) -> List[str]:
        """Return the full command line for a transfer."""
        return [self.command, *arguments]

    def run(self, arguments: Sequence[str]) -> None:
        """
        Run one transfer.

        Raises:
            TransferError: If the tool cannot be started or exits non-zero
        """
        cmd = self.build_command(arguments)

        try:
            completed = subprocess.run(cmd)
        except OSError as e:
            raise TransferError(f"{self.command} execution error: {e}")

        if completed.returncode != 0:
            raise TransferError(
                f"{self.command} execution error: exit status {completed.returncode}",
                returncode=completed.returncode,
            )
