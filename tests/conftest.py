"""Pytest configuration and fixtures for snapper tests."""

import logging
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from hypothesis import settings, Phase

from snapper.errors import TransferError
from snapper.executor import Transport
from snapper.logger import LOGGER_NAME


# Configure hypothesis to use fewer examples for faster test runs
# Disable shrinking phase to speed up tests further
settings.register_profile(
    "fast",
    max_examples=20,
    deadline=10000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.register_profile("ci", max_examples=200, deadline=10000)

# Use the fast profile by default
settings.load_profile("fast")


class RecordingTransport(Transport):
    """Transport double that records each argument list it is asked to run."""

    def __init__(self, returncode: int = 0):
        self.returncode = returncode
        self.calls: List[List[str]] = []

    def run(self, arguments: Sequence[str]) -> None:
        self.calls.append(list(arguments))
        if self.returncode != 0:
            raise TransferError(
                f"rsync execution error: exit status {self.returncode}",
                returncode=self.returncode,
            )

    @property
    def last_arguments(self) -> Optional[List[str]]:
        return self.calls[-1] if self.calls else None


@pytest.fixture
def temp_dirs():
    """Create temporary source and snapshots directories."""
    with tempfile.TemporaryDirectory() as tmpdir:
        base = Path(tmpdir)
        source = base / "source"
        source.mkdir()
        (source / "file1.txt").write_text("content1")
        (source / "subdir").mkdir()
        (source / "subdir" / "file2.txt").write_text("content2")

        yield {
            "base": base,
            "source": source,
            "snapshots": base / "snapshots",
        }


@pytest.fixture
def transport():
    """A transport double that always succeeds."""
    return RecordingTransport()


@pytest.fixture(autouse=True)
def reset_snapper_logger():
    """Undo any handlers installed by setup_logging during a test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
