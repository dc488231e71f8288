"""Tests for snapshot directory allocation."""

import os
import re
import stat
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import hypothesis.strategies as st
from hypothesis import given

from snapper.allocator import allocate_snapshot, generate_timestamp
from snapper.errors import StorageError


class TestGenerateTimestamp:
    """Tests for snapshot identifier generation."""

    def test_format(self):
        now = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)
        assert generate_timestamp(now) == "20240305T070809Z"

    def test_converts_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        now = datetime(2024, 3, 5, 1, 0, 0, tzinfo=plus_two)
        assert generate_timestamp(now) == "20240304T230000Z"

    def test_defaults_to_current_time(self):
        assert re.fullmatch(r"\d{8}T\d{6}Z", generate_timestamp())

    def test_subsecond_precision_is_dropped(self):
        now = datetime(2024, 3, 5, 7, 8, 9, 999999, tzinfo=timezone.utc)
        assert generate_timestamp(now) == "20240305T070809Z"

    @given(
        first=st.datetimes(
            min_value=datetime(2000, 1, 1),
            max_value=datetime(2099, 12, 31),
            timezones=st.just(timezone.utc),
        ),
        delta=st.integers(min_value=1, max_value=10 ** 8),
    )
    def test_lexicographic_order_matches_time_order(self, first, delta):
        """Identifiers of later seconds sort after earlier ones."""
        first = first.replace(microsecond=0)
        second = first + timedelta(seconds=delta)
        assert generate_timestamp(first) < generate_timestamp(second)


class TestAllocateSnapshot:
    """Tests for allocate_snapshot."""

    def test_creates_directory_named_by_timestamp(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

            snapshot = allocate_snapshot(Path(tmpdir), now=now)

            assert snapshot == Path(tmpdir) / "20240101T120000Z"
            assert snapshot.is_dir()

    def test_explicit_name(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            snapshot = allocate_snapshot(Path(tmpdir), name="20240101T120000Z")
            assert snapshot.name == "20240101T120000Z"

    def test_owner_only_permissions(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            old_umask = os.umask(0)
            try:
                snapshot = allocate_snapshot(Path(tmpdir), name="s")
            finally:
                os.umask(old_umask)

            assert stat.S_IMODE(snapshot.stat().st_mode) == 0o700

    def test_collision_raises_storage_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
            existing = allocate_snapshot(Path(tmpdir), now=now)
            (existing / "keep.txt").write_text("untouched")

            with pytest.raises(StorageError) as exc_info:
                allocate_snapshot(Path(tmpdir), now=now)

            assert "already exists" in str(exc_info.value)
            assert (existing / "keep.txt").read_text() == "untouched"

    def test_missing_root_raises_storage_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(StorageError) as exc_info:
                allocate_snapshot(Path(tmpdir) / "missing", name="s")
            assert "unable to create snapshot root" in str(exc_info.value)
