"""Tests for previous-snapshot discovery."""

import tempfile
from pathlib import Path

import pytest

from linksnap.errors import NoBaselineFound
from linksnap.locator import find_previous_snapshot, list_snapshots


class TestFindPreviousSnapshot:
    """Tests for find_previous_snapshot."""

    def test_empty_destination(self):
        """Test that an empty destination has no baseline."""
        with tempfile.TemporaryDirectory() as dest:
            assert find_previous_snapshot(Path(dest)) is None

    def test_missing_destination(self):
        """Test listing a destination that does not exist."""
        with tempfile.TemporaryDirectory() as dest:
            assert find_previous_snapshot(Path(dest) / "nope") is None

    def test_selects_latest(self):
        """Test that the newest snapshot is selected."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2023-01-01T00-00-00").mkdir()
            (dest_path / "2023-06-01T00-00-00").mkdir()

            latest = find_previous_snapshot(dest_path)
            assert latest == dest_path / "2023-06-01T00-00-00"

    def test_selection_does_not_depend_on_creation_order(self):
        """Test that selection goes by name, not by creation order."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2025-01-01T12-00-00").mkdir()
            (dest_path / "2025-01-01T10-00-00").mkdir()
            (dest_path / "2025-01-01T11-00-00").mkdir()

            assert find_previous_snapshot(dest_path).name == "2025-01-01T12-00-00"

    def test_ignores_in_progress(self):
        """Test that in-progress folders are skipped."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2025-01-01T10-00-00").mkdir()
            (dest_path / "2025-01-01T12-00-00.inprogress").mkdir()

            assert find_previous_snapshot(dest_path).name == "2025-01-01T10-00-00"

    def test_ignores_unrelated_entries(self):
        """Test that other names and plain files are skipped."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2025-01-01T10-00-00").mkdir()
            (dest_path / "notes").mkdir()
            (dest_path / ".hidden").mkdir()
            (dest_path / "2099-01-01T00-00-00").write_text("a file, not a snapshot")

            assert find_previous_snapshot(dest_path).name == "2025-01-01T10-00-00"

    def test_only_in_progress_counts_as_none(self):
        """Test that in-progress folders alone mean no baseline."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2025-01-01T12-00-00.inprogress").mkdir()
            assert find_previous_snapshot(dest_path) is None

    def test_fail_if_no_baseline_empty(self):
        """Test that a required baseline is enforced."""
        with tempfile.TemporaryDirectory() as dest:
            with pytest.raises(NoBaselineFound):
                find_previous_snapshot(Path(dest), fail_if_no_baseline=True)

    def test_fail_if_no_baseline_missing_destination(self):
        """Test that the check creates nothing."""
        with tempfile.TemporaryDirectory() as dest:
            missing = Path(dest) / "nope"
            with pytest.raises(NoBaselineFound):
                find_previous_snapshot(missing, fail_if_no_baseline=True)
            assert not missing.exists()

    def test_fail_if_no_baseline_with_snapshot(self):
        """Test that an existing baseline satisfies the check."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            (dest_path / "2025-01-01T10-00-00").mkdir()
            latest = find_previous_snapshot(dest_path, fail_if_no_baseline=True)
            assert latest.name == "2025-01-01T10-00-00"


class TestListSnapshots:
    """Tests for list_snapshots."""

    def test_newest_first_with_stats(self):
        """Test ordering, sizes and file counts."""
        with tempfile.TemporaryDirectory() as dest:
            dest_path = Path(dest)
            old = dest_path / "2025-01-01T10-00-00"
            new = dest_path / "2025-01-02T10-00-00"
            old.mkdir()
            new.mkdir()
            (old / "a.txt").write_text("12345")
            (new / "sub").mkdir()
            (new / "sub" / "b.txt").write_text("1234567890")
            (new / "c.txt").write_text("1")
            (dest_path / "2025-01-03T10-00-00.inprogress").mkdir()

            infos = list_snapshots(dest_path)

            assert [i.path.name for i in infos] == [new.name, old.name]
            assert infos[0].file_count == 2
            assert infos[0].size_bytes == 11
            assert infos[1].file_count == 1
            assert infos[1].size_bytes == 5
            assert infos[0].timestamp.day == 2

    def test_missing_destination(self):
        """Test listing a destination that does not exist."""
        with tempfile.TemporaryDirectory() as dest:
            assert list_snapshots(Path(dest) / "nope") == []
