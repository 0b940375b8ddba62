"""Unit tests for destination root preparation."""

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from linksnap.destination import is_writable, prepare_destination
from linksnap.errors import DestinationUnavailable


class TestPrepareDestination:
    """Tests for prepare_destination."""

    def test_existing_writable_path(self):
        """Test that an existing root is accepted and not reported as created."""
        with tempfile.TemporaryDirectory() as tmpdir:
            assert prepare_destination(Path(tmpdir)) is False

    def test_creates_missing_root(self):
        """Test that missing directories are created."""
        with tempfile.TemporaryDirectory() as tmpdir:
            dest = Path(tmpdir) / "a" / "b"

            assert prepare_destination(dest) is True
            assert dest.is_dir()

    def test_file_in_the_way(self):
        """Test that a file at the destination path is rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            dest = Path(tmpdir) / "file"
            dest.write_text("x")

            with pytest.raises(DestinationUnavailable) as exc_info:
                prepare_destination(dest)
            assert "not a directory" in str(exc_info.value)

    def test_cannot_create(self):
        """Test that an uncreatable root is reported."""
        with tempfile.TemporaryDirectory() as tmpdir:
            blocker = Path(tmpdir) / "file"
            blocker.write_text("x")

            with pytest.raises(DestinationUnavailable):
                prepare_destination(blocker / "child")

    def test_not_writable(self):
        """Test that a read-only root is rejected."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch("linksnap.destination.os.access", return_value=False):
                with pytest.raises(DestinationUnavailable) as exc_info:
                    prepare_destination(Path(tmpdir))
            assert "not writable" in str(exc_info.value)


class TestIsWritable:
    """Tests for the writability check."""

    def test_writable_directory(self):
        """Test that the test file is cleaned up."""
        with tempfile.TemporaryDirectory() as tmpdir:
            assert is_writable(Path(tmpdir))
            assert list(Path(tmpdir).iterdir()) == []

    def test_write_check_failure(self):
        """Test that a failed test write means not writable."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch.object(Path, "touch", side_effect=OSError("read-only file system")):
                assert not is_writable(Path(tmpdir))
