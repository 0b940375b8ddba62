"""Pytest configuration and fixtures for linksnap tests."""

import itertools
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from hypothesis import settings, Phase

# Configure hypothesis to use fewer examples for faster test runs
settings.register_profile(
    "fast",
    max_examples=10,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate]
)
settings.register_profile("ci", max_examples=50, deadline=None)

settings.load_profile("fast")


def make_clock(start: datetime = datetime(2024, 3, 1, 9, 0, 0)):
    """Return a clock that moves one minute forward on every call."""
    counter = itertools.count()
    return lambda: start + timedelta(minutes=next(counter))


@pytest.fixture
def clock():
    return make_clock()


@pytest.fixture
def temp_dirs():
    """Create temporary source and destination directories."""
    with tempfile.TemporaryDirectory() as source_dir:
        with tempfile.TemporaryDirectory() as dest_dir:
            source_path = Path(source_dir)
            (source_path / "file1.txt").write_text("content1")
            (source_path / "file2.txt").write_text("content two")
            (source_path / "subdir").mkdir()
            (source_path / "subdir" / "file3.txt").write_text("content3")

            yield {
                "source": source_path,
                "dest": Path(dest_dir) / "backups",
            }
