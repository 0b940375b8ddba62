"""Previous-snapshot discovery for linksnap.

Finds the most recent committed snapshot under a destination root, which the
engine uses as the baseline for hard-link deduplication.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set
import logging
import os

from linksnap.errors import NoBaselineFound
from linksnap.naming import is_in_progress, parse_snapshot_id


logger = logging.getLogger(__name__)


@dataclass
class SnapshotInfo:
    """Information about a committed snapshot."""
    path: Path
    timestamp: datetime
    size_bytes: int
    file_count: int


def _committed_snapshots(destination: Path) -> List[Path]:
    """Return committed snapshot directories, oldest first."""
    if not destination.is_dir():
        return []

    snapshots = []
    for entry in destination.iterdir():
        if is_in_progress(entry.name):
            continue
        if parse_snapshot_id(entry.name) is None:
            continue
        if not entry.is_dir():
            continue
        snapshots.append(entry)

    # Lexicographic order is chronological order for snapshot names
    snapshots.sort(key=lambda p: p.name)
    return snapshots


def find_previous_snapshot(
    destination: Path,
    fail_if_no_baseline: bool = False,
) -> Optional[Path]:
    """
    Find the most recent committed snapshot in a destination root.

    In-progress folders and folders whose names are not snapshot identifiers
    are ignored. A destination root that does not exist yet counts as having
    no snapshots.

    Args:
        destination: Backup destination root
        fail_if_no_baseline: Raise instead of returning None when nothing is found

    Returns:
        Path to the latest snapshot, or None if there is none

    Raises:
        NoBaselineFound: If no snapshot exists and fail_if_no_baseline is set
    """
    destination = Path(destination)
    snapshots = _committed_snapshots(destination)

    if not snapshots:
        if fail_if_no_baseline:
            if not destination.exists():
                raise NoBaselineFound(
                    f"Destination does not exist, no baseline snapshot: {destination}"
                )
            raise NoBaselineFound(f"No committed snapshot found in {destination}")
        logger.debug(f"No previous snapshot in {destination}")
        return None

    latest = snapshots[-1]
    logger.debug(f"Previous snapshot: {latest.name}")
    return latest


def list_snapshots(destination: Path) -> List[SnapshotInfo]:
    """
    List all committed snapshots with size and file count, newest first.

    Args:
        destination: Backup destination root

    Returns:
        List of SnapshotInfo objects
    """
    infos = []
    for path in reversed(_committed_snapshots(Path(destination))):
        size_bytes, file_count = _get_directory_stats(path)
        infos.append(SnapshotInfo(
            path=path,
            timestamp=parse_snapshot_id(path.name),
            size_bytes=size_bytes,
            file_count=file_count,
        ))
    return infos


def _get_directory_stats(path: Path) -> tuple[int, int]:
    """
    Calculate apparent size and file count for a snapshot.

    Hard-linked files are counted in full, so the size is what the snapshot
    would take on its own rather than what it adds to the disk.
    Symbolic links are not followed.
    """
    total_size = 0
    file_count = 0
    visited_dirs: Set[int] = set()

    for root, dirs, files in os.walk(path, followlinks=False):
        root_path = Path(root)
        try:
            dir_inode = root_path.stat().st_ino
            if dir_inode in visited_dirs:
                dirs.clear()
                continue
            visited_dirs.add(dir_inode)
        except OSError:
            pass

        for f in files:
            try:
                total_size += (root_path / f).lstat().st_size
                file_count += 1
            except OSError:
                continue

    return total_size, file_count
