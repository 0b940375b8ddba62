"""Snapshot commit and rollback for linksnap.

A snapshot is written under its in-progress name and only renamed to its
committed name once the whole tree has been processed. The rename is a single
os.rename call, so other processes see either no snapshot or a complete one.
"""

from enum import Enum
from pathlib import Path
import logging
import shutil

from linksnap.errors import CommitFailure, DestinationUnavailable
from linksnap.naming import in_progress_name, is_in_progress, committed_name


logger = logging.getLogger(__name__)


class CommitState(Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMMITTED = "committed"
    ABORTED = "aborted"


class SnapshotCommitter:
    """
    Owns the in-progress snapshot folder for one run.

    State machine: NOT_STARTED -> IN_PROGRESS -> COMMITTED or ABORTED.
    """

    def __init__(self, destination: Path, identifier: str):
        self.destination = Path(destination)
        self.identifier = committed_name(identifier)
        self.in_progress_path = self.destination / in_progress_name(self.identifier)
        self.final_path = self.destination / self.identifier
        self.state = CommitState.NOT_STARTED

    def begin(self) -> Path:
        """
        Create the in-progress folder.

        Returns:
            Path to the in-progress folder

        Raises:
            DestinationUnavailable: If the folder cannot be created
        """
        if self.state is not CommitState.NOT_STARTED:
            raise RuntimeError(f"Cannot begin snapshot in state {self.state.value}")

        try:
            self.in_progress_path.mkdir()
        except OSError as e:
            raise DestinationUnavailable(
                f"Cannot create snapshot folder {self.in_progress_path}: {e}"
            ) from e

        self.state = CommitState.IN_PROGRESS
        logger.debug(f"Started snapshot {self.in_progress_path.name}")
        return self.in_progress_path

    def commit(self) -> Path:
        """
        Rename the in-progress folder to its committed name.

        On failure the in-progress folder is removed before raising.

        Returns:
            Path to the committed snapshot

        Raises:
            CommitFailure: If the rename fails
        """
        if self.state is not CommitState.IN_PROGRESS:
            raise RuntimeError(f"Cannot commit snapshot in state {self.state.value}")

        try:
            if self.final_path.exists():
                # os.rename would silently replace an empty directory
                raise FileExistsError(f"Snapshot already exists: {self.final_path}")
            self.in_progress_path.rename(self.final_path)
        except OSError as e:
            try:
                self.abort()
            except OSError:
                pass  # already logged by abort()
            raise CommitFailure(f"Failed to commit snapshot {self.identifier}: {e}") from e

        self.state = CommitState.COMMITTED
        logger.info(f"Committed snapshot {self.identifier}")
        return self.final_path

    def abort(self) -> None:
        """Remove the in-progress folder and everything in it."""
        if self.state in (CommitState.COMMITTED, CommitState.ABORTED):
            return

        if self.in_progress_path.exists():
            try:
                shutil.rmtree(self.in_progress_path)
            except OSError as e:
                logger.error(f"Failed to remove incomplete snapshot {self.in_progress_path}: {e}")
                raise
            logger.info(f"Removed incomplete snapshot {self.in_progress_path.name}")

        self.state = CommitState.ABORTED


def cleanup_stale_in_progress(destination: Path) -> int:
    """
    Remove in-progress folders left behind by interrupted runs.

    Args:
        destination: Backup destination root

    Returns:
        Count of folders removed
    """
    destination = Path(destination)
    if not destination.is_dir():
        return 0

    removed_count = 0
    for entry in destination.iterdir():
        if entry.is_dir() and is_in_progress(entry.name):
            try:
                shutil.rmtree(entry)
                removed_count += 1
                logger.info(f"Removed stale in-progress snapshot {entry.name}")
            except OSError as e:
                logger.warning(f"Could not remove stale snapshot {entry}: {e}")

    return removed_count
