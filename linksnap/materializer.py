"""Per-entry copy-or-link decisions for linksnap.

The EntryMaterializer writes one SourceEntry at a time into the in-progress
snapshot folder. In incremental mode a file whose modification time and size
match the same path in the baseline snapshot becomes a hard link to the
baseline copy; everything else is copied.

Failures on a single entry are returned as EntryResult values carrying a
PerFileFailure, never raised, so the caller can keep going.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Set
import logging
import os
import shutil
import stat

from linksnap.errors import PerFileFailure
from linksnap.stats import RunStatistics
from linksnap.walker import EntryKind, SourceEntry


logger = logging.getLogger(__name__)


class BackupMode(Enum):
    COPY_ONLY = "copy_only"
    INCREMENTAL = "incremental"


class MaterializeAction(Enum):
    DIRECTORY = "directory"
    COPIED = "copied"
    LINKED = "linked"
    SYMLINKED = "symlinked"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class EntryResult:
    """Outcome of materializing one entry."""
    entry: SourceEntry
    action: MaterializeAction
    failure: Optional[PerFileFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class EntryMaterializer:
    """
    Creates directories, hard links and copies inside a snapshot folder.

    Entries must arrive parent-first. When a directory cannot be created,
    every later entry below it is skipped.
    """

    def __init__(
        self,
        snapshot_root: Path,
        mode: BackupMode,
        baseline: Optional[Path],
        statistics: RunStatistics,
    ):
        """
        Args:
            snapshot_root: In-progress snapshot folder to write into
            mode: COPY_ONLY or INCREMENTAL
            baseline: Previous snapshot folder, required for INCREMENTAL
            statistics: Accumulator updated for every file backed up
        """
        if mode is BackupMode.INCREMENTAL and baseline is None:
            raise ValueError("Incremental mode requires a baseline snapshot")
        self.snapshot_root = Path(snapshot_root)
        self.mode = mode
        self.baseline = Path(baseline) if baseline is not None else None
        self.statistics = statistics
        self._failed_dirs: Set[Path] = set()

    def destination_for(self, entry: SourceEntry) -> Path:
        return self.snapshot_root / entry.relative_path

    def materialize(self, entry: SourceEntry) -> EntryResult:
        """
        Write a single entry into the snapshot.

        Args:
            entry: Entry produced by the tree walker

        Returns:
            EntryResult describing what was done
        """
        if self._under_failed_dir(entry):
            logger.debug(f"Skipping {entry.relative_path}: parent directory missing")
            return EntryResult(entry, MaterializeAction.SKIPPED)

        if entry.kind is EntryKind.DIRECTORY:
            return self._make_directory(entry)
        if entry.kind is EntryKind.SYMLINK:
            return self._make_symlink(entry)

        if self.mode is BackupMode.INCREMENTAL:
            prior = self._unchanged_in_baseline(entry)
            if prior is not None:
                result = self._link_file(entry, prior)
                if result is not None:
                    return result
        return self._copy_file(entry)

    def _under_failed_dir(self, entry: SourceEntry) -> bool:
        if not self._failed_dirs:
            return False
        return any(parent in self._failed_dirs for parent in entry.relative_path.parents)

    def _failure(self, entry: SourceEntry, operation: str, error: OSError) -> EntryResult:
        failure = PerFileFailure(
            path=entry.path,
            relative_path=entry.relative_path,
            operation=operation,
            message=str(error),
        )
        logger.warning(str(failure))
        return EntryResult(entry, MaterializeAction.FAILED, failure)

    def _make_directory(self, entry: SourceEntry) -> EntryResult:
        dest = self.destination_for(entry)
        try:
            dest.mkdir(exist_ok=True)
        except OSError as e:
            self._failed_dirs.add(entry.relative_path)
            return self._failure(entry, "mkdir", e)
        self.statistics.record_directory()
        return EntryResult(entry, MaterializeAction.DIRECTORY)

    def _make_symlink(self, entry: SourceEntry) -> EntryResult:
        dest = self.destination_for(entry)
        try:
            os.symlink(os.readlink(entry.path), dest)
        except OSError as e:
            return self._failure(entry, "symlink", e)
        self.statistics.record_symlink()
        return EntryResult(entry, MaterializeAction.SYMLINKED)

    def _unchanged_in_baseline(self, entry: SourceEntry) -> Optional[Path]:
        """Return the baseline file if it matches entry by mtime and size."""
        prior = self.baseline / entry.relative_path
        try:
            st = prior.lstat()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"Cannot stat baseline file {prior}: {e}")
            return None

        if not stat.S_ISREG(st.st_mode):
            return None
        if st.st_size != entry.size or st.st_mtime_ns != entry.mtime_ns:
            return None
        return prior

    def _link_file(self, entry: SourceEntry, prior: Path) -> Optional[EntryResult]:
        """Hard-link to the baseline copy; None means fall back to copying."""
        dest = self.destination_for(entry)
        try:
            os.link(prior, dest)
        except OSError as e:
            # Link count limits, cross-device or protected_hardlinks
            logger.debug(f"Hard link failed for {entry.relative_path}, copying instead: {e}")
            return None
        self.statistics.record_link(entry.size or 0)
        return EntryResult(entry, MaterializeAction.LINKED)

    def _copy_file(self, entry: SourceEntry) -> EntryResult:
        dest = self.destination_for(entry)
        try:
            shutil.copy2(entry.path, dest, follow_symlinks=False)
        except OSError as e:
            # Leave no partial file behind
            try:
                dest.unlink(missing_ok=True)
            except OSError:
                logger.debug(f"Could not remove partial copy {dest}")
            return self._failure(entry, "copy", e)
        self.statistics.record_copy(entry.size or 0)
        return EntryResult(entry, MaterializeAction.COPIED)
