"""Backup engine for linksnap.

run_backup() performs one snapshot of a source tree:
1. Validate the source root
2. Find the previous committed snapshot (the dedup baseline)
3. Prepare the destination root
4. Create the in-progress snapshot folder
5. Walk the source tree and copy or hard-link every entry
6. Rename the folder to its committed name
7. Optionally remove in-progress folders left by earlier interrupted runs

Per-file failures become warnings and the run continues. Any other error
removes the in-progress folder and ends the run as ABORTED, so an aborted run
never leaves a snapshot behind.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set
import logging
import os
import time

from linksnap.committer import CommitState, SnapshotCommitter, cleanup_stale_in_progress
from linksnap.destination import prepare_destination
from linksnap.errors import (
    BackupError,
    DestinationUnavailable,
    PerFileFailure,
    SourceUnavailable,
)
from linksnap.locator import find_previous_snapshot
from linksnap.logger import log_backup_completion, log_backup_error, log_backup_start
from linksnap.materializer import BackupMode, EntryMaterializer
from linksnap.naming import in_progress_name, snapshot_id
from linksnap.stats import RunStatistics
from linksnap.walker import walk_source


logger = logging.getLogger(__name__)

# Attempts at finding an unused snapshot name, one second apart
MAX_NAME_ATTEMPTS = 3


class RunOutcome(Enum):
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass
class BackupPolicy:
    """Options controlling a single backup run."""
    fail_if_no_baseline: bool = False
    disable_hard_links: bool = False
    exclude_paths: Set[Path] = field(default_factory=set)
    remove_stale_in_progress: bool = False


@dataclass
class BackupResult:
    """Result of a backup run."""
    outcome: RunOutcome
    snapshot_path: Optional[Path] = None
    baseline: Optional[Path] = None
    mode: Optional[BackupMode] = None
    statistics: Optional[RunStatistics] = None  # set only when committed
    warnings: List[PerFileFailure] = field(default_factory=list)
    error: Optional[BaseException] = None  # set only when aborted
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome is RunOutcome.COMMITTED

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None

    def raise_for_outcome(self) -> None:
        """Re-raise the error that aborted the run, if any."""
        if self.error is not None:
            raise self.error


def _validate_source(source: Path) -> None:
    if not source.exists():
        raise SourceUnavailable(f"Source does not exist: {source}")
    if not source.is_dir():
        raise SourceUnavailable(f"Source is not a directory: {source}")
    if not os.access(source, os.R_OK | os.X_OK):
        raise SourceUnavailable(f"No permission to read source: {source}")


def _choose_identifier(destination: Path, now: Callable[[], datetime]) -> str:
    """
    Pick a snapshot identifier that is not in use yet.

    Two runs within the same second would get the same name; in that case
    wait for the clock to move on.
    """
    for attempt in range(MAX_NAME_ATTEMPTS):
        identifier = snapshot_id(now())
        taken = (
            (destination / identifier).exists()
            or (destination / in_progress_name(identifier)).exists()
        )
        if not taken:
            return identifier
        logger.warning(f"Snapshot name {identifier} already in use, waiting 1 second")
        if attempt < MAX_NAME_ATTEMPTS - 1:
            time.sleep(1)

    raise DestinationUnavailable(
        f"Could not find an unused snapshot name in {destination}"
    )


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def run_backup(
    source: Path,
    destination: Path,
    policy: Optional[BackupPolicy] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> BackupResult:
    """
    Create one snapshot of source under destination.

    Args:
        source: Source root to back up
        destination: Destination root holding the snapshot folders
        policy: Run options (defaults to BackupPolicy())
        now: Clock used to name the snapshot (defaults to datetime.now)

    Returns:
        BackupResult. When outcome is COMMITTED, snapshot_path and statistics
        are set. When ABORTED, error holds the exception that stopped the run
        and nothing was left in the destination.
    """
    policy = policy or BackupPolicy()
    now = now or datetime.now
    # Symlinks are resolved so a destination reached through a link is still
    # recognised as lying inside the source
    source = Path(os.path.realpath(source))
    destination = Path(os.path.abspath(destination))
    real_destination = Path(os.path.realpath(destination))

    start_time = time.time()
    statistics = RunStatistics()
    warnings: List[PerFileFailure] = []
    committer: Optional[SnapshotCommitter] = None
    created_root = False
    baseline: Optional[Path] = None
    mode: Optional[BackupMode] = None

    log_backup_start(logger, source, destination)

    def on_walk_error(path: Path, error: OSError) -> None:
        relative = path.relative_to(source) if _is_within(path, source) else None
        warnings.append(PerFileFailure(path, relative, "scan", str(error)))

    try:
        _validate_source(source)
        if source == real_destination:
            raise DestinationUnavailable(
                f"Destination must not be the source root: {destination}"
            )

        # Resolved once; the baseline is read-only for the rest of the run
        baseline = find_previous_snapshot(destination, policy.fail_if_no_baseline)
        if baseline is not None and not policy.disable_hard_links:
            mode = BackupMode.INCREMENTAL
            logger.info(f"Incremental backup against {baseline.name}")
        else:
            mode = BackupMode.COPY_ONLY
            if baseline is not None:
                logger.info("Hard links disabled, copying all files")
            else:
                logger.info("No previous snapshot, copying all files")

        created_root = prepare_destination(destination)

        identifier = _choose_identifier(destination, now)
        committer = SnapshotCommitter(destination, identifier)
        snapshot_root = committer.begin()

        exclude_paths = set(policy.exclude_paths)
        if _is_within(real_destination, source):
            exclude_paths.add(real_destination)

        materializer = EntryMaterializer(snapshot_root, mode, baseline, statistics)
        for entry in walk_source(source, exclude_paths, on_walk_error):
            result = materializer.materialize(entry)
            if result.failure is not None:
                warnings.append(result.failure)

        snapshot_path = committer.commit()

    except Exception as e:
        if not isinstance(e, BackupError):
            logger.exception("Unexpected error during backup")
        log_backup_error(logger, e)
        _rollback(committer, destination, created_root)
        return BackupResult(
            outcome=RunOutcome.ABORTED,
            baseline=baseline,
            mode=mode,
            warnings=warnings,
            error=e,
            duration_seconds=time.time() - start_time,
        )
    finally:
        # KeyboardInterrupt and friends still must not leave a partial snapshot
        if committer is not None and committer.state is CommitState.IN_PROGRESS:
            _rollback(committer, destination, created_root)

    # Only a committed run may change anything else in the destination
    if policy.remove_stale_in_progress:
        try:
            removed = cleanup_stale_in_progress(destination)
        except OSError as e:
            logger.warning(f"Could not clean up incomplete snapshots in {destination}: {e}")
            removed = 0
        if removed:
            logger.info(f"Cleaned up {removed} incomplete snapshot(s)")

    duration = time.time() - start_time
    if warnings:
        logger.warning(f"{len(warnings)} entries could not be backed up")
    log_backup_completion(logger, duration, statistics, snapshot_path)

    return BackupResult(
        outcome=RunOutcome.COMMITTED,
        snapshot_path=snapshot_path,
        baseline=baseline,
        mode=mode,
        statistics=statistics,
        warnings=warnings,
        duration_seconds=duration,
    )


def _rollback(
    committer: Optional[SnapshotCommitter],
    destination: Path,
    created_root: bool,
) -> None:
    """Undo everything the run wrote to the destination."""
    if committer is not None:
        try:
            committer.abort()
        except OSError as e:
            logger.error(f"Rollback incomplete, remove {committer.in_progress_path} manually: {e}")

    if created_root:
        try:
            destination.rmdir()
        except OSError:
            # Not empty, something else was written there meanwhile
            logger.debug(f"Leaving destination root {destination} in place")
