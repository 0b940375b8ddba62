"""linksnap - Timestamped directory snapshots deduplicated with hard links."""

__version__ = "0.1.0"

from linksnap.errors import (
    BackupError,
    NoBaselineFound,
    SourceUnavailable,
    DestinationUnavailable,
    CommitFailure,
    PerFileFailure,
)
from linksnap.naming import (
    snapshot_id,
    in_progress_name,
    is_in_progress,
    committed_name,
    is_snapshot_id,
    parse_snapshot_id,
)
from linksnap.locator import SnapshotInfo, find_previous_snapshot, list_snapshots
from linksnap.walker import EntryKind, SourceEntry, walk_source
from linksnap.materializer import BackupMode, EntryMaterializer, EntryResult, MaterializeAction
from linksnap.committer import CommitState, SnapshotCommitter, cleanup_stale_in_progress
from linksnap.stats import RunStatistics
from linksnap.engine import BackupPolicy, BackupResult, RunOutcome, run_backup
from linksnap.config import (
    Configuration,
    ConfigurationError,
    ValidationError,
    parse_config,
    format_config,
    create_default_config,
)
from linksnap.logger import LoggingError, setup_logging, get_logger

__all__ = [
    "BackupError",
    "NoBaselineFound",
    "SourceUnavailable",
    "DestinationUnavailable",
    "CommitFailure",
    "PerFileFailure",
    "snapshot_id",
    "in_progress_name",
    "is_in_progress",
    "committed_name",
    "is_snapshot_id",
    "parse_snapshot_id",
    "SnapshotInfo",
    "find_previous_snapshot",
    "list_snapshots",
    "EntryKind",
    "SourceEntry",
    "walk_source",
    "BackupMode",
    "EntryMaterializer",
    "EntryResult",
    "MaterializeAction",
    "CommitState",
    "SnapshotCommitter",
    "cleanup_stale_in_progress",
    "RunStatistics",
    "BackupPolicy",
    "BackupResult",
    "RunOutcome",
    "run_backup",
    "Configuration",
    "ConfigurationError",
    "ValidationError",
    "parse_config",
    "format_config",
    "create_default_config",
    "LoggingError",
    "setup_logging",
    "get_logger",
]
