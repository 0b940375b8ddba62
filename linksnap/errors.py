"""Error types for linksnap.

Fatal errors are exceptions derived from BackupError. Per-file problems are
not raised; they are collected as PerFileFailure records and returned to the
caller as warnings.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


class BackupError(Exception):
    """Base exception for all fatal backup errors."""
    pass


class NoBaselineFound(BackupError):
    """Raised when a baseline snapshot is required but none exists."""
    pass


class SourceUnavailable(BackupError):
    """Raised when the source root is missing or not a directory."""
    pass


class DestinationUnavailable(BackupError):
    """Raised when the destination root cannot be created or written."""
    pass


class CommitFailure(BackupError):
    """Raised when the in-progress snapshot cannot be renamed to its final name."""
    pass


@dataclass(frozen=True)
class PerFileFailure:
    """A non-fatal failure to back up a single entry."""
    path: Path
    relative_path: Optional[Path]
    operation: str  # "scan", "mkdir", "copy", "link" or "symlink"
    message: str

    def __str__(self) -> str:
        return f"{self.operation} failed for {self.path}: {self.message}"
