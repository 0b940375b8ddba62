"""Snapshot folder naming.

Committed snapshots are named YYYY-MM-DDThh-mm-ss. Because every field is
zero-padded, sorting the names as strings sorts them by creation time.
A snapshot that is still being written carries the IN_PROGRESS_SUFFIX.
"""

from datetime import datetime
from typing import Optional
import re


# strftime format for committed snapshot names
TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S"

# Suffix marking a snapshot that has not been committed yet
IN_PROGRESS_SUFFIX = ".inprogress"

SNAPSHOT_ID_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}")


def snapshot_id(moment: datetime) -> str:
    """
    Build the committed snapshot identifier for a point in time.

    Sub-second precision is dropped.

    Args:
        moment: Run start time

    Returns:
        Identifier in YYYY-MM-DDThh-mm-ss format
    """
    return moment.strftime(TIMESTAMP_FORMAT)


def in_progress_name(identifier: str) -> str:
    """Return the in-progress folder name for a committed identifier."""
    if is_in_progress(identifier):
        return identifier
    return f"{identifier}{IN_PROGRESS_SUFFIX}"


def is_in_progress(name: str) -> bool:
    return name.endswith(IN_PROGRESS_SUFFIX)


def committed_name(name: str) -> str:
    """
    Strip the in-progress marker from a folder name.

    Names without the marker are returned unchanged, so applying this
    more than once gives the same result.
    """
    if is_in_progress(name):
        return name[: -len(IN_PROGRESS_SUFFIX)]
    return name


def is_snapshot_id(name: str) -> bool:
    """Check whether a folder name is a committed snapshot identifier."""
    return SNAPSHOT_ID_PATTERN.fullmatch(name) is not None


def parse_snapshot_id(name: str) -> Optional[datetime]:
    """
    Parse a committed snapshot name back into its timestamp.

    Args:
        name: Snapshot directory name

    Returns:
        datetime if name is a valid committed identifier, None otherwise
    """
    if not is_snapshot_id(name):
        return None
    try:
        return datetime.strptime(name, TIMESTAMP_FORMAT)
    except ValueError:
        # Matches the pattern but is not a real date, e.g. month 13
        return None
