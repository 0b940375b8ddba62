"""Destination root validation for linksnap."""

import os
from pathlib import Path

from linksnap.errors import DestinationUnavailable


def prepare_destination(destination: Path) -> bool:
    """
    Make sure the destination root exists and is writable.

    Missing directories are created.

    Args:
        destination: Path to the backup destination root

    Returns:
        True if the root was created by this call

    Raises:
        DestinationUnavailable: If the root cannot be created, is not a
                                directory, or is not writable
    """
    destination = Path(destination)

    created = False
    if not destination.exists():
        try:
            destination.mkdir(parents=True)
            created = True
        except FileExistsError:
            pass
        except OSError as e:
            raise DestinationUnavailable(
                f"Cannot create destination {destination}: {e}"
            ) from e

    if not destination.is_dir():
        raise DestinationUnavailable(f"Destination is not a directory: {destination}")

    if not is_writable(destination):
        raise DestinationUnavailable(f"Destination not writable: {destination}")

    return created


def is_writable(path: Path) -> bool:
    """
    Check if path is writable.

    Uses os.access and then creates and removes a test file, since
    os.access can be wrong on network and read-only mounts.
    """
    path = Path(path)

    if not os.access(path, os.W_OK):
        return False

    test_file = path / ".linksnap_write_test"
    try:
        test_file.touch()
        test_file.unlink()
        return True
    except OSError:
        return False
