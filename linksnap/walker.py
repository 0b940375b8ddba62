"""Source tree traversal for linksnap.

walk_source() yields every entry below a source root in pre-order: a
directory is always yielded before anything inside it, which lets the
materializer create destination directories before their contents.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set
import logging
import os


logger = logging.getLogger(__name__)


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class SourceEntry:
    """One filesystem object found under the source root."""
    path: Path
    relative_path: Path
    kind: EntryKind
    mtime_ns: Optional[int] = None  # files only
    size: Optional[int] = None  # files only

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


ErrorCallback = Callable[[Path, OSError], None]


def _list_directory(
    directory: Path,
    on_error: Optional[ErrorCallback],
) -> Optional[List[os.DirEntry]]:
    """List a directory sorted by name, or report the error and return None."""
    try:
        with os.scandir(directory) as it:
            return sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"Cannot list directory {directory}: {e}")
        if on_error is not None:
            on_error(directory, e)
        return None


def _make_entry(dir_entry: os.DirEntry, root: Path) -> Optional[SourceEntry]:
    path = Path(dir_entry.path)
    relative_path = path.relative_to(root)

    # Check symlinks first so links to directories are never descended into
    if dir_entry.is_symlink():
        return SourceEntry(path, relative_path, EntryKind.SYMLINK)
    if dir_entry.is_dir(follow_symlinks=False):
        return SourceEntry(path, relative_path, EntryKind.DIRECTORY)
    if dir_entry.is_file(follow_symlinks=False):
        st = dir_entry.stat(follow_symlinks=False)
        return SourceEntry(
            path,
            relative_path,
            EntryKind.FILE,
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
        )

    # Sockets, FIFOs and device nodes
    logger.info(f"Skipping special file: {path}")
    return None


def _resolve_excludes(exclude_paths: Iterable[Path]) -> Set[Path]:
    """
    Resolve symlinks in excluded paths so they match paths under the real root.

    Only the parent is resolved. An excluded symlink excludes the link
    itself, not its target.
    """
    excluded: Set[Path] = set()
    for p in exclude_paths:
        parent, name = os.path.split(os.path.abspath(p))
        excluded.add(Path(os.path.realpath(parent), name))
    return excluded


def walk_source(
    root: Path,
    exclude_paths: Iterable[Path] = (),
    on_error: Optional[ErrorCallback] = None,
) -> Iterator[SourceEntry]:
    """
    Lazily walk a source tree depth-first in pre-order.

    Hidden entries are included. Siblings are visited in name order.
    Symbolic links are yielded as SYMLINK entries and not followed.
    Directories that cannot be listed are reported through on_error and
    skipped; the walk continues with the next entry.

    Args:
        root: Source root directory
        exclude_paths: Paths to leave out, together with everything below them
        on_error: Called with (path, error) when an entry cannot be read

    Yields:
        SourceEntry for every descendant of root (root itself excluded)
    """
    root = Path(os.path.realpath(root))
    excluded = _resolve_excludes(exclude_paths)

    top = _list_directory(root, on_error)
    if top is None:
        return

    # Explicit stack of sibling iterators keeps deep trees off the call stack
    stack = [iter(top)]
    while stack:
        try:
            dir_entry = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue

        path = Path(dir_entry.path)
        if path in excluded:
            logger.debug(f"Excluded: {path}")
            continue

        try:
            entry = _make_entry(dir_entry, root)
        except OSError as e:
            logger.warning(f"Cannot read {path}: {e}")
            if on_error is not None:
                on_error(path, e)
            continue

        if entry is None:
            continue

        yield entry

        if entry.kind is EntryKind.DIRECTORY:
            children = _list_directory(path, on_error)
            if children:
                stack.append(iter(children))
