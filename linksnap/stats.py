"""Run statistics for a single backup run."""

from dataclasses import dataclass, field
import threading


@dataclass
class RunStatistics:
    """
    Accumulates byte and entry counts during a run.

    Counters only ever grow. bytes_considered covers every file that was
    backed up (copied or linked); bytes_copied covers only the files whose
    data was written again. Directories contribute to neither.
    """
    bytes_copied: int = 0
    bytes_considered: int = 0
    files_copied: int = 0
    files_linked: int = 0
    directories_created: int = 0
    symlinks_created: int = 0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def record_copy(self, size: int) -> None:
        with self._lock:
            self.bytes_copied += size
            self.bytes_considered += size
            self.files_copied += 1

    def record_link(self, size: int) -> None:
        with self._lock:
            self.bytes_considered += size
            self.files_linked += 1

    def record_directory(self) -> None:
        with self._lock:
            self.directories_created += 1

    def record_symlink(self) -> None:
        with self._lock:
            self.symlinks_created += 1

    @property
    def files_considered(self) -> int:
        return self.files_copied + self.files_linked
