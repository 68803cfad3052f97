"""
Snapshot state store for the watched file.

The store holds the last successfully read content together with the
modification time from the same reload. Both live in one frozen Snapshot,
so readers always get a consistent pair without taking a lock.
"""

import threading
from dataclasses import dataclass
from datetime import datetime

# Mode reported by FileInfo. Not derived from the real file permissions.
DEFAULT_FILE_MODE = 0o644


@dataclass(frozen=True)
class Snapshot:
    """Content and modification time captured by one reload."""

    content: bytes
    mod_time: datetime


@dataclass(frozen=True)
class FileInfo:
    """Minimal file-info record for callers that expect stat-like metadata."""

    name: str
    size: int
    mod_time: datetime
    is_dir: bool = False
    mode: int = DEFAULT_FILE_MODE

    @classmethod
    def from_snapshot(cls, name: str, snapshot: Snapshot) -> "FileInfo":
        return cls(name=name, size=len(snapshot.content), mod_time=snapshot.mod_time)


class SnapshotStore:
    """
    Thread-safe holder of the current Snapshot.

    Readers:
    --------
    read() returns the current Snapshot object. Snapshots are immutable and
    replaced by a single reference assignment, so any number of readers can
    call read() concurrently and never observe content from one reload with
    mod_time from another.

    Writers:
    --------
    write() is serialized by a lock so the compare-and-replace step sees the
    snapshot it is replacing.
    """

    def __init__(self, initial: Snapshot) -> None:
        self._snapshot = initial
        self._write_lock = threading.Lock()

    def read(self) -> Snapshot:
        """Return the current snapshot. Never blocks on I/O."""
        return self._snapshot

    def write(self, content: bytes, mod_time: datetime) -> bool:
        """
        Replace the stored pair atomically.

        Returns:
        --------
        True if content differs byte-for-byte from the previous snapshot.
        """
        new_snapshot = Snapshot(content=content, mod_time=mod_time)
        with self._write_lock:
            changed = self._snapshot.content != content
            self._snapshot = new_snapshot
        return changed
