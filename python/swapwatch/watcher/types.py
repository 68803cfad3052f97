"""
File watcher type definitions and protocol.

This module defines the core types and protocols for file watching:
- WatchEventKind enum: Classified kinds of filesystem notifications
- WatchEvent: One classified notification for the watched path
- FileWatcherProtocol: Interface contract for the single-file watcher
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from swapwatch.snapshot import FileInfo


class WatchEventKind(Enum):
    """Filesystem notification kinds the reconciliation loop acts on."""

    WRITE = "write"  # Content written in place
    CREATE = "create"  # Path (re)created
    CHMOD = "chmod"  # Attributes changed (link count, permissions)
    REMOVE = "remove"  # Watched inode removed or moved away
    OTHER = "other"  # Anything else (open, close, ...); ignored


# Kinds that mean the watch may now point at a dead inode
REARM_KINDS = frozenset({WatchEventKind.CHMOD, WatchEventKind.REMOVE})

# Kinds that trigger a reload
RELOAD_KINDS = frozenset({WatchEventKind.WRITE, WatchEventKind.CREATE}) | REARM_KINDS


@dataclass(frozen=True)
class WatchEvent:
    """A classified notification delivered by a subscription."""

    kind: WatchEventKind
    path: str


class FileWatcherProtocol(Protocol):
    """
    Protocol defining the single-file watcher interface.

    The watcher keeps an in-memory copy of one file and refreshes it when the
    file changes, including when the path is updated by an atomic
    directory-symlink swap.

    Expected Behavior:
    ------------------
    1. Load the file once, synchronously, at construction
    2. Watch the path for filesystem events once started
    3. Re-arm the watch after removal/attribute-change events
    4. Poll the file every interval regardless of events
    5. Notify the on_change callback only when content actually changes
    6. Never fail after the watch is established (log and keep going)

    Thread Safety:
    --------------
    - get() and get_with_metadata() may be called from any thread
    - watchdog delivers events from its own thread into the asyncio loop
    - on_change runs off the loop and may overlap with itself
    """

    async def start(self, cancel: Optional[asyncio.Event] = None) -> None:
        """
        Run the reconciliation loop until cancelled.

        Error Conditions:
        -----------------
        - Raises RuntimeError if already started
        - Raises SubscriptionError if the watch cannot be established
          within the retry window

        Post-conditions:
        ----------------
        - Returns None once cancel is set or stop() is called
        - The filesystem watch has been released
        """
        ...

    def stop(self) -> None:
        """Request shutdown of a running loop. Safe to call when not running."""
        ...

    def is_running(self) -> bool:
        """True while the loop is watching the path."""
        ...

    def get(self) -> bytes:
        """Current content snapshot."""
        ...

    def get_with_metadata(self) -> tuple[bytes, FileInfo]:
        """Current content plus a file-info record from the same reload."""
        ...

    def reload(self) -> bool:
        """
        Re-read the file and update the snapshot.

        Returns True when the content changed. Raises OSError if the file
        cannot be read or stat'ed, leaving the previous snapshot in place.
        """
        ...
