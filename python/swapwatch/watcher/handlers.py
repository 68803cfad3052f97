"""
Internal event handler for watchdog file system monitoring.

This module provides the low-level event handler that interfaces with
the watchdog library and turns its events into WatchEvents for the
reconciliation loop.
"""

import os
from typing import Callable, Optional, Union

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
)

from swapwatch.watcher.types import WatchEvent, WatchEventKind

Identity = tuple[int, int]


def path_identity(path: str) -> Optional[Identity]:
    """Return (st_dev, st_ino) of the file the path resolves to, or None."""
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_dev, st.st_ino)


def classify(event, watched_path: str, bound: Optional[Identity] = None) -> WatchEventKind:
    """
    Map a watchdog event onto a WatchEventKind.

    watchdog folds IN_ATTRIB into modified events, so an attribute change
    cannot be told apart from a write by the event alone. When the watch's
    bound inode is known, a modified event on the watched path whose path no
    longer resolves to that inode is reported as CHMOD: it is the link-count
    drop on the old target of a symlink swap, and the watch must be re-armed.

    Deleting the watched inode arrives as a deleted event (watchdog uses
    DirDeletedEvent for IN_DELETE_SELF), after which watchdog stops the
    emitter for that watch.

    Args:
    -----
    event: Raw watchdog FileSystemEvent
    watched_path: The path string the watch was scheduled on
    bound: (st_dev, st_ino) the watch was scheduled against, if known
    """
    event_type = event.event_type

    if event_type == EVENT_TYPE_MODIFIED:
        if bound is not None and os.fsdecode(event.src_path) == watched_path:
            if path_identity(watched_path) != bound:
                return WatchEventKind.CHMOD
        return WatchEventKind.WRITE
    if event_type == EVENT_TYPE_CREATED:
        return WatchEventKind.CREATE
    if event_type == EVENT_TYPE_DELETED:
        return WatchEventKind.REMOVE
    if event_type == EVENT_TYPE_MOVED:
        # The watched file itself was renamed away; the path must be re-bound
        if os.fsdecode(event.src_path) == watched_path:
            return WatchEventKind.REMOVE
        return WatchEventKind.OTHER
    return WatchEventKind.OTHER


class SubscriptionEventHandler:
    """
    Internal event handler for watchdog.

    Receives raw events on watchdog's observer thread, classifies them and
    hands the result to the publish callback. A failure to classify an event
    is published as the exception itself so the consumer can log it.
    """

    def __init__(
        self,
        watched_path: str,
        publish: Callable[[Union[WatchEvent, Exception]], None],
        bound: Optional[Callable[[], Optional[Identity]]] = None,
    ) -> None:
        """
        Initialize event handler.

        Args:
        -----
        watched_path: Path the subscription is bound to
        publish: Thread-safe callable that forwards items to the event loop
        bound: Returns the inode identity of the current watch
        """
        self.watched_path = watched_path
        self._publish = publish
        self._bound = bound

    def dispatch(self, event) -> None:
        """Dispatch file system events to the subscription stream."""
        try:
            bound = self._bound() if self._bound is not None else None
            kind = classify(event, self.watched_path, bound)
            item = WatchEvent(kind=kind, path=os.fsdecode(event.src_path))
        except Exception as e:
            self._publish(e)
            return
        self._publish(item)
