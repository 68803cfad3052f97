"""
Filesystem-event subscription for a single path, backed by watchdog.

A Subscription owns one watchdog Observer thread and at most one scheduled
watch. Events are classified on the observer thread and handed to the
asyncio loop through a queue; consumers iterate the subscription with
`async for` until it is closed.
"""

import asyncio
import logging
import threading
from typing import Optional, Union

from watchdog.events import (
    DirDeletedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)
from watchdog.observers import Observer

from swapwatch.exceptions import SubscriptionError
from swapwatch.watcher.handlers import SubscriptionEventHandler, path_identity
from swapwatch.watcher.types import WatchEvent

logger = logging.getLogger(__name__)

# Seconds to wait for the observer thread on close
_JOIN_TIMEOUT = 5.0

_END_OF_STREAM = None

# Passing an explicit filter also drops IN_DONT_FOLLOW from the inotify mask,
# so a watch on a symlink lands on the file it resolves to.
# watchdog reports IN_DELETE_SELF as a DirDeletedEvent even for file watches
# (the kernel does not say what kind of inode went away).
WATCHED_EVENTS = [
    FileModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirDeletedEvent,
]


class Subscription:
    """
    One live watch on one path.

    Lifecycle:
    ----------
    open() starts the observer thread, subscribe() (re)schedules the watch,
    close() tears everything down and ends the event stream. A closed
    subscription cannot be reopened; create a new one instead.
    """

    def __init__(self, path: str, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._path = path
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._handler = SubscriptionEventHandler(path, self._publish, lambda: self._bound)
        self._observer = None
        self._watch = None
        # (st_dev, st_ino) the current watch was scheduled against
        self._bound: Optional[tuple[int, int]] = None
        self._closed = False
        self._lock = threading.Lock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_watching(self) -> bool:
        """True while a watch is scheduled."""
        return self._watch is not None

    def open(self) -> None:
        """Start the observer thread (no watch is scheduled yet)."""
        with self._lock:
            if self._closed:
                raise SubscriptionError(f"Subscription for {self._path} is closed")
            if self._observer is not None:
                return
            self._observer = Observer()
            self._observer.daemon = True
            self._observer.start()

    def subscribe(self) -> None:
        """
        Schedule the watch on the path, replacing any existing watch.

        The old watch is always dropped first: after a symlink swap it points
        at an inode that no longer backs the path.

        Raises:
        -------
        OSError: If the path cannot be watched right now (e.g. it does not
            resolve mid-swap)
        SubscriptionError: If the subscription was closed
        """
        with self._lock:
            if self._closed:
                raise SubscriptionError(f"Subscription for {self._path} is closed")
            if self._observer is None:
                raise SubscriptionError(f"Subscription for {self._path} is not open")
            if self._watch is not None:
                self._observer.unschedule_all()
                self._watch = None
            # Identity is taken before scheduling: if a swap lands in between,
            # the next event on the new inode looks rebound and re-arms again.
            bound = path_identity(self._path)
            if bound is None:
                raise FileNotFoundError(2, "No such file or directory", self._path)
            self._bound = bound
            self._watch = self._observer.schedule(
                self._handler,
                self._path,
                recursive=False,
                event_filter=WATCHED_EVENTS,
            )
        logger.debug(f"Watch scheduled on {self._path}")

    def close(self) -> None:
        """Stop the observer, release the watch and end the event stream."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            observer, self._observer = self._observer, None
            self._watch = None
            self._bound = None

        if observer is not None:
            observer.unschedule_all()
            observer.stop()
            observer.join(timeout=_JOIN_TIMEOUT)
            if observer.is_alive():
                logger.warning(f"Observer thread for {self._path} did not stop in {_JOIN_TIMEOUT}s")

        self._end_stream()

    def _end_stream(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._put(_END_OF_STREAM)
            return
        try:
            self._loop.call_soon_threadsafe(self._put, _END_OF_STREAM)
        except RuntimeError:
            pass

    def _publish(self, item: Union[WatchEvent, Exception]) -> None:
        """Forward an item from the observer thread to the event loop."""
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._put, item)
        except RuntimeError:
            # Loop already closed; nobody is listening
            pass

    def _put(self, item) -> None:
        self._queue.put_nowait(item)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Union[WatchEvent, Exception]:
        item = await self._queue.get()
        if item is _END_OF_STREAM:
            raise StopAsyncIteration
        return item
