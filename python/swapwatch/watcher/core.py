"""
Core single-file watching implementation.

This module provides the FileWatcher class that keeps an in-memory copy of
one file and keeps it current, including across Kubernetes-style atomic
symlink swaps:

    ca.crt -> ..data/ca.crt
    ..data -> ..2024_01_01_00_00_00.123    (repointed on every update)

When ..data is repointed and the old timestamped directory is deleted, the
inode the watch was bound to disappears. Filesystem events alone then stop
arriving, so the watcher combines two trigger sources:

1. watchdog events: reload on write/create, re-arm the watch and reload on
   remove/attribute-change
2. A polling timer: reload every interval no matter what

Both feed the same reload() routine, which re-reads the whole file and only
notifies on_change when the bytes differ.
"""

import asyncio
import contextlib
import inspect
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from swapwatch.config import OnChange, WatchOptions
from swapwatch.exceptions import InitialLoadError, SubscriptionError
from swapwatch.snapshot import FileInfo, Snapshot, SnapshotStore
from swapwatch.watcher.subscription import Subscription
from swapwatch.watcher.types import REARM_KINDS, RELOAD_KINDS, WatchEvent

logger = logging.getLogger(__name__)


class FileWatcher:
    """
    Watches one file and exposes its current content.

    Constructor Args:
    -----------------
    path: File to watch. Kept as given (not resolved), so symlinks are
        followed on every read and every re-subscription.
    options: WatchOptions; defaults to WatchOptions()
    interval: Shortcut overriding options.interval
    on_change: Shortcut overriding options.on_change

    Example Usage:
    --------------
    >>> def on_change(content: bytes) -> None:
    ...     logger.info(f"CA certificate reloaded, {len(content)} bytes")
    ...
    >>> watcher = FileWatcher(
    ...     "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt",
    ...     interval=5.0,
    ...     on_change=on_change,
    ... )
    >>> task = watcher.spawn()
    >>> ca_cert = watcher.get()
    >>> # ... later ...
    >>> watcher.stop()
    >>> await task
    """

    def __init__(
        self,
        path: Union[str, os.PathLike],
        options: Optional[WatchOptions] = None,
        *,
        interval: Optional[float] = None,
        on_change: Optional[OnChange] = None,
    ) -> None:
        """
        Initialize the watcher and load the file once (not started yet).

        Raises:
        -------
        InitialLoadError: If the file cannot be read or stat'ed
        ConfigError: If the options are invalid
        """
        base = options if options is not None else WatchOptions()
        self._options = base.with_overrides(interval=interval, on_change=on_change).validate()
        self._path = os.fspath(path)

        # Loop that start() runs on; used to schedule coroutine callbacks
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._cancel: Optional[asyncio.Event] = None
        self._active = False
        self._watching = False
        # Spawned task that has not started running yet
        self._pending: Optional[asyncio.Task] = None

        try:
            initial = self._read_snapshot()
        except OSError as e:
            raise InitialLoadError(f"Failed to read initial file {self._path}: {e}") from e
        self._store = SnapshotStore(initial)

    @property
    def path(self) -> str:
        return self._path

    @property
    def options(self) -> WatchOptions:
        return self._options

    @property
    def interval(self) -> float:
        return self._options.interval

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get(self) -> bytes:
        """Return the current content. Thread-safe, never blocks on I/O."""
        return self._store.read().content

    def get_with_metadata(self) -> tuple[bytes, FileInfo]:
        """Return the current content and a FileInfo from the same reload."""
        snapshot = self._store.read()
        return snapshot.content, FileInfo.from_snapshot(self._path, snapshot)

    # ------------------------------------------------------------------
    # Reload
    # ------------------------------------------------------------------

    def _read_snapshot(self) -> Snapshot:
        # Whole-file read: the mount replaces the file wholesale, there is
        # nothing incremental to read.
        content = Path(self._path).read_bytes()
        stat = os.stat(self._path)
        mod_time = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return Snapshot(content=content, mod_time=mod_time)

    def reload(self) -> bool:
        """
        Re-read the file and update the snapshot.

        Safe to call concurrently from several threads: all mutation goes
        through the store's atomic write.

        Returns:
        --------
        True if the content changed (and on_change was dispatched)

        Raises:
        -------
        OSError: If the read or stat fails. The previous snapshot stays.
        """
        snapshot = self._read_snapshot()
        changed = self._store.write(snapshot.content, snapshot.mod_time)
        if changed:
            logger.info(f"Content of {self._path} changed ({len(snapshot.content)} bytes)")
            if self._options.on_change is not None:
                self._dispatch_callback(snapshot.content)
        return changed

    def _dispatch_callback(self, content: bytes) -> None:
        """Fire-and-forget the on_change callback off the reconciliation loop."""
        callback = self._options.on_change

        if inspect.iscoroutinefunction(callback):
            loop = self._loop
            if loop is not None and loop.is_running():
                future = asyncio.run_coroutine_threadsafe(callback(content), loop)
                future.add_done_callback(self._log_callback_result)
                return
            target = lambda: asyncio.run(callback(content))  # noqa: E731
        else:
            target = lambda: callback(content)  # noqa: E731

        thread = threading.Thread(
            target=self._run_callback,
            args=(target,),
            name="swapwatch-on-change",
            daemon=True,
        )
        thread.start()

    def _run_callback(self, target) -> None:
        try:
            target()
        except Exception as e:
            logger.error(f"Error in on_change callback for {self._path}: {e}", exc_info=True)

    def _log_callback_result(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(
                f"Error in on_change callback for {self._path}: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )

    async def _reload_quietly(self) -> None:
        """Reload in a worker thread; failures keep the previous snapshot."""
        try:
            await asyncio.to_thread(self.reload)
        except OSError as e:
            # Expected mid-swap while the old target is being deleted
            logger.debug(f"Reload of {self._path} failed, keeping previous snapshot: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, cancel: Optional[asyncio.Event] = None) -> None:
        """
        Run the reconciliation loop until cancelled.

        Args:
        -----
        cancel: Event that stops the loop when set. stop() sets the same
            event; if omitted the watcher creates its own.

        Raises:
        -------
        RuntimeError: If already running
        SubscriptionError: If the watch could not be established within
            options.subscribe_timeout
        """
        self._claim()
        await self._run(cancel)

    def _claim(self) -> None:
        if self._active:
            raise RuntimeError("FileWatcher is already running")
        self._active = True

    async def _run(self, cancel: Optional[asyncio.Event]) -> None:
        if self._pending is asyncio.current_task():
            self._pending = None

        self._loop = asyncio.get_running_loop()
        self._cancel = cancel if cancel is not None else asyncio.Event()
        cancel = self._cancel

        subscription = Subscription(self._path, self._loop)
        try:
            subscription.open()
            if not await self._subscribe_with_retry(subscription, cancel):
                logger.info(f"Cancelled before watch on {self._path} was established")
                return

            self._watching = True
            logger.info(f"Watching {self._path} (interval={self._options.interval}s)")

            tasks = [
                asyncio.create_task(self._consume_events(subscription)),
                asyncio.create_task(self._poll()),
            ]
            try:
                await cancel.wait()
            finally:
                for task in tasks:
                    task.cancel()
                results = await asyncio.gather(*tasks, return_exceptions=True)
                for result in results:
                    if isinstance(result, Exception):
                        logger.error(
                            f"Watch task for {self._path} failed: {result}",
                            exc_info=(type(result), result, result.__traceback__),
                        )
        finally:
            self._watching = False
            try:
                # Joining the observer thread blocks; keep it off the loop
                await asyncio.to_thread(subscription.close)
            finally:
                self._active = False
                logger.info(f"Stopped watching {self._path}")

    def spawn(self, cancel: Optional[asyncio.Event] = None) -> "asyncio.Task[None]":
        """
        Run start() as a background task on the running loop.

        The watcher counts as running from this call on, so a second spawn()
        or start() is rejected even before the task gets its first turn. The
        cancellation event is bound immediately for the same reason.
        """
        loop = asyncio.get_running_loop()
        self._claim()
        if cancel is None:
            cancel = asyncio.Event()
        self._loop = loop
        self._cancel = cancel
        task = asyncio.create_task(self._run(cancel), name=f"swapwatch:{self._path}")
        self._pending = task
        task.add_done_callback(self._release_unstarted)
        return task

    def _release_unstarted(self, task: "asyncio.Task[None]") -> None:
        # A task cancelled before its first step never enters _run's cleanup
        if self._pending is task:
            self._pending = None
            self._active = False

    def stop(self) -> None:
        """
        Request shutdown of a running loop.

        Safe to call from any thread, before start() or more than once.
        """
        cancel, loop = self._cancel, self._loop
        if cancel is None or loop is None:
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            cancel.set()
            return
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(cancel.set)

    def is_running(self) -> bool:
        """Check if the watch is established and the loop is active."""
        return self._watching

    async def _subscribe_with_retry(self, subscription: Subscription, cancel: asyncio.Event) -> bool:
        """
        Establish the initial watch, retrying on a fixed backoff.

        Returns:
        --------
        True once subscribed, False if cancelled first

        Raises:
        -------
        SubscriptionError: If the retry window elapses
        """
        timeout = self._options.subscribe_timeout
        backoff = self._options.subscribe_backoff
        deadline = time.monotonic() + timeout
        last_error: Optional[OSError] = None

        while True:
            try:
                await asyncio.to_thread(subscription.subscribe)
                return True
            except OSError as e:
                last_error = e
                logger.debug(f"Watch on {self._path} failed, retrying in {backoff}s: {e}")

            remaining = deadline - time.monotonic()
            if cancel.is_set():
                return False
            if remaining <= 0:
                break
            try:
                await asyncio.wait_for(cancel.wait(), timeout=min(backoff, remaining))
                return False
            except asyncio.TimeoutError:
                pass

        raise SubscriptionError(
            f"Failed to add watch on {self._path} after {timeout}s: {last_error}"
        ) from last_error

    async def _consume_events(self, subscription: Subscription) -> None:
        """Service the event stream until the subscription is closed."""
        async for item in subscription:
            if isinstance(item, Exception):
                logger.debug(f"Watch error on {self._path}: {item}")
                continue
            await self._handle_event(item, subscription)
        logger.debug(f"Event stream for {self._path} ended")

    async def _handle_event(self, event: WatchEvent, subscription: Subscription) -> None:
        """
        Act on one classified event.

        WRITE/CREATE reload. CHMOD/REMOVE re-subscribe the same path first,
        so the watch follows the new symlink target, then reload. Everything
        else is ignored.
        """
        if event.kind not in RELOAD_KINDS:
            return

        if event.kind in REARM_KINDS:
            try:
                await asyncio.to_thread(subscription.subscribe)
            except (OSError, SubscriptionError) as e:
                # Next event or the next timer tick will catch up
                logger.debug(f"Re-subscribing {self._path} failed: {e}")

        await self._reload_quietly()

    async def _poll(self) -> None:
        """Reload every interval; backstop for dropped or missing events."""
        while True:
            await asyncio.sleep(self._options.interval)
            await self._reload_quietly()
