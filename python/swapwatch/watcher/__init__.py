"""
Single-file watcher that survives atomic symlink swaps.

Kubernetes mounts ConfigMaps and Secrets through a `..data` symlink that is
repointed at a fresh timestamped directory on every update, after which the
old directory is deleted. A plain inotify watch on the file silently dies
with the old directory. FileWatcher combines watchdog events (re-arming the
watch whenever the watched inode is removed) with periodic polling so the
in-memory copy always converges on the current content.

Typical usage:
--------------
    from swapwatch.watcher import FileWatcher

    async def main():
        watcher = FileWatcher(
            "/etc/config/settings.yaml",
            interval=5.0,
            on_change=lambda content: apply_settings(content),
        )
        task = watcher.spawn()
        settings = watcher.get()
        ...
        watcher.stop()
        await task

ERROR CONDITIONS SUMMARY
========================

1. CONSTRUCTION:
   - File missing or unreadable → InitialLoadError (no watcher created)
   - Non-positive interval, non-callable on_change → ConfigError

2. START:
   - Watch cannot be established within subscribe_timeout → SubscriptionError
   - start() while already running → RuntimeError
   - Cancelled while still retrying the watch → returns None

3. WHILE WATCHING (never raised):
   - Read/stat fails mid-swap → Log debug, keep previous snapshot
   - Re-subscription fails → Log debug, next event or tick catches up
   - watchdog error item → Log debug, continue
   - on_change raises → Log error, continue watching
"""

from swapwatch.watcher.core import FileWatcher
from swapwatch.watcher.handlers import SubscriptionEventHandler, classify
from swapwatch.watcher.subscription import Subscription
from swapwatch.watcher.types import FileWatcherProtocol, WatchEvent, WatchEventKind

__all__ = [
    "FileWatcher",
    "FileWatcherProtocol",
    "Subscription",
    "SubscriptionEventHandler",
    "WatchEvent",
    "WatchEventKind",
    "classify",
]
