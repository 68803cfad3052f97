"""
swapwatch - keep an in-memory copy of a file current across atomic symlink swaps.
"""

__version__ = "0.1.0"

from swapwatch.config import WatchOptions
from swapwatch.exceptions import (
    ConfigError,
    InitialLoadError,
    SubscriptionError,
    SwapWatchError,
)
from swapwatch.snapshot import FileInfo, Snapshot
from swapwatch.watcher import FileWatcher

__all__ = [
    "ConfigError",
    "FileInfo",
    "FileWatcher",
    "InitialLoadError",
    "Snapshot",
    "SubscriptionError",
    "SwapWatchError",
    "WatchOptions",
]
