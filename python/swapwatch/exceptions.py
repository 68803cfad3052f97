"""
Error types raised by swapwatch.

Only errors that keep a watcher from ever becoming usable are raised to the
caller. Anything that happens after the watch is established (failed reloads
during a symlink swap, dropped subscription events) is logged and absorbed.
"""


class SwapWatchError(Exception):
    """Base class for all swapwatch errors."""

    pass


class InitialLoadError(SwapWatchError):
    """Raised when the initial read or stat of the watched file fails."""

    pass


class SubscriptionError(SwapWatchError):
    """Raised when the filesystem watch cannot be established in time."""

    pass


class ConfigError(SwapWatchError):
    """Raised for invalid watcher options or environment overrides."""

    pass
