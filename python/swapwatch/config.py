"""
Watcher options.

Defaults suit Kubernetes ConfigMap/Secret mounts, where the kubelet may take
a while to publish an update and the poll interval acts as the backstop for
missed filesystem events. Every duration can be overridden in code or through
SWAPWATCH_* environment variables.
"""

import os
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, Union

from swapwatch.exceptions import ConfigError

DEFAULT_INTERVAL = 10.0
DEFAULT_SUBSCRIBE_TIMEOUT = 10.0
DEFAULT_SUBSCRIBE_BACKOFF = 1.0

OnChange = Callable[[bytes], Union[None, Awaitable[None]]]

_ENV_FIELDS = {
    "SWAPWATCH_INTERVAL": "interval",
    "SWAPWATCH_SUBSCRIBE_TIMEOUT": "subscribe_timeout",
    "SWAPWATCH_SUBSCRIBE_BACKOFF": "subscribe_backoff",
}


@dataclass(frozen=True)
class WatchOptions:
    """
    Immutable watcher configuration.

    Attributes:
    -----------
    interval: Seconds between unconditional polling reloads
    on_change: Called with the new content after a reload that changed it.
        May be a plain function or a coroutine function.
    subscribe_timeout: Total seconds to keep retrying the initial watch
    subscribe_backoff: Seconds to wait between watch attempts
    """

    interval: float = DEFAULT_INTERVAL
    on_change: Optional[OnChange] = None
    subscribe_timeout: float = DEFAULT_SUBSCRIBE_TIMEOUT
    subscribe_backoff: float = DEFAULT_SUBSCRIBE_BACKOFF

    def validate(self) -> "WatchOptions":
        for name in ("interval", "subscribe_timeout", "subscribe_backoff"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{name} must be a number of seconds, got {value!r}")
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value!r}")
        if self.on_change is not None and not callable(self.on_change):
            raise ConfigError("on_change must be callable")
        return self

    def with_overrides(self, **overrides: Any) -> "WatchOptions":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None, **overrides: Any) -> "WatchOptions":
        """
        Build options from SWAPWATCH_* environment variables.

        Args:
        -----
        environ: Mapping to read instead of os.environ (tests)
        overrides: Explicit values that win over the environment

        Raises:
        -------
        ConfigError: If a variable is not a positive number
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for var, field_name in _ENV_FIELDS.items():
            raw = env.get(var)
            if raw is None or not raw.strip():
                continue
            try:
                values[field_name] = float(raw)
            except ValueError as e:
                raise ConfigError(f"{var} must be a number of seconds, got {raw!r}") from e
        return cls(**values).with_overrides(**overrides).validate()
