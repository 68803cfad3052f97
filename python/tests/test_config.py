"""
Tests for WatchOptions defaults, validation and environment overrides.
"""

import pytest

from swapwatch.config import (
    DEFAULT_INTERVAL,
    DEFAULT_SUBSCRIBE_BACKOFF,
    DEFAULT_SUBSCRIBE_TIMEOUT,
    WatchOptions,
)
from swapwatch.exceptions import ConfigError


def test_defaults():
    options = WatchOptions()

    assert options.interval == DEFAULT_INTERVAL == 10.0
    assert options.subscribe_timeout == DEFAULT_SUBSCRIBE_TIMEOUT == 10.0
    assert options.subscribe_backoff == DEFAULT_SUBSCRIBE_BACKOFF == 1.0
    assert options.on_change is None


def test_with_overrides_ignores_none():
    options = WatchOptions(interval=5.0)

    assert options.with_overrides(interval=None, on_change=None) is options
    assert options.with_overrides(interval=2.0).interval == 2.0


@pytest.mark.parametrize(
    "field",
    ["interval", "subscribe_timeout", "subscribe_backoff"],
)
@pytest.mark.parametrize("value", [0, -0.5, "10", True])
def test_validate_rejects_bad_durations(field, value):
    with pytest.raises(ConfigError, match=field):
        WatchOptions(**{field: value}).validate()


def test_from_env_reads_variables():
    env = {
        "SWAPWATCH_INTERVAL": "2.5",
        "SWAPWATCH_SUBSCRIBE_TIMEOUT": "30",
        "SWAPWATCH_SUBSCRIBE_BACKOFF": "0.25",
    }

    options = WatchOptions.from_env(env)

    assert options.interval == 2.5
    assert options.subscribe_timeout == 30.0
    assert options.subscribe_backoff == 0.25


def test_from_env_explicit_values_win():
    options = WatchOptions.from_env({"SWAPWATCH_INTERVAL": "2.5"}, interval=7.0)

    assert options.interval == 7.0


def test_from_env_blank_values_use_defaults():
    options = WatchOptions.from_env({"SWAPWATCH_INTERVAL": "  "})

    assert options.interval == DEFAULT_INTERVAL


def test_from_env_rejects_garbage():
    with pytest.raises(ConfigError, match="SWAPWATCH_INTERVAL"):
        WatchOptions.from_env({"SWAPWATCH_INTERVAL": "soon"})


def test_from_env_rejects_non_positive():
    with pytest.raises(ConfigError, match="subscribe_backoff"):
        WatchOptions.from_env({"SWAPWATCH_SUBSCRIBE_BACKOFF": "0"})


def test_from_env_uses_os_environ(monkeypatch):
    monkeypatch.setenv("SWAPWATCH_INTERVAL", "4")

    assert WatchOptions.from_env().interval == 4.0
