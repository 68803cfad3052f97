"""
Tests for the swapwatch command-line entry point.
"""

import logging

import pytest

from swapwatch import cli


@pytest.fixture(autouse=True)
def _restore_logger(clean_swapwatch_logger):
    yield


def test_parser_defaults():
    args = cli.build_parser().parse_args(["/etc/config/app.yaml"])

    assert args.path == "/etc/config/app.yaml"
    assert args.interval is None
    assert args.log_dir is None
    assert args.verbose is False


def test_parser_options(tmp_path):
    args = cli.build_parser().parse_args(
        ["app.yaml", "--interval", "2.5", "--log-dir", str(tmp_path), "-v"]
    )

    assert args.interval == 2.5
    assert args.log_dir == tmp_path
    assert args.verbose is True


def test_main_missing_file_returns_error(tmp_path, caplog):
    with caplog.at_level(logging.ERROR, logger="swapwatch"):
        code = cli.main([str(tmp_path / "missing.yaml"), "--log-dir", str(tmp_path / "logs")])

    assert code == 1
    assert any("Failed to read initial file" in r.getMessage() for r in caplog.records)


def test_main_invalid_interval_returns_error(watched_file, tmp_path):
    code = cli.main([str(watched_file), "--interval", "0", "--log-dir", str(tmp_path / "logs")])

    assert code == 1


def test_main_runs_watcher(watched_file, tmp_path, monkeypatch):
    seen = {}

    async def fake_run(watcher):
        seen["watcher"] = watcher

    monkeypatch.setattr(cli, "_run", fake_run)

    code = cli.main([str(watched_file), "--interval", "3", "--log-dir", str(tmp_path / "logs")])

    assert code == 0
    watcher = seen["watcher"]
    assert watcher.get() == b"v1"
    assert watcher.interval == 3.0
    assert watcher.options.on_change is cli._log_change
    assert list((tmp_path / "logs").glob("swapwatch-*.log"))


def test_main_reports_subscription_failure(watched_file, tmp_path, subscription_fails, monkeypatch):
    monkeypatch.setenv("SWAPWATCH_SUBSCRIBE_TIMEOUT", "0.1")
    monkeypatch.setenv("SWAPWATCH_SUBSCRIBE_BACKOFF", "0.05")

    code = cli.main([str(watched_file), "--log-dir", str(tmp_path / "logs")])

    assert code == 1
