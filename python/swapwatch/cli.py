"""
Command-line entry point: watch one file and log every content change.

Usage:
    swapwatch /var/run/secrets/kubernetes.io/serviceaccount/ca.crt --interval 5

Or via environment variables:
    SWAPWATCH_INTERVAL=5 swapwatch /etc/config/settings.yaml
"""

import argparse
import asyncio
import contextlib
import logging
import signal
from pathlib import Path
from typing import Optional, Sequence

from swapwatch.config import WatchOptions
from swapwatch.exceptions import SwapWatchError
from swapwatch.logging_config import setup_logging
from swapwatch.watcher import FileWatcher

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="swapwatch",
        description="Watch a file (including Kubernetes ConfigMap/Secret mounts) and log content changes",
    )
    parser.add_argument("path", help="File to watch")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Polling interval in seconds (default: 10, or SWAPWATCH_INTERVAL env var)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: ./logs)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def _log_change(content: bytes) -> None:
    logger.info(f"File reloaded, {len(content)} bytes")


async def _run(watcher: FileWatcher) -> None:
    loop = asyncio.get_running_loop()
    cancel = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows; KeyboardInterrupt still ends the run there
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, cancel.set)
    await watcher.start(cancel)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        log_dir=args.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
        console=True,
        watched_path=args.path,
    )

    try:
        options = WatchOptions.from_env(interval=args.interval, on_change=_log_change)
        watcher = FileWatcher(args.path, options)
    except SwapWatchError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Loaded {watcher.path}, {len(watcher.get())} bytes")

    try:
        asyncio.run(_run(watcher))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    except SwapWatchError as e:
        logger.error(str(e))
        return 1
    return 0
