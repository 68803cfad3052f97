"""
Logging configuration for swapwatch.

Library modules only create module-level loggers; handlers are attached here,
and only by the command-line entry point (or an application that wants the
same layout).

Each watched file gets its own daily log: logs/swapwatch-<name>-YYYY-MM-DD.log,
so several watchers started side by side (one per mounted Secret, say) do not
interleave. Every line carries the watched path. watchdog's own loggers are
routed into the same handlers at a separate, quieter level: its inotify
buffer logs every raw event at debug.
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOGGER_NAME = "swapwatch"

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(watched_path)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)


class FlushingHandler(logging.handlers.TimedRotatingFileHandler):
    """Handler that flushes after every emit so `tail -f` sees reloads live."""

    def emit(self, record):
        super().emit(record)
        self.flush()


class WatchedPathFilter(logging.Filter):
    """Stamp every record with the path this process is watching."""

    def __init__(self, watched_path: str) -> None:
        super().__init__()
        self.watched_path = watched_path

    def filter(self, record: logging.LogRecord) -> bool:
        record.watched_path = self.watched_path
        return True


def log_file_name(watched_path: Optional[str] = None, day: Optional[datetime] = None) -> str:
    """swapwatch-<file name>-YYYY-MM-DD.log, or swapwatch-YYYY-MM-DD.log without a path."""
    stamp = (day or datetime.now()).strftime("%Y-%m-%d")
    if not watched_path:
        return f"swapwatch-{stamp}.log"
    # A leading dot would hide the log file
    name = Path(watched_path).name.lstrip(".") or "root"
    return f"swapwatch-{name}-{stamp}.log"


def _owned_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if getattr(h, "_swapwatch", False)]


def setup_logging(
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
    backup_count: int = 30,  # Keep 30 days of logs
    console: bool = False,
    watched_path: Optional[str] = None,
    watchdog_level: int = logging.WARNING,
) -> logging.Logger:
    """
    Set up logging for a swapwatch process with daily rotation.

    Safe to call more than once: handlers that already exist are not added
    again, only the console handler is added if it was missing.

    Args:
        log_dir: Directory for log files (default: ./logs)
        level: Level for swapwatch's own loggers (default: INFO)
        backup_count: Number of daily backup files to keep (default: 30 days)
        console: If True, also log to stderr
        watched_path: File being watched; names the log file and is stamped
            on every line
        watchdog_level: Level for the watchdog library's loggers

    Returns:
        Configured "swapwatch" logger
    """
    if log_dir is None:
        log_dir = Path.cwd() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    watchdog_logger = logging.getLogger("watchdog")
    watchdog_logger.setLevel(watchdog_level)

    owned = _owned_handlers(logger)
    has_file_handler = any(isinstance(h, FlushingHandler) for h in owned)
    has_console_handler = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in owned
    )

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    path_filter = WatchedPathFilter(watched_path or "-")

    def attach(handler: logging.Handler) -> None:
        handler._swapwatch = True
        handler.setFormatter(formatter)
        handler.addFilter(path_filter)
        logger.addHandler(handler)
        watchdog_logger.addHandler(handler)

    if not has_file_handler:
        log_file = log_dir / log_file_name(watched_path)
        attach(
            FlushingHandler(
                log_file,
                when="midnight",
                interval=1,
                backupCount=backup_count,
                encoding="utf-8",
            )
        )

        logger.info("=" * 60)
        logger.info(f"swapwatch - watching {watched_path or '(no path)'}")
        logger.info(f"Log file: {log_file}")
        logger.info(
            f"Log level: {logging.getLevelName(level)} "
            f"(watchdog: {logging.getLevelName(watchdog_level)})"
        )
        logger.info(f"Rotation: Daily at midnight, keeping {backup_count} days")
        logger.info("=" * 60)

    if console and not has_console_handler:
        attach(logging.StreamHandler(sys.stderr))

    return logger
