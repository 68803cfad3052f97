"""
Pytest configuration and fixtures for swapwatch tests.

Specialized fixtures are organized in the fixtures/ directory:
- fixtures.watcher: FileWatcher fixtures
"""

import logging

import pytest

# Load fixture modules
pytest_plugins = [
    "tests.fixtures.watcher",
]


@pytest.fixture
def clean_swapwatch_logger():
    """Detach handlers added by setup_logging() so tests don't leak them."""
    loggers = [logging.getLogger("swapwatch"), logging.getLogger("watchdog")]
    saved = [(lg, lg.level, list(lg.handlers)) for lg in loggers]
    yield loggers[0]
    for logger, level, handlers in saved:
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
