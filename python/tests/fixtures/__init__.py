"""
Pytest fixtures for swapwatch tests.

Fixtures are organized by test category:
- watcher.py: FileWatcher fixtures (watched files, symlink-swap mounts, fake subscriptions)
"""
