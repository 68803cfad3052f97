"""
Tests for watchdog event classification and the watchdog-backed Subscription.
"""

import asyncio

import pytest
from watchdog.events import (
    DirDeletedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
)

from swapwatch.exceptions import SubscriptionError
from swapwatch.watcher import Subscription, SubscriptionEventHandler, WatchEvent, WatchEventKind, classify
from swapwatch.watcher.handlers import path_identity
from swapwatch.watcher.subscription import WATCHED_EVENTS
from tests.fixtures.watcher import linux_only, wait_until

WATCHED = "/etc/config/ca.crt"


# ============================================================================
# CLASSIFICATION
# ============================================================================


@pytest.mark.parametrize(
    "event, expected",
    [
        (FileModifiedEvent(WATCHED), WatchEventKind.WRITE),
        (FileCreatedEvent(WATCHED), WatchEventKind.CREATE),
        (FileDeletedEvent(WATCHED), WatchEventKind.REMOVE),
        (DirDeletedEvent(WATCHED), WatchEventKind.REMOVE),
        (FileMovedEvent(WATCHED, "/etc/config/ca.crt.bak"), WatchEventKind.REMOVE),
        (FileMovedEvent("/etc/config/new.crt", WATCHED), WatchEventKind.OTHER),
        (FileOpenedEvent(WATCHED), WatchEventKind.OTHER),
        (FileClosedEvent(WATCHED), WatchEventKind.OTHER),
    ],
)
def test_classify(event, expected):
    assert classify(event, WATCHED) == expected


def test_classify_bytes_paths():
    """Test: watchdog may report bytes paths; they are decoded."""
    event = FileMovedEvent(WATCHED.encode(), b"/tmp/elsewhere")

    assert classify(event, WATCHED) == WatchEventKind.REMOVE


def test_watched_events_include_delete_self():
    """Test: IN_DELETE_SELF reaches the handler (watchdog reports it as a dir event)."""
    assert DirDeletedEvent in WATCHED_EVENTS
    assert FileDeletedEvent in WATCHED_EVENTS


def test_classify_modified_on_same_inode_is_write(watched_file):
    """Test: Writes to the inode the watch is bound to stay WRITE."""
    path = str(watched_file)
    bound = path_identity(path)

    assert classify(FileModifiedEvent(path), path, bound) == WatchEventKind.WRITE


def test_classify_modified_after_swap_is_chmod(swap_mount):
    """Test: The link-count change on a swapped-out target re-arms the watch."""
    path = str(swap_mount.link)
    bound = path_identity(path)

    swap_mount.swap(b"cert v2", remove_old=False)

    assert path_identity(path) != bound
    assert classify(FileModifiedEvent(path), path, bound) == WatchEventKind.CHMOD


def test_classify_modified_when_path_unresolvable_is_chmod(watched_file):
    path = str(watched_file)
    bound = path_identity(path)
    watched_file.unlink()

    assert classify(FileModifiedEvent(path), path, bound) == WatchEventKind.CHMOD


def test_handler_uses_bound_identity(swap_mount):
    path = str(swap_mount.link)
    bound = path_identity(path)
    published = []
    handler = SubscriptionEventHandler(path, published.append, lambda: bound)

    swap_mount.swap(b"cert v2")
    handler.dispatch(FileModifiedEvent(path))

    assert published == [WatchEvent(kind=WatchEventKind.CHMOD, path=path)]


def test_handler_publishes_classified_events():
    published = []
    handler = SubscriptionEventHandler(WATCHED, published.append)

    handler.dispatch(FileDeletedEvent(WATCHED))

    assert published == [WatchEvent(kind=WatchEventKind.REMOVE, path=WATCHED)]


def test_handler_publishes_errors_instead_of_raising():
    published = []
    handler = SubscriptionEventHandler(WATCHED, published.append)

    handler.dispatch(object())

    assert len(published) == 1
    assert isinstance(published[0], AttributeError)


# ============================================================================
# SUBSCRIPTION
# ============================================================================


@pytest.mark.asyncio
async def test_closed_subscription_cannot_subscribe(watched_file):
    subscription = Subscription(str(watched_file))
    subscription.open()
    subscription.close()

    with pytest.raises(SubscriptionError, match="closed"):
        subscription.subscribe()
    with pytest.raises(SubscriptionError, match="closed"):
        subscription.open()


@pytest.mark.asyncio
async def test_subscribe_requires_open(watched_file):
    subscription = Subscription(str(watched_file))

    with pytest.raises(SubscriptionError, match="not open"):
        subscription.subscribe()

    subscription.close()


@pytest.mark.asyncio
async def test_close_ends_event_stream(watched_file):
    subscription = Subscription(str(watched_file))
    subscription.open()
    subscription.subscribe()
    assert subscription.is_watching

    subscription.close()

    items = [item async for item in subscription]
    assert items == []
    assert not subscription.is_watching


@pytest.mark.asyncio
async def test_close_twice_is_safe(watched_file):
    subscription = Subscription(str(watched_file))
    subscription.open()

    subscription.close()
    subscription.close()


@linux_only
@pytest.mark.asyncio
async def test_subscription_delivers_write_events(watched_file):
    subscription = Subscription(str(watched_file))
    subscription.open()
    try:
        subscription.subscribe()
        watched_file.write_bytes(b"v2")

        event = await asyncio.wait_for(subscription.__anext__(), timeout=3)

        assert event.kind == WatchEventKind.WRITE
        assert event.path == str(watched_file)
    finally:
        subscription.close()


@linux_only
@pytest.mark.asyncio
async def test_subscription_reports_removal_of_target(swap_mount):
    """Test: Deleting the swapped-out target removes the watched inode."""
    subscription = Subscription(str(swap_mount.link))
    subscription.open()
    try:
        subscription.subscribe()
        swap_mount.swap(b"cert v2")

        kinds = []

        async def collect():
            async for item in subscription:
                kinds.append(item.kind)
                if item.kind == WatchEventKind.REMOVE:
                    return

        await asyncio.wait_for(collect(), timeout=3)

        assert kinds[-1] == WatchEventKind.REMOVE
        # Re-subscribing binds to the new target
        subscription.subscribe()
        assert subscription.is_watching
    finally:
        subscription.close()


@linux_only
@pytest.mark.asyncio
async def test_subscribe_missing_path_raises(tmp_path):
    subscription = Subscription(str(tmp_path / "missing"))
    subscription.open()
    try:
        with pytest.raises(OSError):
            subscription.subscribe()
        assert not subscription.is_watching
    finally:
        subscription.close()
