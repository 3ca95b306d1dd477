import enum

from typing import Any, Hashable, List, Optional  # noqa


class EventKind(enum.Flag):
    MODIFY = enum.auto()
    DELETE = enum.auto()
    RENAME = enum.auto()
    WAKE = enum.auto()


WATCH_MASK = EventKind.MODIFY | EventKind.DELETE | EventKind.RENAME
REMOVED = EventKind.DELETE | EventKind.RENAME


class Event(object):
    def __init__(self, handle, kind, path=None):
        # type: (Optional[Hashable], EventKind, Optional[str]) -> None
        self.handle = handle
        self.kind = kind
        self.path = path

    def __eq__(self, other):
        # type: (Any) -> bool
        return isinstance(other, Event) and (
            (self.handle, self.kind, self.path) ==
            (other.handle, other.kind, other.path))

    def __ne__(self, other):
        # type: (Any) -> bool
        return not self == other

    def __repr__(self):
        # type: () -> str
        return 'Event(handle=%r, kind=%s, path=%r)' % (
            self.handle, self.kind, self.path)


def wake_event():
    # type: () -> Event
    return Event(None, EventKind.WAKE)


class NotificationBackend(object):
    """Change notification facility the dispatch loop waits on.

    A backend subscribes open file descriptors, tracking the file object
    each one pins rather than the path it was opened from, and hands out
    queued events in batches.
    """

    def register(self, fd, path, mask=WATCH_MASK):
        # type: (int, str, EventKind) -> Hashable
        raise NotImplementedError('register')

    def unregister(self, handle):
        # type: (Hashable) -> None
        raise NotImplementedError('unregister')

    def wait_for_batch(self):
        # type: () -> List[Event]
        """Block until at least one event is queued and return all of them.

        A ``WAKE`` event is returned after ``wake()`` has been called.
        """
        raise NotImplementedError('wait_for_batch')

    def wake(self):
        # type: () -> None
        raise NotImplementedError('wake')

    def close(self):
        # type: () -> None
        pass


def removal_kind(osutils, fd, path):
    # type: (Any, int, str) -> Optional[EventKind]
    """Classify what happened to the object ``fd`` was opened from.

    Returns ``DELETE`` if ``path`` is gone, ``RENAME`` if it now names a
    different file, and None if it still names the same one.
    """
    try:
        if osutils.same_object(fd, path):
            return None
    except OSError:
        return EventKind.DELETE
    return EventKind.RENAME
