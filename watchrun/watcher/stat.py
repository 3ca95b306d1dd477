import itertools
import logging
import queue

from watchrun.utils import OSUtils
from watchrun.watcher.shared import Event, EventKind, NotificationBackend
from watchrun.watcher.shared import WATCH_MASK, removal_kind, wake_event

from typing import Dict, List, Optional, Tuple  # noqa


LOG = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.25


class StatFileObserver(object):
    def __init__(self, fd, path, mask=WATCH_MASK, osutils=None):
        # type: (int, str, EventKind, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._fd = fd
        self._path = path
        self._mask = mask
        self._osutils = osutils
        self._removed = False
        self._signature = self._current_signature()

    def check(self):
        # type: () -> Optional[EventKind]
        """Return what changed since the last check, if anything.

        A removal is only reported once; afterwards the observer stays
        quiet until it is unregistered.
        """
        if self._removed:
            return None
        kind = removal_kind(self._osutils, self._fd, self._path)
        if kind is not None:
            self._removed = True
        else:
            signature = self._current_signature()
            if signature != self._signature:
                self._signature = signature
                kind = EventKind.MODIFY
        if kind is not None and kind & self._mask:
            return kind
        return None

    def _current_signature(self):
        # type: () -> Tuple[int, int, int]
        st = self._osutils.fstat(self._fd)
        return st.st_mtime_ns, st.st_size, st.st_nlink


class StatBackend(NotificationBackend):
    """Polls descriptors with fstat/stat to emulate change notifications.

    This is a fallback for platforms where kernel notifications are not
    usable.  Content changes are detected from the modification time,
    size and link count of the open descriptor, removal and replacement
    from comparing it with what the path currently names.
    """

    def __init__(self, poll_interval=DEFAULT_POLL_INTERVAL, osutils=None):
        # type: (float, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._poll_interval = poll_interval
        self._osutils = osutils
        self._observers = {}  # type: Dict[int, StatFileObserver]
        self._paths = {}  # type: Dict[int, str]
        self._handles = itertools.count(1)
        # Wake-ups go through a SimpleQueue, its put is safe to call from
        # a signal handler that interrupted a get on the same thread.
        self._wakeups = queue.SimpleQueue()  # type: queue.SimpleQueue[None]

    def register(self, fd, path, mask=WATCH_MASK):
        # type: (int, str, EventKind) -> int
        observer = StatFileObserver(fd, path, mask, self._osutils)
        handle = next(self._handles)
        self._observers[handle] = observer
        self._paths[handle] = path
        LOG.debug("Polling %s (handle %s)", path, handle)
        return handle

    def unregister(self, handle):
        # type: (int) -> None
        self._observers.pop(handle, None)
        self._paths.pop(handle, None)

    def wait_for_batch(self):
        # type: () -> List[Event]
        woken = False
        while True:
            batch = self.check()
            woken = self._drain_wakeups() or woken
            if woken:
                batch.append(wake_event())
            if batch:
                return batch
            try:
                self._wakeups.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            woken = True

    def _drain_wakeups(self):
        # type: () -> bool
        drained = False
        while True:
            try:
                self._wakeups.get_nowait()
            except queue.Empty:
                return drained
            drained = True

    def check(self):
        # type: () -> List[Event]
        events = []
        for handle, observer in list(self._observers.items()):
            kind = observer.check()
            if kind is not None:
                events.append(Event(handle, kind, self._paths[handle]))
        return events

    def wake(self):
        # type: () -> None
        self._wakeups.put(None)
