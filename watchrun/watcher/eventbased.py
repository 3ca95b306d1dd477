import itertools
import logging
import os
import queue
import threading

from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch  # noqa
from watchdog.events import FileSystemEventHandler
from watchdog.events import FileSystemEvent  # noqa
from watchdog.events import EVENT_TYPE_MODIFIED

from watchrun.utils import OSUtils
from watchrun.watcher.shared import Event, EventKind, NotificationBackend
from watchrun.watcher.shared import WATCH_MASK, removal_kind, wake_event

from typing import Callable, Dict, List, Optional, Set, Tuple  # noqa


LOG = logging.getLogger(__name__)


class WatchDogEventAdapter(FileSystemEventHandler):
    """Filters out watchdog directory events."""
    def __init__(self, handler):
        # type: (Callable[[FileSystemEvent], None]) -> None
        self._handler = handler

    def on_any_event(self, event):
        # type: (FileSystemEvent) -> None
        if event.is_directory:
            return
        self._handler(event)


class _Registration(object):
    def __init__(self, fd, path, keys, mask):
        # type: (int, str, List[str], EventKind) -> None
        self.fd = fd
        self.path = path
        self.keys = keys
        self.mask = mask


def _watch_key(path):
    # type: (str) -> Tuple[str, str]
    # Observers report events under the resolved directory on some
    # platforms, so the directory part is normalized the same way.
    parent, name = os.path.split(os.path.abspath(path))
    parent = os.path.realpath(parent)
    return parent, os.path.join(parent, name)


def _watch_keys(path):
    # type: (str) -> List[Tuple[str, str]]
    """Directory entries whose events concern the file ``path`` names.

    That is the entry for ``path`` itself and, when it goes through a
    symlink, the entry of the file the link resolves to.
    """
    keys = [_watch_key(path)]
    resolved = _watch_key(os.path.realpath(path))
    if resolved != keys[0]:
        keys.append(resolved)
    return keys


class WatchdogBackend(NotificationBackend):
    """Uses watchdog to receive kernel change notifications.

    Watchdog observes directories, so each registered file gets a
    non-recursive watch on its parent directory, shared between files in
    the same directory.  A path through a symlink also gets a watch on the
    directory holding the file the link points to.  Events are matched
    back to registrations by path and then checked against the pinned
    descriptor so a path that now names a new file is reported as
    replaced.
    """

    def __init__(self, osutils=None, observer=None):
        # type: (Optional[OSUtils], Optional[Observer]) -> None
        if osutils is None:
            osutils = OSUtils()
        if observer is None:
            observer = Observer()
        self._osutils = osutils
        self._observer = observer
        self._adapter = WatchDogEventAdapter(self._on_event)
        # SimpleQueue.put is reentrant, wake() runs from signal handlers.
        self._events = queue.SimpleQueue()  # type: queue.SimpleQueue[Event]
        self._lock = threading.Lock()
        self._registrations = {}  # type: Dict[int, _Registration]
        self._by_key = {}  # type: Dict[str, Set[int]]
        self._watches = {}  # type: Dict[str, Tuple[ObservedWatch, int]]
        self._handles = itertools.count(1)
        self._started = False

    def register(self, fd, path, mask=WATCH_MASK):
        # type: (int, str, EventKind) -> int
        watch_keys = _watch_keys(path)
        with self._lock:
            if not self._started:
                self._observer.start()
                self._started = True
            scheduled = []  # type: List[str]
            try:
                for parent, _ in watch_keys:
                    self._schedule(parent)
                    scheduled.append(parent)
            except Exception:
                for parent in scheduled:
                    self._unschedule(parent)
                raise
            handle = next(self._handles)
            keys = [key for _, key in watch_keys]
            self._registrations[handle] = _Registration(fd, path, keys, mask)
            for key in keys:
                self._by_key.setdefault(key, set()).add(handle)
        LOG.debug("Watching %s (handle %s)", path, handle)
        return handle

    def unregister(self, handle):
        # type: (int) -> None
        with self._lock:
            registration = self._registrations.pop(handle, None)
            if registration is None:
                return
            for key in registration.keys:
                handles = self._by_key[key]
                handles.discard(handle)
                if not handles:
                    del self._by_key[key]
                self._unschedule(os.path.dirname(key))

    def _schedule(self, parent):
        # type: (str) -> None
        if parent in self._watches:
            watch, count = self._watches[parent]
        else:
            watch = self._observer.schedule(
                self._adapter, parent, recursive=False)
            count = 0
        self._watches[parent] = (watch, count + 1)

    def _unschedule(self, parent):
        # type: (str) -> None
        watch, count = self._watches[parent]
        if count > 1:
            self._watches[parent] = (watch, count - 1)
            return
        del self._watches[parent]
        try:
            self._observer.unschedule(watch)
        except KeyError:
            # The emitter already dropped the watch, e.g. because the
            # directory itself was removed.
            pass

    def wait_for_batch(self):
        # type: () -> List[Event]
        batch = [self._events.get()]
        while True:
            try:
                batch.append(self._events.get_nowait())
            except queue.Empty:
                return batch

    def wake(self):
        # type: () -> None
        self._events.put(wake_event())

    def close(self):
        # type: () -> None
        with self._lock:
            started = self._started
            self._started = False
            self._registrations.clear()
            self._by_key.clear()
            self._watches.clear()
        if started:
            self._observer.stop()
            self._observer.join()

    def _on_event(self, event):
        # type: (FileSystemEvent) -> None
        paths = [event.src_path]
        dest_path = getattr(event, 'dest_path', '')
        if dest_path:
            paths.append(dest_path)
        with self._lock:
            handles = set()  # type: Set[int]
            for path in paths:
                handles.update(self._by_key.get(os.fsdecode(path), ()))
            for handle in handles:
                self._classify(handle, event.event_type)

    def _classify(self, handle, event_type):
        # type: (int, str) -> None
        registration = self._registrations[handle]
        kind = removal_kind(self._osutils, registration.fd, registration.path)
        if kind is None and event_type == EVENT_TYPE_MODIFIED:
            kind = EventKind.MODIFY
        if kind is None or not kind & registration.mask:
            return
        self._events.put(Event(handle, kind, registration.path))
