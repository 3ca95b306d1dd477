"""Watch targets and their registration with a notification backend."""
import enum
import errno
import logging

from watchrun.errors import CapacityExceededError
from watchrun.errors import NotFoundError
from watchrun.errors import PermissionDeniedError
from watchrun.errors import RegistrationError
from watchrun.errors import ReopenFailedError
from watchrun.errors import ResourceExhaustedError
from watchrun.utils import OSUtils
from watchrun.watcher.shared import NotificationBackend  # noqa
from watchrun.watcher.shared import WATCH_MASK

from typing import Dict, Hashable, Iterator, List, Optional  # noqa


LOG = logging.getLogger(__name__)

_ERRNO_TO_ERROR = {
    errno.ENOENT: NotFoundError,
    errno.ENOTDIR: NotFoundError,
    errno.EACCES: PermissionDeniedError,
    errno.EPERM: PermissionDeniedError,
    errno.EMFILE: ResourceExhaustedError,
    errno.ENFILE: ResourceExhaustedError,
    errno.ENOSPC: ResourceExhaustedError,
    errno.ENOMEM: ResourceExhaustedError,
}


class TargetState(enum.Enum):
    ACTIVE = 'active'
    AWAITING_REOPEN = 'awaiting-reopen'
    FAILED = 'failed'


class WatchTarget(object):
    def __init__(self, path, fd, handle):
        # type: (str, int, Hashable) -> None
        self._path = path
        self.fd = fd  # type: Optional[int]
        self.handle = handle  # type: Optional[Hashable]
        self.state = TargetState.ACTIVE

    @property
    def path(self):
        # type: () -> str
        return self._path

    @property
    def is_active(self):
        # type: () -> bool
        return self.state is TargetState.ACTIVE

    def __repr__(self):
        # type: () -> str
        return 'WatchTarget(path=%r, state=%s)' % (self._path, self.state.value)


class WatchSet(object):
    """Ordered, capacity bounded set of watch targets, one per path."""

    def __init__(self, max_targets):
        # type: (int) -> None
        self.max_targets = max_targets
        self._targets = []  # type: List[WatchTarget]
        self._paths = set()  # type: set
        self._by_handle = {}  # type: Dict[Hashable, WatchTarget]

    def __len__(self):
        # type: () -> int
        return len(self._targets)

    def __iter__(self):
        # type: () -> Iterator[WatchTarget]
        return iter(self._targets)

    def __contains__(self, path):
        # type: (str) -> bool
        return path in self._paths

    def add(self, target):
        # type: (WatchTarget) -> None
        if target.path in self._paths:
            raise ValueError('Already watching %r' % target.path)
        if len(self._targets) >= self.max_targets:
            raise CapacityExceededError(target.path, self.max_targets)
        self._targets.append(target)
        self._paths.add(target.path)
        self._by_handle[target.handle] = target

    def get_by_handle(self, handle):
        # type: (Hashable) -> Optional[WatchTarget]
        return self._by_handle.get(handle)

    def rebind(self, target, old_handle):
        # type: (WatchTarget, Optional[Hashable]) -> None
        self._by_handle.pop(old_handle, None)
        if target.handle is not None:
            self._by_handle[target.handle] = target

    def active(self):
        # type: () -> List[WatchTarget]
        return [t for t in self._targets if t.is_active]

    def failed(self):
        # type: () -> List[WatchTarget]
        return [t for t in self._targets
                if t.state is TargetState.FAILED]


def _registration_error(path, error):
    # type: (str, OSError) -> RegistrationError
    cls = _ERRNO_TO_ERROR.get(error.errno, RegistrationError)
    return cls(path, error)


def _subscribe(path, backend, osutils):
    # type: (str, NotificationBackend, OSUtils) -> WatchTarget
    fd = osutils.open_for_read(path)
    try:
        handle = backend.register(fd, path, WATCH_MASK)
    except Exception:
        osutils.close(fd)
        raise
    return WatchTarget(path, fd, handle)


def register(path, backend, osutils=None):
    # type: (str, NotificationBackend, Optional[OSUtils]) -> WatchTarget
    """Open ``path`` and subscribe the file it names with ``backend``."""
    if osutils is None:
        osutils = OSUtils()
    try:
        return _subscribe(path, backend, osutils)
    except OSError as e:
        raise _registration_error(path, e)


def release(target, backend, osutils=None):
    # type: (WatchTarget, NotificationBackend, Optional[OSUtils]) -> None
    """Drop the target's subscription and close its descriptor."""
    if osutils is None:
        osutils = OSUtils()
    if target.handle is not None:
        backend.unregister(target.handle)
        target.handle = None
    if target.fd is not None:
        fd, target.fd = target.fd, None
        try:
            osutils.close(fd)
        except OSError as e:
            LOG.debug("Error closing descriptor for %s: %s", target.path, e)


def build_watch_set(paths, backend, max_targets, osutils=None):
    # type: (List[str], NotificationBackend, int, Optional[OSUtils]) -> WatchSet
    """Register every path, or none of them.

    If any path fails to register, the targets registered so far are
    released before the error propagates.
    """
    if osutils is None:
        osutils = OSUtils()
    watch_set = WatchSet(max_targets)
    try:
        for path in paths:
            if path in watch_set:
                LOG.debug("Ignoring duplicate path %r", path)
                continue
            if len(watch_set) >= max_targets:
                raise CapacityExceededError(path, max_targets)
            watch_set.add(register(path, backend, osutils))
    except Exception:
        for target in watch_set:
            release(target, backend, osutils)
        raise
    return watch_set


def reopen(target, backend, watch_set, osutils=None):
    # type: (WatchTarget, NotificationBackend, WatchSet, Optional[OSUtils]) -> None
    """Bind ``target`` to whatever file now occupies its path.

    The new subscription is made before the old one is dropped, so a
    directory watch shared by both is never torn down in between.  Raises
    ``ReopenFailedError`` and leaves the target FAILED if the path cannot
    be opened or subscribed.
    """
    if osutils is None:
        osutils = OSUtils()
    target.state = TargetState.AWAITING_REOPEN
    old_handle = target.handle
    old = WatchTarget(target.path, target.fd, old_handle)
    try:
        fresh = _subscribe(target.path, backend, osutils)
    except OSError as e:
        release(old, backend, osutils)
        target.fd = target.handle = None
        target.state = TargetState.FAILED
        watch_set.rebind(target, old_handle)
        raise ReopenFailedError(target.path, e)
    release(old, backend, osutils)
    target.fd = fresh.fd
    target.handle = fresh.handle
    target.state = TargetState.ACTIVE
    watch_set.rebind(target, old_handle)
