"""Change notification backends for the dispatch loop.

The dispatch loop only needs a narrow interface, ``NotificationBackend``:
subscribe an open descriptor, block for the next batch of events, and be
woken up from a signal handler.  Two implementations are provided.
``WatchdogBackend`` uses watchdog, which wraps the kernel facility of
each platform (inotify, kqueue, FSEvents, ReadDirectoryChangesW).
``StatBackend`` simply polls the open descriptors with fstat and compares
them with what their paths currently name, for platforms or filesystems
(network mounts, some containers) where kernel notifications are missing
or unreliable.
"""
from watchrun.watcher.shared import NotificationBackend  # noqa

from typing import Optional  # noqa


BACKENDS = ('watchdog', 'stat')


def create_backend(name, poll_interval=None):
    # type: (str, Optional[float]) -> NotificationBackend
    if name == 'watchdog':
        from watchrun.watcher.eventbased import WatchdogBackend
        return WatchdogBackend()
    elif name == 'stat':
        from watchrun.watcher.stat import StatBackend, DEFAULT_POLL_INTERVAL
        if poll_interval is None:
            poll_interval = DEFAULT_POLL_INTERVAL
        return StatBackend(poll_interval=poll_interval)
    raise ValueError('Unknown backend %r, expected one of: %s'
                     % (name, ', '.join(BACKENDS)))
