import collections
import itertools

import pytest

from watchrun.invoker import Invoker
from watchrun.watcher.shared import NotificationBackend, wake_event


class FakeBackend(NotificationBackend):
    """Backend that hands out scripted batches of events."""

    def __init__(self):
        self.registered = {}
        self.unregistered = []
        self.wait_calls = 0
        self.closed = False
        self._batches = collections.deque()
        self._handles = itertools.count(1)

    def register(self, fd, path, mask=None):
        handle = next(self._handles)
        self.registered[handle] = (fd, path)
        return handle

    def unregister(self, handle):
        self.registered.pop(handle, None)
        self.unregistered.append(handle)

    def queue_batch(self, *events):
        self._batches.append(list(events))

    def wait_for_batch(self):
        self.wait_calls += 1
        if not self._batches:
            raise AssertionError('wait_for_batch() with nothing queued')
        return self._batches.popleft()

    def wake(self):
        self._batches.append([wake_event()])

    def close(self):
        self.closed = True


class RecordingInvoker(Invoker):
    """Records commands instead of running them."""

    def __init__(self, side_effect=None):
        self.calls = []
        self.stopped = False
        self.cancelled = 0
        self._side_effect = side_effect

    def invoke(self, command):
        self.calls.append(command)
        if self._side_effect is not None:
            return self._side_effect(command)
        return 0

    def cancel(self):
        self.cancelled += 1

    def stop(self):
        self.stopped = True


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def invoker():
    return RecordingInvoker()
