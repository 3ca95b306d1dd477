"""The dispatch loop: wait for changes, reacquire replaced files, invoke.

Each wake of the backend hands over every event queued at that moment.
That batch is processed as one dispatch cycle and results in at most one
invocation of the command, which is how bursts of writes get debounced.
While the command runs the loop is not waiting, so whatever changes in
the meantime is queued by the backend and forms the next batch.
"""
import enum
import logging

from watchrun.errors import AllTargetsLostError
from watchrun.errors import ReopenFailedError
from watchrun.errors import SpawnFailedError
from watchrun.invoker import CommandSpec, Invoker  # noqa
from watchrun.targets import WatchSet, reopen, release  # noqa
from watchrun.utils import OSUtils
from watchrun.watcher.shared import Event, EventKind  # noqa
from watchrun.watcher.shared import NotificationBackend, REMOVED  # noqa

from typing import List, Optional  # noqa


LOG = logging.getLogger(__name__)


class LoopState(enum.Enum):
    WAITING = 'waiting'
    DISPATCHING = 'dispatching'


class DispatchLoop(object):
    def __init__(self, watch_set, backend, invoker, command, osutils=None):
        # type: (WatchSet, NotificationBackend, Invoker, CommandSpec, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._watch_set = watch_set
        self._backend = backend
        self._invoker = invoker
        self._command = command
        self._osutils = osutils
        self._stop_requested = False
        self.state = LoopState.WAITING
        self.cycles = 0

    def run(self, max_cycles=None):
        # type: (Optional[int]) -> None
        """Dispatch batches of events until stopped.

        With ``max_cycles`` the loop returns after that many dispatch
        cycles instead.  Raises ``AllTargetsLostError`` once no target is
        left to watch.
        """
        completed = 0
        while not self._stop_requested:
            if max_cycles is not None and completed >= max_cycles:
                return
            self.state = LoopState.WAITING
            events = self._backend.wait_for_batch()
            if self._stop_requested:
                break
            if not any(e.kind is not EventKind.WAKE for e in events):
                continue
            self.state = LoopState.DISPATCHING
            self._dispatch(events)
            completed += 1
            self.cycles += 1
        self.state = LoopState.WAITING
        LOG.debug("Dispatch loop stopped after %s cycles", self.cycles)

    def stop(self):
        # type: () -> None
        """Ask a running loop to return.  Safe to call from a signal handler."""
        self._stop_requested = True
        self._backend.wake()
        self._invoker.cancel()

    def shutdown(self):
        # type: () -> None
        self._invoker.stop()
        for target in self._watch_set:
            release(target, self._backend, self._osutils)
        self._backend.close()

    def _dispatch(self, events):
        # type: (List[Event]) -> None
        should_invoke = False
        for event in events:
            if event.kind is EventKind.WAKE:
                continue
            target = self._watch_set.get_by_handle(event.handle)
            if target is None or not target.is_active:
                continue
            if event.kind & EventKind.MODIFY:
                LOG.debug("%s modified", target.path)
                should_invoke = True
            if event.kind & REMOVED:
                LOG.debug("%s removed or replaced (%s), reopening",
                          target.path, event.kind)
                try:
                    reopen(target, self._backend, self._watch_set,
                           self._osutils)
                except ReopenFailedError as e:
                    LOG.warning("%s", e)
                    continue
                should_invoke = True
        if not self._watch_set.active():
            error = AllTargetsLostError(
                [t.path for t in self._watch_set.failed()])
            LOG.error("%s", error)
            raise error
        if should_invoke and not self._stop_requested:
            self._invoke()

    def _invoke(self):
        # type: () -> None
        try:
            self._invoker.invoke(self._command)
        except SpawnFailedError as e:
            LOG.error("%s", e)
