import collections
import logging
import subprocess
import time

from watchrun.errors import SpawnFailedError
from watchrun.utils import OSUtils

from typing import IO, List, Optional  # noqa


LOG = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 5.0


class CommandSpec(collections.namedtuple('CommandSpec', ['program', 'args'])):
    __slots__ = ()

    def __new__(cls, program, args=()):
        # type: (str, List[str]) -> CommandSpec
        return super(CommandSpec, cls).__new__(cls, program, tuple(args))

    @property
    def argv(self):
        # type: () -> List[str]
        return [self.program] + list(self.args)


class Invoker(object):
    def invoke(self, command):
        # type: (CommandSpec) -> Optional[int]
        raise NotImplementedError('invoke')

    def cancel(self):
        # type: () -> None
        """Make a running ``invoke`` return early.  Must be signal safe."""
        pass

    def stop(self):
        # type: () -> None
        pass


def _spawn(osutils, command, stdin):
    # type: (OSUtils, CommandSpec, Optional[IO]) -> subprocess.Popen
    argv = command.argv
    LOG.debug("Running %s", argv)
    try:
        return osutils.popen(argv, stdin=stdin)
    except OSError as e:
        raise SpawnFailedError(argv, e)


class BlockingInvoker(Invoker):
    """Runs the command and waits for it to finish.

    The child shares our stdout and stderr.  ``stdin`` can be given to
    hand the child something other than our own standard input, which is
    usually the exhausted list of paths.

    ``cancel()`` sends SIGTERM to the running child; a second ``cancel()``
    while the same child is still running kills it.
    """

    def __init__(self, stdin=None, osutils=None):
        # type: (Optional[IO], Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._stdin = stdin
        self._osutils = osutils
        self._process = None  # type: Optional[subprocess.Popen]
        self._terminated = False

    def invoke(self, command):
        # type: (CommandSpec) -> Optional[int]
        start = time.time()
        self._terminated = False
        self._process = _spawn(self._osutils, command, self._stdin)
        try:
            rc = self._process.wait()
        finally:
            self._process = None
        LOG.debug("%s exited with status %s after %.2fs",
                  command.program, rc, time.time() - start)
        if rc != 0:
            LOG.info("%s exited with status %s", command.program, rc)
        return rc

    def cancel(self):
        # type: () -> None
        process = self._process
        if process is None or process.returncode is not None:
            return
        if self._terminated:
            process.kill()
        else:
            self._terminated = True
            process.terminate()


class RestartingInvoker(Invoker):
    """Runs the command in the background, restarting it on each change.

    A still running child from the previous invocation is terminated and
    reaped before the next one starts, so at most one child is alive.
    """

    def __init__(self, stdin=None, grace_period=DEFAULT_GRACE_PERIOD,
                 osutils=None):
        # type: (Optional[IO], float, Optional[OSUtils]) -> None
        if osutils is None:
            osutils = OSUtils()
        self._stdin = stdin
        self._grace_period = grace_period
        self._osutils = osutils
        self._process = None  # type: Optional[subprocess.Popen]

    @property
    def process(self):
        # type: () -> Optional[subprocess.Popen]
        return self._process

    def invoke(self, command):
        # type: (CommandSpec) -> Optional[int]
        self._terminate()
        self._process = _spawn(self._osutils, command, self._stdin)
        return None

    def stop(self):
        # type: () -> None
        self._terminate()

    def _terminate(self):
        # type: () -> None
        process, self._process = self._process, None
        if process is None:
            return
        if process.poll() is not None:
            LOG.debug("Previous child exited with status %s",
                      process.returncode)
            return
        LOG.debug("Terminating child %s", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self._grace_period)
        except subprocess.TimeoutExpired:
            LOG.warning("Child %s did not exit after %ss, killing it",
                        process.pid, self._grace_period)
            process.kill()
            process.wait()
