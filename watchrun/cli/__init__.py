"""Command line entry point.

Reads the paths to watch from standard input, one per line, and runs
PROGRAM with ARGS whenever one of them changes::

    ls *.py | watchrun pytest -x
"""
import argparse
import logging
import signal
import sys

from watchrun import __version__
from watchrun.config import Config
from watchrun.errors import RegistrationError, WatchRunError
from watchrun.errors import CapacityExceededError, StartupInterruptedError
from watchrun.invoker import BlockingInvoker, CommandSpec, RestartingInvoker
from watchrun.invoker import Invoker  # noqa
from watchrun.logs import setup_logging
from watchrun.loop import DispatchLoop
from watchrun.parser import read_paths
from watchrun.targets import WatchSet, build_watch_set, release  # noqa
from watchrun.utils import OSUtils
from watchrun.watcher import BACKENDS, NotificationBackend, create_backend  # noqa

from typing import IO, Any, List, Optional  # noqa


LOG = logging.getLogger(__name__)

STOP_SIGNALS = ('SIGINT', 'SIGTERM', 'SIGHUP')


def create_parser():
    # type: () -> argparse.ArgumentParser
    parser = argparse.ArgumentParser(
        prog='watchrun',
        description='Run a command when any of the files listed on '
                    'standard input changes.')
    parser.add_argument('-r', '--restart', action='store_true', default=None,
                        help='terminate the command if it is still running '
                             'and start it again on each change')
    parser.add_argument('-b', '--backend', choices=BACKENDS,
                        help='change notification backend (default: watchdog)')
    parser.add_argument('-n', '--max-files', type=int,
                        help='maximum number of files to watch')
    parser.add_argument('--poll-interval', type=float,
                        help='seconds between checks with the stat backend')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-v', '--verbose', action='store_true')
    group.add_argument('-q', '--quiet', action='store_true')
    parser.add_argument('--version', action='version',
                        version='%(prog)s ' + __version__)
    parser.add_argument('program')
    parser.add_argument('args', nargs=argparse.REMAINDER)
    return parser


def _child_stdin(osutils):
    # type: (OSUtils) -> Optional[IO]
    # Standard input carried the path list, give the child the terminal.
    try:
        return osutils.open_tty()
    except OSError:
        return None


def create_invoker(restart, grace_period, stdin, osutils):
    # type: (bool, float, Optional[IO], OSUtils) -> Invoker
    if restart:
        return RestartingInvoker(stdin=stdin, grace_period=grace_period,
                                 osutils=osutils)
    return BlockingInvoker(stdin=stdin, osutils=osutils)


class ShutdownHandler(object):
    """Signal handler that stops the dispatch loop.

    Until ``loop`` is set, startup is aborted by raising
    ``StartupInterruptedError`` in the main thread instead.
    """

    def __init__(self):
        # type: () -> None
        self.loop = None  # type: Optional[DispatchLoop]

    def __call__(self, signum, frame):
        # type: (int, Any) -> None
        if self.loop is None:
            raise StartupInterruptedError(signum)
        self.loop.stop()


def install_signal_handlers(handler):
    # type: (ShutdownHandler) -> None
    for name in STOP_SIGNALS:
        signum = getattr(signal, name, None)
        if signum is not None:
            signal.signal(signum, handler)


def main(argv=None, stdin=None, osutils=None):
    # type: (Optional[List[str]], Optional[IO[str]], Optional[OSUtils]) -> int
    if stdin is None:
        stdin = sys.stdin
    if osutils is None:
        osutils = OSUtils()
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)
    config = Config.create(restart=args.restart, backend=args.backend,
                           max_files=args.max_files,
                           poll_interval=args.poll_interval)
    try:
        backend_name = config.backend
        max_files = config.max_files
        poll_interval = config.poll_interval
        restart = config.restart
        grace_period = config.grace_period
    except ValueError as e:
        parser.print_usage(sys.stderr)
        LOG.error("%s", e)
        return 1
    if stdin.isatty():
        parser.print_usage(sys.stderr)
        LOG.error("No paths to watch, pipe a list of files to standard input")
        return 1
    shutdown = ShutdownHandler()
    install_signal_handlers(shutdown)
    backend = None  # type: Optional[NotificationBackend]
    watch_set = None  # type: Optional[WatchSet]
    child_stdin = None  # type: Optional[IO]
    try:
        paths = read_paths(stdin, max_files)
        if not paths:
            LOG.error("No paths to watch")
            return 1
        command = CommandSpec(args.program, args.args)
        backend = create_backend(backend_name, poll_interval=poll_interval)
        watch_set = build_watch_set(paths, backend, max_files, osutils)
        LOG.debug("Watching %s files with the %s backend",
                  len(watch_set), backend_name)
        child_stdin = _child_stdin(osutils)
        invoker = create_invoker(restart, grace_period, child_stdin, osutils)
        loop = DispatchLoop(watch_set, backend, invoker, command, osutils)
        shutdown.loop = loop
    except (RegistrationError, CapacityExceededError,
            StartupInterruptedError) as e:
        LOG.error("%s", e)
        if watch_set is not None:
            for target in watch_set:
                release(target, backend, osutils)
        if backend is not None:
            backend.close()
        if child_stdin is not None:
            child_stdin.close()
        return 1
    try:
        loop.run()
    except WatchRunError:
        return 1
    finally:
        loop.shutdown()
        if child_stdin is not None:
            child_stdin.close()
    return 0


def main_entry():
    # type: () -> None
    sys.exit(main())
