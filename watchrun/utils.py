import os
import subprocess

from typing import IO, List, Optional  # noqa


class OSUtils(object):
    """Thin wrapper over the os calls used for watching and spawning.

    Everything that touches the filesystem or starts a process goes
    through here so it can be replaced wholesale where real files or
    processes are not wanted.
    """

    def open_for_read(self, path):
        # type: (str) -> int
        return os.open(path, os.O_RDONLY)

    def close(self, fd):
        # type: (int) -> None
        os.close(fd)

    def fstat(self, fd):
        # type: (int) -> os.stat_result
        return os.fstat(fd)

    def stat(self, path):
        # type: (str) -> os.stat_result
        return os.stat(path)

    def same_object(self, fd, path):
        # type: (int, str) -> bool
        """Return True if ``path`` still names the file open as ``fd``.

        Raises ``OSError`` if ``path`` no longer exists.
        """
        current = os.stat(path)
        pinned = os.fstat(fd)
        return (current.st_dev, current.st_ino) == (
            pinned.st_dev, pinned.st_ino)

    def popen(self, command, stdin=None):
        # type: (List[str], Optional[IO]) -> subprocess.Popen
        return subprocess.Popen(command, stdin=stdin)

    def open_tty(self):
        # type: () -> IO
        return open('/dev/tty', 'rb')
