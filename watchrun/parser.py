from typing import IO, List  # noqa


def read_paths(stream, max_targets):
    # type: (IO[str], int) -> List[str]
    """Read up to ``max_targets`` newline separated paths from ``stream``.

    Each line, without its terminator, is taken verbatim as a path; blank
    lines included.  Input past the cap is left unread.  Whether the paths
    exist is checked later, when they are registered.
    """
    paths = []  # type: List[str]
    if max_targets <= 0:
        return paths
    for line in stream:
        if line.endswith('\r\n'):
            line = line[:-2]
        elif line.endswith('\n'):
            line = line[:-1]
        paths.append(line)
        if len(paths) >= max_targets:
            break
    return paths
