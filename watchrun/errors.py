from typing import List, Optional  # noqa


class WatchRunError(Exception):
    pass


class RegistrationError(WatchRunError):
    """A path could not be opened or subscribed for watching."""

    def __init__(self, path, os_error):
        # type: (str, OSError) -> None
        self.path = path
        self.os_error = os_error
        super(RegistrationError, self).__init__(
            'Unable to watch %r: %s' % (path, os_error.strerror or os_error))


class NotFoundError(RegistrationError):
    pass


class PermissionDeniedError(RegistrationError):
    pass


class ResourceExhaustedError(RegistrationError):
    pass


class CapacityExceededError(WatchRunError):
    def __init__(self, path, max_targets):
        # type: (str, int) -> None
        self.path = path
        self.max_targets = max_targets
        super(CapacityExceededError, self).__init__(
            'Cannot watch %r, limit of %s files reached' % (path, max_targets))


class ReopenFailedError(WatchRunError):
    def __init__(self, path, os_error):
        # type: (str, OSError) -> None
        self.path = path
        self.os_error = os_error
        super(ReopenFailedError, self).__init__(
            'Unable to reopen %r, no longer watching it: %s'
            % (path, os_error.strerror or os_error))


class SpawnFailedError(WatchRunError):
    def __init__(self, argv, os_error):
        # type: (List[str], OSError) -> None
        self.argv = argv
        self.os_error = os_error
        super(SpawnFailedError, self).__init__(
            'Unable to run %r: %s' % (argv[0], os_error.strerror or os_error))


class AllTargetsLostError(WatchRunError):
    def __init__(self, paths=None):
        # type: (Optional[List[str]]) -> None
        self.paths = paths or []
        super(AllTargetsLostError, self).__init__(
            'All watched files are gone, nothing left to watch')


class StartupInterruptedError(WatchRunError):
    def __init__(self, signum):
        # type: (int) -> None
        self.signum = signum
        super(StartupInterruptedError, self).__init__(
            'Interrupted by signal %s before watching started' % signum)
