import os

from watchrun.invoker import DEFAULT_GRACE_PERIOD
from watchrun.watcher import BACKENDS
from watchrun.watcher.stat import DEFAULT_POLL_INTERVAL

from typing import Any, Dict, Mapping, Optional  # noqa


DEFAULT_MAX_TARGETS = 1024
MAX_TARGETS_CEILING = 65536
# Descriptors kept free for stdio, the backend and the child's pipes.
RESERVED_DESCRIPTORS = 16
DEFAULT_BACKEND = 'watchdog'

ENV_PREFIX = 'WATCHRUN_'


def default_max_targets():
    # type: () -> int
    try:
        import resource
    except ImportError:
        return DEFAULT_MAX_TARGETS
    soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
    if soft == resource.RLIM_INFINITY:
        return MAX_TARGETS_CEILING
    return max(1, min(soft - RESERVED_DESCRIPTORS, MAX_TARGETS_CEILING))


class Config(object):
    """Runtime settings, looked up in CLI values, environment, then defaults.

    ``user_provided_params`` holds values from the command line; a value
    of None there means the flag was not given.
    """

    def __init__(self, user_provided_params=None, environ=None):
        # type: (Optional[Dict[str, Any]], Optional[Mapping[str, str]]) -> None
        if user_provided_params is None:
            user_provided_params = {}
        if environ is None:
            environ = os.environ
        self._user_provided_params = user_provided_params
        self._environ = environ

    @classmethod
    def create(cls, **kwargs):
        # type: (**Any) -> Config
        return cls(user_provided_params=kwargs.copy())

    def _chain_lookup(self, name, default=None):
        # type: (str, Any) -> Any
        value = self._user_provided_params.get(name)
        if value is not None:
            return value
        env_value = self._environ.get(ENV_PREFIX + name.upper())
        if env_value:
            return env_value
        return default

    @property
    def backend(self):
        # type: () -> str
        name = self._chain_lookup('backend', DEFAULT_BACKEND)
        if name not in BACKENDS:
            raise ValueError('Invalid backend %r, expected one of: %s'
                             % (name, ', '.join(BACKENDS)))
        return name

    @property
    def max_files(self):
        # type: () -> int
        value = self._chain_lookup('max_files')
        if value is None:
            return default_max_targets()
        try:
            value = int(value)
        except ValueError:
            raise ValueError('Invalid max_files %r, expected an integer'
                             % value)
        if value < 1:
            raise ValueError('Invalid max_files %r, must be at least 1'
                             % value)
        return value

    @property
    def poll_interval(self):
        # type: () -> float
        return self._positive_float('poll_interval', DEFAULT_POLL_INTERVAL)

    @property
    def grace_period(self):
        # type: () -> float
        return self._positive_float('grace_period', DEFAULT_GRACE_PERIOD)

    @property
    def restart(self):
        # type: () -> bool
        value = self._chain_lookup('restart', False)
        if isinstance(value, str):
            return value.lower() in ('1', 'true', 'yes')
        return bool(value)

    def _positive_float(self, name, default):
        # type: (str, float) -> float
        value = self._chain_lookup(name, default)
        try:
            value = float(value)
        except ValueError:
            raise ValueError('Invalid %s %r, expected a number' % (name, value))
        if value <= 0:
            raise ValueError('Invalid %s %r, must be positive' % (name, value))
        return value
