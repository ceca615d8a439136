"""Exceptions raised by healthcheck-watcher."""


class ConfigError(ValueError):
    """A configuration value is missing or invalid."""


class WatcherError(RuntimeError):
    """The watcher cannot keep running."""


class EventStreamError(WatcherError):
    """The Docker event stream failed or ended.

    Fatal: dedup state is in memory only, so the process exits and the
    supervisor restarts it with a fresh state.
    """
