"""Docker lifecycle watcher.

Interprets the Docker event stream, dedups container death and health-check
alerts, tails stderr of one service, and sends Microsoft Teams cards.
"""

from .daemon import DockerLogSource, WatcherDaemon, run_watcher
from .dispatcher import DispatchOutcome, EventDispatcher
from .events import LifecycleEvent, resolve_service_id, resolve_service_name
from .framing import Framing, FramingError, iter_frames, iter_lines, iter_messages
from .logwatch import LogWatchManager, WatchHandle
from .notifier import Notifier, Severity
from .state import DedupState
from .teams import TeamsClient, TeamsNotifier, build_card

__all__ = [
    # Daemon
    "WatcherDaemon",
    "DockerLogSource",
    "run_watcher",
    # Dispatcher
    "EventDispatcher",
    "DispatchOutcome",
    "DedupState",
    "LifecycleEvent",
    "resolve_service_name",
    "resolve_service_id",
    # Log watches
    "LogWatchManager",
    "WatchHandle",
    "Framing",
    "FramingError",
    "iter_lines",
    "iter_frames",
    "iter_messages",
    # Notifier
    "Notifier",
    "Severity",
    "TeamsClient",
    "TeamsNotifier",
    "build_card",
]
