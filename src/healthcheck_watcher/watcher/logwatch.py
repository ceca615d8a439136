"""Per-container stderr log watches.

Each watch is a daemon thread tailing one container's stderr and alerting
on every line. The registry is only touched from the dispatcher's thread;
watch threads only read their own handle.
"""

import threading
from collections.abc import Callable, Iterator
from typing import Protocol

import structlog

from healthcheck_watcher.metrics import ALERTS_SENT, LOG_WATCHES_ACTIVE

from .events import resolve_service_name
from .framing import Framing, iter_messages
from .notifier import Notifier, Severity

log = structlog.get_logger()


class LogStream(Protocol):
    """A follow-mode log stream: raw byte chunks that can be closed from another thread."""

    def __iter__(self) -> Iterator[bytes]: ...

    def close(self) -> None: ...


StreamOpener = Callable[[str], LogStream]


class WatchHandle:
    """Cancellation handle for one running log watch."""

    def __init__(self, container_id: str):
        self.container_id = container_id
        self.thread: threading.Thread | None = None
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._stream: LogStream | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def attach(self, stream: LogStream) -> bool:
        """Register the open stream so cancel() can unblock reads.

        Returns False (and closes the stream) if already cancelled.
        """
        with self._lock:
            if self._cancelled.is_set():
                _close_quietly(stream, self.container_id)
                return False
            self._stream = stream
            return True

    def cancel(self) -> None:
        """Stop the watch. Closing the stream unblocks a pending read."""
        with self._lock:
            self._cancelled.set()
            stream, self._stream = self._stream, None

        if stream is not None:
            _close_quietly(stream, self.container_id)

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the watch thread to finish. Returns True if it has."""
        if self.thread is None:
            return True
        self.thread.join(timeout)
        return not self.thread.is_alive()


def _close_quietly(stream: LogStream, container_id: str) -> None:
    try:
        stream.close()
    except Exception as e:
        log.debug("Error closing log stream", container_id=container_id, error=str(e))


class LogWatchManager:
    """Owns at most one stderr log watch per container id."""

    def __init__(
        self,
        notifier: Notifier,
        open_stream: StreamOpener,
        framing: Framing = Framing.LINES,
    ):
        """Initialize the manager.

        Args:
            notifier: Sink for "logged <line>" alerts
            open_stream: Opens a follow-mode stderr stream for a container id,
                starting from now
            framing: How the opened streams are framed
        """
        self.notifier = notifier
        self.open_stream = open_stream
        self.framing = framing
        self._watches: dict[str, WatchHandle] = {}

    def __contains__(self, container_id: object) -> bool:
        return container_id in self._watches

    def __len__(self) -> int:
        return len(self._watches)

    def get(self, container_id: str) -> WatchHandle | None:
        return self._watches.get(container_id)

    def active(self) -> list[str]:
        """Container ids with a registered watch."""
        return list(self._watches)

    def start_watch(self, container_id: str, attributes: dict[str, str]) -> WatchHandle:
        """Start tailing a container unless it is already watched."""
        existing = self._watches.get(container_id)
        if existing is not None:
            return existing

        handle = WatchHandle(container_id)
        handle.thread = threading.Thread(
            target=self._watch,
            args=(handle, dict(attributes)),
            daemon=True,
            name=f"logwatch-{container_id[:12]}",
        )
        self._watches[container_id] = handle
        LOG_WATCHES_ACTIVE.set(len(self._watches))
        handle.thread.start()
        log.info("Started log watch", container_id=container_id)
        return handle

    def stop_watch(self, container_id: str) -> None:
        """Cancel and forget a container's watch. Unknown ids are ignored."""
        handle = self._watches.pop(container_id, None)
        if handle is None:
            return

        LOG_WATCHES_ACTIVE.set(len(self._watches))
        handle.cancel()
        log.info("Stopped log watch", container_id=container_id)

    def stop_all(self) -> None:
        for container_id in list(self._watches):
            self.stop_watch(container_id)

    def _watch(self, handle: WatchHandle, attributes: dict[str, str]) -> None:
        container_id = handle.container_id
        service = resolve_service_name(attributes)

        try:
            stream = self.open_stream(container_id)
        except Exception as e:
            log.debug("Could not open log stream", container_id=container_id, error=str(e))
            return

        if not handle.attach(stream):
            return

        try:
            for message in iter_messages(stream, self.framing):
                if handle.cancelled:
                    break
                self.notifier.notify(Severity.ALERT, service, f"logged {message}", attributes)
                ALERTS_SENT.labels(kind="logged").inc()
            else:
                log.debug("Log stream ended", container_id=container_id)
        except Exception as e:
            # Closing the stream on cancel surfaces here as a read error
            if not handle.cancelled:
                log.debug("Log stream failed", container_id=container_id, error=str(e))
        finally:
            handle.cancel()
