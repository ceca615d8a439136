"""Shared fakes for watcher tests."""

import threading
from datetime import datetime, timedelta

import pytest

from healthcheck_watcher.watcher import LifecycleEvent

CONFIG_ENV_VARS = [
    "MS_TEAMS_WEBHOOK",
    "MS_TEAMS_CARD_SUBJECT",
    "STDERR_SERVICE",
    "LOG_FRAMING",
    "UPDATE_AWARE",
    "DEBOUNCE_SECONDS",
    "UPDATE_WINDOW_SECONDS",
    "NOTIFY_WORKERS",
    "METRICS_PORT",
    "LOG_LEVEL",
]


class FakeNotifier:
    """Records notify() calls instead of delivering them."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def notify(self, severity, title, subtitle, attributes):
        with self._lock:
            self.calls.append((severity, title, subtitle, dict(attributes)))

    @property
    def subtitles(self) -> list[str]:
        with self._lock:
            return [call[2] for call in self.calls]


class FakeLogWatches:
    """Records start/stop requests from the dispatcher."""

    def __init__(self):
        self.started: list[tuple[str, dict]] = []
        self.stopped: list[str] = []

    def start_watch(self, container_id, attributes):
        self.started.append((container_id, dict(attributes)))

    def stop_watch(self, container_id):
        self.stopped.append(container_id)


class FakeStream:
    """Log stream yielding fixed chunks.

    With ``hold_open`` it blocks after the last chunk until close(), like a
    follow-mode stream with no new output.
    """

    def __init__(self, chunks=(), hold_open=False, error=None):
        self.chunks = list(chunks)
        self.hold_open = hold_open
        self.error = error
        self.closed = threading.Event()
        self.drained = threading.Event()

    def __iter__(self):
        for chunk in self.chunks:
            if self.closed.is_set():
                return
            yield chunk
        self.drained.set()
        if self.error is not None:
            raise self.error
        if self.hold_open:
            self.closed.wait(5)
            raise OSError("stream closed")

    def close(self):
        self.closed.set()


class Clock:
    """Manually advanced time source."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def container_event(
    action: str,
    container_id: str = "c1",
    service: str | None = "A",
    service_id: str | None = "svc-a",
    **attributes: str,
) -> LifecycleEvent:
    attrs = {"image": "registry.local/app:1", **attributes}
    if service is not None:
        attrs["com.docker.swarm.service.name"] = service
    if service_id is not None:
        attrs["com.docker.swarm.service.id"] = service_id
    return LifecycleEvent(type="container", action=action, actor_id=container_id, attributes=attrs)


def die_event(container_id: str = "c1", exit_code: str = "1", **kwargs) -> LifecycleEvent:
    return container_event("die", container_id=container_id, exitCode=exit_code, **kwargs)


def service_update(service_id: str = "svc-a", new_state: str = "updating") -> LifecycleEvent:
    return LifecycleEvent(
        type="service",
        action="update",
        actor_id=service_id,
        attributes={"name": "A", "updatestate.new": new_state},
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def log_watches() -> FakeLogWatches:
    return FakeLogWatches()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every watcher variable from the environment for the test."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
