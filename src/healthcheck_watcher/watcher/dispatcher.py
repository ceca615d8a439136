"""Turns Docker lifecycle events into debounced alerts."""

from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol

import structlog

from healthcheck_watcher.metrics import ALERTS_SENT, ALERTS_SUPPRESSED, EVENTS_PROCESSED

from .events import (
    ACTION_DIE,
    ACTION_HEALTHY,
    ACTION_START,
    ACTION_UNHEALTHY,
    ACTION_UPDATE,
    ATTR_CONTAINER_ID,
    ATTR_EXIT_CODE,
    ATTR_UPDATE_STATE_NEW,
    TYPE_CONTAINER,
    TYPE_SERVICE,
    UPDATE_STATE_UPDATING,
    LifecycleEvent,
    resolve_service_id,
    resolve_service_name,
)
from .notifier import Notifier, Severity
from .state import DedupState

log = structlog.get_logger()

DEFAULT_DEBOUNCE_WINDOW = timedelta(minutes=2)
DEFAULT_UPDATE_WINDOW = timedelta(minutes=2)

# Exit code Docker reports for tasks shut down by a rolling update
UPDATE_EXIT_CODE = "1"


class DispatchOutcome(Enum):
    """What dispatching one event did."""

    ALERTED = "alerted"
    SUPPRESSED = "suppressed"
    UPDATED = "updated"  # state changed, nothing to alert
    IGNORED = "ignored"


class LogWatches(Protocol):
    def start_watch(self, container_id: str, attributes: dict[str, str]) -> object: ...

    def stop_watch(self, container_id: str) -> None: ...


class EventDispatcher:
    """State machine consuming one lifecycle event at a time.

    Not thread-safe: dispatch() must be called from a single consumer loop,
    which is then the only mutator of the dedup state and the log watch
    registry.
    """

    def __init__(
        self,
        notifier: Notifier,
        log_watches: LogWatches,
        stderr_service: str | None = None,
        update_aware: bool = True,
        debounce_window: timedelta = DEFAULT_DEBOUNCE_WINDOW,
        update_window: timedelta = DEFAULT_UPDATE_WINDOW,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the dispatcher.

        Args:
            notifier: Alert sink, must not block
            log_watches: Starts/stops stderr watches
            stderr_service: Service name whose containers get log watches
                (None disables log watching)
            update_aware: Suppress the first exit-code-1 death during a
                rolling update
            debounce_window: Minimum time between death alerts per service
            update_window: How long after an update starts a death is
                attributed to it
            clock: Time source
        """
        self.notifier = notifier
        self.log_watches = log_watches
        self.stderr_service = stderr_service
        self.update_aware = update_aware
        self.debounce_window = debounce_window
        self.update_window = update_window
        self.clock = clock
        self.state = DedupState()

    def dispatch(self, event: LifecycleEvent) -> DispatchOutcome:
        """Apply one event to the dedup state and alert if warranted."""
        if event.type == TYPE_SERVICE and event.action == ACTION_UPDATE:
            outcome = self._on_service_update(event)
        elif event.type == TYPE_CONTAINER:
            outcome = self._on_container_event(event)
        else:
            outcome = DispatchOutcome.IGNORED

        EVENTS_PROCESSED.labels(type=event.type or "unknown", outcome=outcome.value).inc()
        return outcome

    def _on_service_update(self, event: LifecycleEvent) -> DispatchOutcome:
        if not self.update_aware:
            return DispatchOutcome.IGNORED

        # Service events carry the service id as the actor id
        service_id = event.actor_id
        new_state = event.attributes.get(ATTR_UPDATE_STATE_NEW)
        if new_state == UPDATE_STATE_UPDATING:
            self.state.begin_update(service_id, self.clock())
            log.info("Service update started", service_id=service_id)
        else:
            self.state.end_update(service_id)
            log.debug("Service update state changed", service_id=service_id, state=new_state)
        return DispatchOutcome.UPDATED

    def _on_container_event(self, event: LifecycleEvent) -> DispatchOutcome:
        container_id = event.actor_id
        attributes = dict(event.attributes)
        attributes[ATTR_CONTAINER_ID] = container_id
        service = resolve_service_name(attributes)

        if event.action == ACTION_START:
            self.state.container_started(container_id)
            if self.stderr_service and service == self.stderr_service:
                self.log_watches.start_watch(container_id, attributes)
            return DispatchOutcome.UPDATED

        if event.action == ACTION_UNHEALTHY:
            self.state.mark_unhealthy(container_id)
            self._alert("unhealthy", Severity.ALERT, service, "unhealthy (running)", attributes)
            return DispatchOutcome.ALERTED

        if event.action == ACTION_HEALTHY:
            if not self.state.should_alert_healthy(container_id):
                ALERTS_SUPPRESSED.labels(reason="health_visibility").inc()
                return DispatchOutcome.SUPPRESSED
            self._alert("healthy", Severity.OK, service, "ok", attributes)
            return DispatchOutcome.ALERTED

        if event.action == ACTION_DIE:
            self.log_watches.stop_watch(container_id)
            return self._on_die(service, attributes)

        return DispatchOutcome.IGNORED

    def _on_die(self, service: str, attributes: dict[str, str]) -> DispatchOutcome:
        service_id = resolve_service_id(attributes)
        exit_code = attributes.get(ATTR_EXIT_CODE, "")

        if exit_code == "0":
            return DispatchOutcome.IGNORED

        now = self.clock()

        if (
            self.update_aware
            and exit_code == UPDATE_EXIT_CODE
            and self.state.consume_update_window(service_id, now, self.update_window)
        ):
            log.info("Death attributed to service update", service=service, service_id=service_id)
            ALERTS_SUPPRESSED.labels(reason="update").inc()
            return DispatchOutcome.SUPPRESSED

        if not self.state.should_alert_death(service_id, now, self.debounce_window):
            remaining = self.state.time_until_death_alert(service_id, now, self.debounce_window)
            log.debug(
                "Death alert debounced",
                service=service,
                service_id=service_id,
                remaining_seconds=remaining.total_seconds() if remaining else 0,
            )
            ALERTS_SUPPRESSED.labels(reason="debounce").inc()
            return DispatchOutcome.SUPPRESSED

        self._alert(
            "died", Severity.ALERT, service, f"died (exited with code {exit_code})", attributes
        )
        return DispatchOutcome.ALERTED

    def _alert(
        self,
        kind: str,
        severity: Severity,
        service: str,
        subtitle: str,
        attributes: dict[str, str],
    ) -> None:
        log.info("Container alert", service=service, status=subtitle)
        self.notifier.notify(severity, service, subtitle, attributes)
        ALERTS_SENT.labels(kind=kind).inc()
