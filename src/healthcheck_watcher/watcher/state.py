"""In-memory dedup state for lifecycle alerts."""

from datetime import datetime, timedelta


class DedupState:
    """Tracks what has already been alerted so repeated events stay quiet.

    All maps are process-local and start empty, so a restart forgets every
    window. Entries are never evicted.
    """

    def __init__(self):
        # container id -> alert on the next healthy transition
        self.health_visibility: dict[str, bool] = {}
        # service id -> time of the last death alert
        self.death_debounce: dict[str, datetime] = {}
        # service id -> time the rolling update started
        self.update_windows: dict[str, datetime] = {}

    def container_started(self, container_id: str) -> None:
        self.health_visibility[container_id] = False

    def mark_unhealthy(self, container_id: str) -> None:
        self.health_visibility[container_id] = True

    def should_alert_healthy(self, container_id: str) -> bool:
        """A container never seen starting counts as visible."""
        return self.health_visibility.get(container_id, True)

    def begin_update(self, service_id: str, now: datetime) -> None:
        self.update_windows[service_id] = now

    def end_update(self, service_id: str) -> None:
        self.update_windows.pop(service_id, None)

    def consume_update_window(self, service_id: str, now: datetime, window: timedelta) -> bool:
        """Attribute a death to an in-progress update.

        Returns:
            True if an update started less than ``window`` ago; the window
            is removed so only one death is absorbed.
        """
        started = self.update_windows.get(service_id)
        if started is None or now - started >= window:
            return False

        del self.update_windows[service_id]
        return True

    def should_alert_death(self, service_id: str, now: datetime, window: timedelta) -> bool:
        """Check the death debounce window for a service.

        Records ``now`` only when the alert is allowed, so suppressed deaths
        never extend the window.
        """
        last = self.death_debounce.get(service_id)
        if last is None or now - last > window:
            self.death_debounce[service_id] = now
            return True

        return False

    def time_until_death_alert(
        self, service_id: str, now: datetime, window: timedelta
    ) -> timedelta | None:
        """Time remaining until a death for this service alerts again.

        Returns:
            Time remaining, or None if a death would alert now
        """
        last = self.death_debounce.get(service_id)
        if last is None:
            return None

        elapsed = now - last
        if elapsed > window:
            return None

        return window - elapsed
