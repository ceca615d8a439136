"""Tests for the dedup state store."""

from datetime import datetime, timedelta

from healthcheck_watcher.watcher import DedupState

T0 = datetime(2024, 1, 1, 12, 0, 0)
WINDOW = timedelta(minutes=2)


class TestHealthVisibility:
    """Tests for the per-container recovery flag."""

    def test_unknown_container_alerts(self):
        """A container never seen starting should alert on healthy."""
        state = DedupState()
        assert state.should_alert_healthy("c1") is True

    def test_started_container_hidden(self):
        state = DedupState()
        state.container_started("c1")
        assert state.should_alert_healthy("c1") is False

    def test_unhealthy_makes_visible(self):
        state = DedupState()
        state.container_started("c1")
        state.mark_unhealthy("c1")
        assert state.should_alert_healthy("c1") is True
        # Stays visible on repeated checks
        assert state.should_alert_healthy("c1") is True


class TestDeathDebounce:
    """Tests for the per-service death window."""

    def test_first_death_allowed(self):
        state = DedupState()
        assert state.should_alert_death("svc", T0, WINDOW) is True
        assert state.death_debounce["svc"] == T0

    def test_death_inside_window_blocked(self):
        state = DedupState()
        state.should_alert_death("svc", T0, WINDOW)
        assert state.should_alert_death("svc", T0 + timedelta(seconds=10), WINDOW) is False

    def test_suppressed_death_does_not_extend_window(self):
        """Only emitted alerts move the window."""
        state = DedupState()
        state.should_alert_death("svc", T0, WINDOW)
        state.should_alert_death("svc", T0 + timedelta(seconds=90), WINDOW)
        assert state.death_debounce["svc"] == T0
        assert state.should_alert_death("svc", T0 + timedelta(seconds=121), WINDOW) is True

    def test_exactly_at_window_still_blocked(self):
        """The window must be exceeded, not just reached."""
        state = DedupState()
        state.should_alert_death("svc", T0, WINDOW)
        assert state.should_alert_death("svc", T0 + WINDOW, WINDOW) is False

    def test_services_independent(self):
        state = DedupState()
        assert state.should_alert_death("svc-a", T0, WINDOW) is True
        assert state.should_alert_death("svc-b", T0, WINDOW) is True

    def test_time_until_death_alert(self):
        state = DedupState()
        assert state.time_until_death_alert("svc", T0, WINDOW) is None

        state.should_alert_death("svc", T0, WINDOW)
        remaining = state.time_until_death_alert("svc", T0 + timedelta(seconds=30), WINDOW)
        assert remaining == timedelta(seconds=90)
        assert state.time_until_death_alert("svc", T0 + timedelta(minutes=3), WINDOW) is None


class TestUpdateWindows:
    """Tests for rolling update markers."""

    def test_consume_young_window(self):
        state = DedupState()
        state.begin_update("svc", T0)
        assert state.consume_update_window("svc", T0 + timedelta(seconds=30), WINDOW) is True
        assert "svc" not in state.update_windows

    def test_consume_only_once(self):
        state = DedupState()
        state.begin_update("svc", T0)
        state.consume_update_window("svc", T0, WINDOW)
        assert state.consume_update_window("svc", T0, WINDOW) is False

    def test_stale_window_not_consumed(self):
        state = DedupState()
        state.begin_update("svc", T0)
        assert state.consume_update_window("svc", T0 + timedelta(minutes=3), WINDOW) is False
        # Left in place until the update ends
        assert "svc" in state.update_windows

    def test_end_update(self):
        state = DedupState()
        state.begin_update("svc", T0)
        state.end_update("svc")
        assert state.update_windows == {}

    def test_end_unknown_update(self):
        """Ending an update that never started is a no-op."""
        state = DedupState()
        state.end_update("svc")
        assert state.update_windows == {}
