"""Watcher metrics.

All metrics use the 'healthcheck_watcher_' prefix.
"""

from prometheus_client import Counter, Gauge

EVENTS_PROCESSED = Counter(
    "healthcheck_watcher_events_total",
    "Lifecycle events consumed from the Docker event stream",
    ["type", "outcome"],  # outcome: alerted, suppressed, updated, ignored
)

ALERTS_SENT = Counter(
    "healthcheck_watcher_alerts_total",
    "Alerts handed to the notifier",
    ["kind"],  # died, unhealthy, healthy, logged
)

ALERTS_SUPPRESSED = Counter(
    "healthcheck_watcher_alerts_suppressed_total",
    "Alerts withheld by dedup state",
    ["reason"],  # debounce, update, health_visibility
)

NOTIFICATION_FAILURES = Counter(
    "healthcheck_watcher_notification_failures_total",
    "Alert deliveries the webhook did not accept",
)

LOG_WATCHES_ACTIVE = Gauge(
    "healthcheck_watcher_log_watches",
    "Registered stderr log watches",
)
