"""Prometheus metrics for the watcher.

Usage:
    from healthcheck_watcher.metrics import start_metrics_server, ALERTS_SENT

    start_metrics_server(port=9110)
    ALERTS_SENT.labels(kind="died").inc()
"""

from healthcheck_watcher.metrics.server import set_ready, start_metrics_server
from healthcheck_watcher.metrics.watcher import (
    ALERTS_SENT,
    ALERTS_SUPPRESSED,
    EVENTS_PROCESSED,
    LOG_WATCHES_ACTIVE,
    NOTIFICATION_FAILURES,
)

__all__ = [
    "start_metrics_server",
    "set_ready",
    "ALERTS_SENT",
    "ALERTS_SUPPRESSED",
    "EVENTS_PROCESSED",
    "LOG_WATCHES_ACTIVE",
    "NOTIFICATION_FAILURES",
]
