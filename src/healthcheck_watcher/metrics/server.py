"""Metrics server for exposing Prometheus endpoints."""

import threading
from collections.abc import Callable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

import structlog
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

log = structlog.get_logger()

# Module-level state for idempotent server startup
_server_lock = threading.Lock()
_server_thread: threading.Thread | None = None
_ready = threading.Event()


class _QuietHandler(WSGIRequestHandler):
    """WSGI handler that doesn't log every request."""

    def log_message(self, format: str, *args: object) -> None:
        pass


StartResponse = Callable[[str, list[tuple[str, str]]], Any]


def set_ready(ready: bool) -> None:
    """Mark whether the event stream is being consumed (drives /health)."""
    if ready:
        _ready.set()
    else:
        _ready.clear()


def _metrics_app(environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
    path = environ.get("PATH_INFO", "/")

    if path == "/metrics":
        output = generate_latest(REGISTRY)
        status = "200 OK"
        headers = [("Content-Type", CONTENT_TYPE_LATEST)]
    elif path == "/health":
        if _ready.is_set():
            output, status = b"ok", "200 OK"
        else:
            output, status = b"not watching", "503 Service Unavailable"
        headers = [("Content-Type", "text/plain")]
    else:
        output = b"Not Found"
        status = "404 Not Found"
        headers = [("Content-Type", "text/plain")]

    start_response(status, headers)
    return [output]


def start_metrics_server(port: int, host: str = "0.0.0.0") -> threading.Thread:
    """Start a background thread serving /metrics and /health.

    Idempotent: a second call returns the running thread.
    """
    global _server_thread
    with _server_lock:
        if _server_thread is not None and _server_thread.is_alive():
            log.debug("Metrics server already running")
            return _server_thread

        server = make_server(host, port, _metrics_app, handler_class=_QuietHandler)

        def serve_forever() -> None:
            try:
                log.info("Metrics server listening", host=host, port=port)
                server.serve_forever()
            except Exception:
                log.exception("Metrics server failed unexpectedly")

        thread = threading.Thread(target=serve_forever, daemon=True, name="metrics-server")
        thread.start()
        _server_thread = thread
        return thread
