"""Tests for the metrics endpoints."""

from healthcheck_watcher.metrics import server


def call(path: str) -> tuple[str, bytes]:
    captured = {}

    def start_response(status, headers):
        captured["status"] = status

    body = server._metrics_app({"PATH_INFO": path}, start_response)
    return captured["status"], b"".join(body)


def test_metrics_endpoint() -> None:
    status, body = call("/metrics")
    assert status == "200 OK"
    assert b"healthcheck_watcher_alerts_total" in body


def test_health_follows_readiness() -> None:
    server.set_ready(False)
    assert call("/health")[0].startswith("503")

    server.set_ready(True)
    assert call("/health") == ("200 OK", b"ok")
    server.set_ready(False)


def test_unknown_path() -> None:
    assert call("/nope")[0] == "404 Not Found"
