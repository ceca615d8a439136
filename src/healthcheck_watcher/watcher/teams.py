"""Microsoft Teams webhook client for sending alert cards."""

import socket
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import httpx
import structlog

from healthcheck_watcher.metrics import NOTIFICATION_FAILURES

from .notifier import Severity

log = structlog.get_logger()

CARD_CONTEXT = "http://schema.org/extensions"


def build_card(
    severity: Severity,
    title: str,
    subtitle: str,
    attributes: dict[str, str],
    summary: str = "",
    hostname: str | None = None,
) -> dict[str, Any]:
    """Build an Office 365 connector MessageCard.

    Facts list the host first, then every attribute sorted by key.

    Args:
        severity: Sets the card theme colour
        title: Usually the service name
        subtitle: What happened (e.g. "ok", "died (exited with code 1)")
        attributes: Event attributes rendered as facts
        summary: Card summary shown in notifications
        hostname: Host fact value (default: this machine's hostname)
    """
    if hostname is None:
        hostname = socket.gethostname()

    facts = [{"name": "Hostname", "value": hostname}]
    facts.extend({"name": k, "value": v} for k, v in sorted(attributes.items()))

    heading = f"{title} {subtitle}"
    return {
        "@type": "MessageCard",
        "@context": CARD_CONTEXT,
        "summary": summary,
        "themeColor": severity.color,
        "title": heading,
        "sections": [
            {
                "activityTitle": heading,
                "activitySubtitle": subtitle,
                "activityImage": "",
                "facts": facts,
            }
        ],
    }


class TeamsClient:
    """Simple Teams incoming webhook client."""

    def __init__(self, webhook_url: str, timeout: float = 5.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    def send(self, card: dict[str, Any]) -> bool:
        """Post a card to the webhook.

        Teams answers a bare "1" when it accepted the card.

        Returns:
            True if successful, False otherwise
        """
        try:
            response = httpx.post(self.webhook_url, json=card, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("Teams API error", status=e.response.status_code, title=card.get("title"))
            return False
        except httpx.RequestError as e:
            log.error("Teams request failed", error=str(e), title=card.get("title"))
            return False

        if response.text.strip() != "1":
            log.error("Teams webhook rejected card", body=response.text[:200], title=card.get("title"))
            return False

        log.debug("Teams card sent", title=card.get("title"))
        return True


class TeamsNotifier:
    """Fire-and-forget notifier delivering cards on a bounded worker pool."""

    def __init__(self, client: TeamsClient, summary: str = "", max_workers: int = 4):
        self.client = client
        self.summary = summary
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def notify(
        self,
        severity: Severity,
        title: str,
        subtitle: str,
        attributes: dict[str, str],
    ) -> Future:
        card = build_card(severity, title, subtitle, dict(attributes), summary=self.summary)
        return self._executor.submit(self._deliver, card)

    def _deliver(self, card: dict[str, Any]) -> bool:
        try:
            delivered = self.client.send(card)
        except Exception:
            log.exception("Unexpected error delivering alert", title=card.get("title"))
            delivered = False

        if not delivered:
            NOTIFICATION_FAILURES.inc()
        return delivered

    def close(self, wait: bool = True) -> None:
        """Stop accepting alerts; with ``wait``, flush the ones in flight."""
        self._executor.shutdown(wait=wait)
