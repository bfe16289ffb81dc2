"""HTTP webhook subscribers for the alert broadcaster."""

import logging
from datetime import datetime
from typing import Any

import requests

from .broadcaster import Connection

logger = logging.getLogger(__name__)


class WebhookConnection(Connection):
    """Forwards each event as a JSON POST to a subscriber URL."""

    def __init__(
        self,
        url: str,
        connection_id: str | None = None,
        timeout: float = 10,
        headers: dict[str, str] | None = None,
        session: requests.Session | None = None,
    ):
        """
        Initialize webhook connection.

        Args:
            url: Subscriber endpoint receiving POSTed events
            connection_id: Stable id for room membership (random if omitted)
            timeout: Request timeout in seconds
            headers: Extra request headers (e.g. a shared secret)
            session: Optional requests session for connection reuse
        """
        super().__init__(connection_id)
        self.url = url
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json", **(headers or {})}
        self.session = session or requests.Session()

    def _build_body(self, event: str, payload: dict[str, Any]) -> dict[str, Any]:
        return {
            "event": event,
            "payload": payload,
            "sentAt": datetime.now().isoformat(),
        }

    def send(self, event: str, payload: dict[str, Any]) -> None:
        response = self.session.post(
            self.url,
            json=self._build_body(event, payload),
            headers=self.headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.debug(f"Webhook {self.connection_id} accepted {event} ({response.status_code})")

    def is_configured(self) -> bool:
        return bool(self.url)
