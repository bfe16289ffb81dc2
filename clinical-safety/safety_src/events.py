"""Domain-event publishing (fire-and-forget)."""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from datetime import datetime
from typing import Any

import requests

logger = logging.getLogger(__name__)

ALERT_CREATED = "alert.created"
ALERT_ACKNOWLEDGED = "alert.acknowledged"
ALERT_DISMISSED = "alert.dismissed"
MEDICATION_PRESCRIBED = "medication.prescribed"
MEDICATION_OVERRIDE = "medication.override"


class EventPublisher(ABC):
    """Publishes domain events to downstream consumers."""

    @abstractmethod
    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish one event. May raise."""


class InMemoryEventPublisher(EventPublisher):
    """Keeps published events in memory (tests, single-process deployments)."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: list[dict[str, Any]] = []

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self.events.append({"type": event_type, "payload": payload})

    def of_type(self, event_type: str) -> list[dict[str, Any]]:
        with self._lock:
            return [e["payload"] for e in self.events if e["type"] == event_type]


class HttpEventPublisher(EventPublisher):
    """POSTs events as JSON to an event gateway."""

    def __init__(self, url: str, timeout: float = 10, session: requests.Session | None = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        response = self.session.post(
            self.url,
            json={
                "id": uuid.uuid4().hex,
                "type": event_type,
                "occurredAt": datetime.now().isoformat(),
                "payload": payload,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()


def _publish(
    publisher: EventPublisher, event_type: str, payload: dict[str, Any], log: logging.Logger
) -> bool:
    try:
        publisher.publish(event_type, payload)
        return True
    except Exception as e:
        log.error(f"Failed to publish {event_type} event: {e}")
        return False


def publish_safely(
    publisher: EventPublisher | None,
    event_type: str,
    payload: dict[str, Any],
    log: logging.Logger | None = None,
    executor: Executor | None = None,
) -> bool:
    """Publish an event, logging instead of raising on failure.

    This is a fire-and-forget operation - failures are logged but don't
    interrupt the main operation. With an executor the publish runs off the
    caller's thread and the return value only reports that it was scheduled.
    """
    if publisher is None:
        return False
    log = log or logger
    if executor is None:
        return _publish(publisher, event_type, payload, log)
    try:
        executor.submit(_publish, publisher, event_type, payload, log)
        return True
    except RuntimeError as e:
        # Executor shut down
        log.error(f"Failed to schedule {event_type} event: {e}")
        return False
