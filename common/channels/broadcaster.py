"""Room-based real-time fan-out for clinical alerts.

Connections join named rooms; ``Broadcaster.broadcast`` delivers an event to
every connection currently in a room. The registry knows nothing about the
transport: a connection is anything with a ``send(event, payload)`` method
(in-memory queues for tests and local consumers, HTTP webhooks, socket
sessions).

Rooms:
    patient-{patient_id}
    facility-{facility_id}
    organization-{organization_id}
    clinical-team-{team_id}
    clinical-team-all          (all on-duty clinical staff)

Delivery is at-most-once and best-effort. A connection that raises is logged
and skipped; it does not prevent delivery to the rest of the room.
"""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any

from common.clinical_safety.models import Alert, AlertSeverity
from common.clinical_safety.redaction import redact

logger = logging.getLogger(__name__)

ALL_STAFF_ROOM = "clinical-team-all"
ALL_STAFF_TEAM_IDS = ("all-staff", "all")

# Server-to-client events
CLINICAL_ALERT_EVENT = "clinical-alert"
CRITICAL_ALERT_EVENT = "critical-alert"
ALERT_ACKNOWLEDGED_EVENT = "alert:acknowledged"
ALERT_DISMISSED_EVENT = "alert:dismissed"


def patient_room(patient_id: str) -> str:
    return f"patient-{patient_id}"


def facility_room(facility_id: str) -> str:
    return f"facility-{facility_id}"


def organization_room(organization_id: str) -> str:
    return f"organization-{organization_id}"


def clinical_team_room(team_id: str) -> str:
    if team_id in ALL_STAFF_TEAM_IDS:
        return ALL_STAFF_ROOM
    return f"clinical-team-{team_id}"


# Client-to-server join events and the room each maps to
JOIN_EVENTS = {
    "join-patient-alerts": patient_room,
    "join-facility-alerts": facility_room,
    "join-organization-alerts": organization_room,
    "join-clinical-team": clinical_team_room,
}
LEAVE_EVENT = "leave-room"


class Connection(ABC):
    """A subscriber handle that can receive events."""

    def __init__(self, connection_id: str | None = None):
        self.connection_id = connection_id or uuid.uuid4().hex

    @abstractmethod
    def send(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver one event. May raise on transport failure."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_id})"


class InMemoryConnection(Connection):
    """Connection that records delivered events in memory."""

    def __init__(self, connection_id: str | None = None):
        super().__init__(connection_id)
        self._lock = threading.Lock()
        self.messages: list[tuple[str, dict[str, Any]]] = []

    def send(self, event: str, payload: dict[str, Any]) -> None:
        with self._lock:
            self.messages.append((event, payload))

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            return [p for e, p in self.messages if name is None or e == name]


class RoomRegistry:
    """Thread-safe mapping of room name to the set of connections in it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._rooms: dict[str, set[Connection]] = {}
        self._memberships: dict[str, set[str]] = {}

    def join(self, room: str, connection: Connection) -> None:
        with self._lock:
            self._rooms.setdefault(room, set()).add(connection)
            self._memberships.setdefault(connection.connection_id, set()).add(room)

    def leave(self, room: str, connection: Connection) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection)
                if not members:
                    del self._rooms[room]
            rooms = self._memberships.get(connection.connection_id)
            if rooms is not None:
                rooms.discard(room)
                if not rooms:
                    del self._memberships[connection.connection_id]

    def disconnect(self, connection: Connection) -> list[str]:
        """Remove a connection from every room it joined."""
        with self._lock:
            rooms = self._memberships.pop(connection.connection_id, set())
            for room in rooms:
                members = self._rooms.get(room)
                if members is not None:
                    members.discard(connection)
                    if not members:
                        del self._rooms[room]
        return sorted(rooms)

    def members(self, room: str) -> tuple[Connection, ...]:
        """Snapshot of a room's connections."""
        with self._lock:
            return tuple(self._rooms.get(room, ()))

    def rooms_of(self, connection: Connection) -> list[str]:
        with self._lock:
            return sorted(self._memberships.get(connection.connection_id, ()))

    def room_names(self) -> list[str]:
        with self._lock:
            return sorted(self._rooms)


class Broadcaster:
    """Publishes events to rooms in a ``RoomRegistry``."""

    def __init__(self, registry: RoomRegistry | None = None, logger: logging.Logger | None = None):
        self.registry = registry or RoomRegistry()
        self.logger = logger or logging.getLogger(__name__)

    def broadcast(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """Send ``event`` to every connection in ``room``.

        Returns:
            Number of connections the event was delivered to
        """
        delivered = 0
        for connection in self.registry.members(room):
            try:
                connection.send(event, payload)
                delivered += 1
            except Exception as e:
                self.logger.error(
                    f"Delivery of {event} to {connection!r} in {redact(room)} failed: {e}"
                )
        self.logger.debug(f"Broadcast {event} to {redact(room)}: {delivered} delivered")
        return delivered

    def broadcast_alert(self, alert: Alert) -> list[str]:
        """Fan an alert out to every room interested in it.

        Returns:
            The rooms the alert was published to, in order
        """
        rooms = []

        room = patient_room(alert.patient_id)
        self.broadcast(room, CLINICAL_ALERT_EVENT, alert.to_patient_payload())
        rooms.append(room)

        full = alert.to_dict()
        if alert.facility_id:
            room = facility_room(alert.facility_id)
            self.broadcast(room, CLINICAL_ALERT_EVENT, full)
            rooms.append(room)

        if alert.organization_id:
            room = organization_room(alert.organization_id)
            self.broadcast(room, CLINICAL_ALERT_EVENT, full)
            rooms.append(room)

        if alert.severity == AlertSeverity.CRITICAL:
            self.broadcast(ALL_STAFF_ROOM, CRITICAL_ALERT_EVENT, full)
            rooms.append(ALL_STAFF_ROOM)

        self.logger.info(f"Alert {alert.id} broadcast to {len(rooms)} rooms")
        return rooms

    def handle_client_event(
        self, connection: Connection, event: str, data: Any = None
    ) -> str | None:
        """Apply a client join/leave event.

        Returns:
            The room joined or left, or None if the event was not understood
        """
        if event in JOIN_EVENTS:
            if not data:
                self.logger.warning(f"{event} from {connection!r} without an id")
                return None
            room = JOIN_EVENTS[event](str(data))
            self.registry.join(room, connection)
            self.logger.info(f"{connection!r} joined {redact(room)}")
            return room

        if event == LEAVE_EVENT and data:
            self.registry.leave(str(data), connection)
            return str(data)

        if event == "disconnect":
            self.registry.disconnect(connection)
            self.logger.info(f"{connection!r} disconnected")
            return None

        self.logger.warning(f"Unknown client event {event} from {connection!r}")
        return None
