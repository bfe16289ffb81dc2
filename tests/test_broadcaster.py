"""Tests for room membership, fan-out and webhook subscribers."""

import requests

from common.channels.broadcaster import (
    ALL_STAFF_ROOM,
    Broadcaster,
    InMemoryConnection,
    RoomRegistry,
    clinical_team_room,
)
from common.channels.teams import TeamsConnection
from common.channels.webhook import WebhookConnection


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class RecordingSession:
    """Stands in for requests.Session, recording each POST."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        return FakeResponse(self.status_code)


def test_join_leave_and_disconnect():
    """Test room membership bookkeeping."""
    registry = RoomRegistry()
    connection = InMemoryConnection("c1")

    registry.join("patient-P-1", connection)
    registry.join("facility-F-1", connection)
    assert registry.rooms_of(connection) == ["facility-F-1", "patient-P-1"]

    registry.leave("patient-P-1", connection)
    assert registry.members("patient-P-1") == ()
    assert registry.room_names() == ["facility-F-1"]

    assert registry.disconnect(connection) == ["facility-F-1"]
    assert registry.room_names() == []


def test_broadcast_counts_deliveries():
    """Test that broadcast returns the number of deliveries."""
    broadcaster = Broadcaster()
    first, second = InMemoryConnection(), InMemoryConnection()
    broadcaster.registry.join("patient-P-1", first)
    broadcaster.registry.join("patient-P-1", second)

    delivered = broadcaster.broadcast("patient-P-1", "clinical-alert", {"alertId": "CA-1"})

    assert delivered == 2
    assert first.events("clinical-alert") == [{"alertId": "CA-1"}]
    assert broadcaster.broadcast("patient-P-404", "clinical-alert", {}) == 0


def test_failing_connection_skipped():
    """A failing connection is skipped and the rest still receive the event."""
    broadcaster = Broadcaster()
    healthy = InMemoryConnection()
    broken = WebhookConnection("https://example.invalid/hook", session=RecordingSession(503))
    broadcaster.registry.join("facility-F-1", broken)
    broadcaster.registry.join("facility-F-1", healthy)

    assert broadcaster.broadcast("facility-F-1", "clinical-alert", {"id": "CA-1"}) == 1
    assert len(healthy.messages) == 1


def test_client_join_events():
    """Test join events for each room kind."""
    broadcaster = Broadcaster()
    connection = InMemoryConnection()

    assert broadcaster.handle_client_event(connection, "join-patient-alerts", "P-1") == "patient-P-1"
    assert broadcaster.handle_client_event(connection, "join-facility-alerts", "F-1") == "facility-F-1"
    assert broadcaster.handle_client_event(connection, "join-clinical-team", "all-staff") == ALL_STAFF_ROOM
    assert broadcaster.handle_client_event(connection, "leave-room", "facility-F-1") == "facility-F-1"

    assert broadcaster.registry.rooms_of(connection) == [ALL_STAFF_ROOM, "patient-P-1"]


def test_client_event_without_id_or_unknown():
    """Test that malformed client events are ignored."""
    broadcaster = Broadcaster()
    connection = InMemoryConnection()

    assert broadcaster.handle_client_event(connection, "join-patient-alerts", None) is None
    assert broadcaster.handle_client_event(connection, "subscribe-everything", "x") is None
    assert broadcaster.registry.rooms_of(connection) == []


def test_disconnect_event_leaves_all_rooms():
    """Disconnecting removes the connection from every room."""
    broadcaster = Broadcaster()
    connection = InMemoryConnection()
    broadcaster.handle_client_event(connection, "join-patient-alerts", "P-1")
    broadcaster.handle_client_event(connection, "join-organization-alerts", "O-1")

    broadcaster.handle_client_event(connection, "disconnect")

    assert broadcaster.registry.room_names() == []


def test_clinical_team_room_names():
    """Test clinical team room naming."""
    assert clinical_team_room("all") == ALL_STAFF_ROOM
    assert clinical_team_room("icu") == "clinical-team-icu"


def test_webhook_connection_posts_event():
    """Test the webhook connection payload."""
    session = RecordingSession()
    connection = WebhookConnection(
        "https://ward-display.local/alerts",
        connection_id="ward-7",
        timeout=3,
        headers={"X-Signature": "secret"},
        session=session,
    )

    connection.send("critical-alert", {"id": "CA-1"})

    post = session.posts[0]
    assert post["url"] == "https://ward-display.local/alerts"
    assert post["json"]["event"] == "critical-alert"
    assert post["json"]["payload"] == {"id": "CA-1"}
    assert post["headers"]["X-Signature"] == "secret"
    assert post["timeout"] == 3


def test_teams_connection_sends_adaptive_card():
    """Test the Teams adaptive card payload."""
    session = RecordingSession()
    connection = TeamsConnection("https://teams.example/webhook", session=session)

    connection.send("critical-alert", {
        "id": "CA-1",
        "title": "CRITICAL: Allergy Alert",
        "severity": "critical",
        "alertType": "allergy",
        "riskLevel": "high",
        "riskScore": 100,
        "recommendations": ["Do not administer."],
    })

    body = session.posts[0]["json"]
    card = body["attachments"][0]["content"]
    assert body["type"] == "message"
    assert card["type"] == "AdaptiveCard"
    assert card["body"][0]["text"] == "CRITICAL: Allergy Alert"
    assert card["body"][0]["color"] == "Attention"
    facts = {f["title"]: f["value"] for f in card["body"][1]["facts"]}
    assert facts["Risk"] == "high (100)"
    assert facts["Alert"] == "CA-1"
