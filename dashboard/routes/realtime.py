"""Real-time alert subscriptions over HTTP webhooks.

A subscriber registers a callback URL and the rooms it wants, using the same
client events a socket client would send::

    POST /realtime/subscriptions
    {"url": "https://ward-display.local/alerts",
     "joins": [{"event": "join-patient-alerts", "id": "P-1001"},
               {"event": "join-clinical-team", "id": "all-staff"}]}

Events are then POSTed to the URL as ``{"event", "payload", "sentAt"}``.
"""

import logging

from flask import Blueprint, current_app, request

from common.channels.broadcaster import JOIN_EVENTS, LEAVE_EVENT
from common.channels.webhook import WebhookConnection
from common.clinical_safety.errors import RequestValidationError
from dashboard.services.safety import get_safety_services
from dashboard.utils.api_response import api_error, api_success
from safety_src.config import config

logger = logging.getLogger(__name__)

realtime_bp = Blueprint("realtime", __name__, url_prefix="/realtime")


def _subscriptions() -> dict[str, WebhookConnection]:
    if not hasattr(current_app, "webhook_subscriptions"):
        current_app.webhook_subscriptions = {}
    return current_app.webhook_subscriptions


def _parse_joins(data: dict) -> list[tuple[str, str]]:
    errors = {}
    joins = data.get("joins") or []
    if not isinstance(joins, list):
        raise RequestValidationError({"joins": "must be a list"})
    parsed = []
    for i, join in enumerate(joins):
        if not isinstance(join, dict) or join.get("event") not in JOIN_EVENTS or not join.get("id"):
            errors[f"joins[{i}]"] = "must be {event, id} with event one of " + ", ".join(JOIN_EVENTS)
            continue
        parsed.append((join["event"], str(join["id"])))
    if errors:
        raise RequestValidationError(errors)
    return parsed


@realtime_bp.route("/subscriptions", methods=["POST"])
def create_subscription():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise RequestValidationError({"body": "JSON object required"})
    url = data.get("url")
    if not isinstance(url, str) or not url.startswith(("http://", "https://")):
        raise RequestValidationError({"url": "must be an http(s) URL"})
    joins = _parse_joins(data)

    connection = WebhookConnection(url, timeout=config.WEBHOOK_TIMEOUT_SECONDS)
    broadcaster = get_safety_services().broadcaster
    rooms = [broadcaster.handle_client_event(connection, event, room_id) for event, room_id in joins]
    _subscriptions()[connection.connection_id] = connection

    logger.info(f"Webhook subscription {connection.connection_id} joined {len(rooms)} rooms")
    return api_success(
        data={"connectionId": connection.connection_id, "rooms": rooms},
        status_code=201,
    )


@realtime_bp.route("/subscriptions/<connection_id>/events", methods=["POST"])
def subscription_event(connection_id):
    """Apply a join/leave client event to an existing subscription."""
    connection = _subscriptions().get(connection_id)
    if connection is None:
        return api_error("Subscription not found", 404)

    data = request.get_json(silent=True) or {}
    event = data.get("event")
    if event not in JOIN_EVENTS and event != LEAVE_EVENT:
        raise RequestValidationError({"event": "unknown client event"})
    room = get_safety_services().broadcaster.handle_client_event(connection, event, data.get("data"))
    if room is None:
        raise RequestValidationError({"data": "room id is required"})
    return api_success(data={"room": room})


@realtime_bp.route("/subscriptions/<connection_id>", methods=["DELETE"])
def delete_subscription(connection_id):
    connection = _subscriptions().pop(connection_id, None)
    if connection is None:
        return api_error("Subscription not found", 404)
    rooms = get_safety_services().broadcaster.registry.disconnect(connection)
    return api_success(data={"connectionId": connection_id, "rooms": rooms})
