"""Real-time delivery channels for clinical alerts."""

from .broadcaster import Broadcaster, Connection, InMemoryConnection, RoomRegistry
from .teams import TeamsConnection
from .webhook import WebhookConnection

__all__ = [
    "Broadcaster",
    "Connection",
    "InMemoryConnection",
    "RoomRegistry",
    "TeamsConnection",
    "WebhookConnection",
]
