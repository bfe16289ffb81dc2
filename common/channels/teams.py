"""Microsoft Teams subscriber for clinical alert rooms.

Posts alert events to a Teams channel through a Workflows webhook as
Adaptive Cards. Join it to ``clinical-team-all`` (or a facility room) so the
on-duty team sees critical alerts in their channel.

Setup:
1. In Teams channel, click ... > Workflows
2. Search "Post to a channel when a webhook request is received"
3. Select team/channel and create
4. Copy the webhook URL
"""

from datetime import datetime
from typing import Any

from .webhook import WebhookConnection

SEVERITY_COLORS = {
    "critical": "Attention",
    "warning": "Warning",
    "info": "Accent",
}


class TeamsConnection(WebhookConnection):
    """Webhook connection that renders alerts as Teams Adaptive Cards."""

    def _build_adaptive_card(self, event: str, payload: dict[str, Any]) -> dict:
        severity = payload.get("severity", "info")
        alert_type = payload.get("alertType") or payload.get("type") or ""
        title = payload.get("title") or event

        facts = [
            {"title": "Event", "value": event},
            {"title": "Severity", "value": severity.title()},
        ]
        if alert_type:
            facts.append({"title": "Type", "value": alert_type})
        if payload.get("riskLevel"):
            facts.append({"title": "Risk", "value": f"{payload['riskLevel']} ({payload.get('riskScore')})"})
        alert_id = payload.get("id") or payload.get("alertId")
        if alert_id:
            facts.append({"title": "Alert", "value": alert_id})

        body = [
            {
                "type": "TextBlock",
                "text": title,
                "weight": "Bolder",
                "size": "Large",
                "color": SEVERITY_COLORS.get(severity, "Default"),
                "wrap": True,
            },
            {"type": "FactSet", "facts": facts},
        ]

        recommendations = payload.get("recommendations") or []
        if recommendations:
            body.append({
                "type": "Container",
                "style": "warning" if severity == "critical" else "default",
                "items": [
                    {"type": "TextBlock", "text": f"- {r}", "wrap": True}
                    for r in recommendations
                ],
            })

        body.append({
            "type": "TextBlock",
            "text": f"Sent: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "size": "Small",
            "isSubtle": True,
            "wrap": True,
        })

        return {
            "type": "AdaptiveCard",
            "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
            "version": "1.4",
            "body": body,
        }

    def _build_body(self, event: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Wrap the Adaptive Card in message/attachments format for Workflows."""
        return {
            "type": "message",
            "attachments": [
                {
                    "contentType": "application/vnd.microsoft.card.adaptive",
                    "contentUrl": None,
                    "content": self._build_adaptive_card(event, payload),
                }
            ],
        }
