"""Clinical alert lifecycle.

``AlertManager`` creates alerts, answers queries and applies status
transitions through the ``AlertStore``. Alerts needing immediate action are
handed to the ``Broadcaster`` after they are persisted; broadcast failures
never fail the operation that created the alert.

Status transitions are forward-only::

    active -> acknowledged | dismissed | expired
    acknowledged -> dismissed
"""

import logging
import sqlite3
from concurrent.futures import Executor
from datetime import datetime, timedelta
from typing import Any

from common.channels.broadcaster import (
    ALERT_ACKNOWLEDGED_EVENT,
    ALERT_DISMISSED_EVENT,
    Broadcaster,
    patient_room,
)
from common.clinical_safety.errors import (
    AlertNotFoundError,
    AlertPersistenceError,
    AlertTransitionError,
)
from common.clinical_safety.models import (
    ALERT_TRANSITIONS,
    Alert,
    AlertPriority,
    AlertSeverity,
    AlertSource,
    AlertStatus,
    AlertType,
    FindingKind,
    RiskLevel,
)
from common.clinical_safety.redaction import patient_ref
from common.clinical_safety.store import AlertStore

from .events import (
    ALERT_ACKNOWLEDGED,
    ALERT_CREATED,
    ALERT_DISMISSED,
    EventPublisher,
    publish_safely,
)
from .safety_check import SafetyAssessment

# How long an alert stays active. None means until acknowledged or dismissed.
EXPIRY_POLICY = {
    AlertType.DRUG_INTERACTION: timedelta(hours=24),
    AlertType.ALLERGY: None,
    AlertType.CONTRAINDICATION: None,
    AlertType.DOSE_ERROR: timedelta(hours=12),
    AlertType.GUIDELINE_DEVIATION: timedelta(days=7),
}

# (template, fallback) per alert type. Templates are filled from the alert's
# clinical context; the fallback is used when the context names nothing.
TITLE_TEMPLATES = {
    AlertType.DRUG_INTERACTION: ("Drug Interaction: {first} + {second}", "Drug Interaction Alert"),
    AlertType.ALLERGY: ("Allergy Alert: {first}", "Allergy Alert"),
    AlertType.CONTRAINDICATION: ("Contraindication: {first}", "Contraindication Alert"),
    AlertType.DOSE_ERROR: ("Dose Error: {first}", "Dose Error Alert"),
    AlertType.GUIDELINE_DEVIATION: ("Guideline Deviation: {guideline}", "Guideline Deviation"),
}

# Finding kind whose medications name an alert of each type
TITLE_FINDING_KINDS = {
    AlertType.DRUG_INTERACTION: FindingKind.INTERACTION.value,
    AlertType.ALLERGY: FindingKind.ALLERGY.value,
    AlertType.CONTRAINDICATION: FindingKind.CONTRAINDICATION.value,
    AlertType.DOSE_ERROR: FindingKind.DOSE.value,
}

# Alert type for a verdict degraded without findings, keyed by the failed check
DEGRADED_ALERT_TYPES = {
    "interactions": AlertType.DRUG_INTERACTION,
    "allergies": AlertType.ALLERGY,
    "contraindications": AlertType.CONTRAINDICATION,
    "doses": AlertType.DOSE_ERROR,
}

CRITICAL_FINDING_WEIGHT = 7


def _display(name) -> str:
    name = str(name).strip()
    return name[:1].upper() + name[1:]


def _context_medications(alert_type: AlertType, context: dict) -> list[str]:
    kind = TITLE_FINDING_KINDS.get(alert_type)
    for finding in context.get("findings") or ():
        if isinstance(finding, dict) and finding.get("kind") == kind and finding.get("medications"):
            return [_display(m) for m in finding["medications"]]

    medications = context.get("medications")
    if isinstance(medications, list) and medications:
        return [_display(m.get("name", "") if isinstance(m, dict) else m) for m in medications]

    medication = context.get("medication")
    if isinstance(medication, dict) and medication.get("name"):
        return [_display(medication["name"])]
    if isinstance(medication, str) and medication.strip():
        return [_display(medication)]
    return []


def generate_title(
    alert_type: AlertType | str,
    clinical_context: dict | None = None,
    severity: AlertSeverity | str | None = None,
) -> str:
    """Title for an alert, filled from its clinical context.

    Critical alerts are prefixed with ``CRITICAL:``.
    """
    alert_type = AlertType(alert_type)
    context = clinical_context or {}
    template, fallback = TITLE_TEMPLATES[alert_type]

    medications = [m for m in _context_medications(alert_type, context) if m]
    guideline = context.get("guideline")
    if alert_type == AlertType.GUIDELINE_DEVIATION:
        title = template.format(guideline=guideline) if guideline else fallback
    elif alert_type == AlertType.DRUG_INTERACTION:
        title = (
            template.format(first=medications[0], second=medications[1])
            if len(medications) >= 2 else fallback
        )
    else:
        title = template.format(first=medications[0]) if medications else fallback

    if severity is not None and AlertSeverity(severity) == AlertSeverity.CRITICAL:
        return f"CRITICAL: {title}"
    return title


def calculate_expiry(alert_type: AlertType, created_at: datetime) -> datetime | None:
    ttl = EXPIRY_POLICY[AlertType(alert_type)]
    return created_at + ttl if ttl else None


def risk_recommendations(assessment: SafetyAssessment) -> list[str]:
    """Recommendations from an assessment, most severe finding type first, de-duplicated."""
    candidates = [c.recommendation for c in assessment.contraindications.contraindications]
    candidates += [r for d in assessment.doses.validations if d.status.is_error for r in d.recommendations[:1]]
    candidates += [a.recommendation for a in assessment.allergies.alerts]
    candidates += [i.recommendation for i in assessment.interactions.interactions]
    return list(dict.fromkeys(c for c in candidates if c))


def risk_alternatives(assessment: SafetyAssessment) -> list[str]:
    candidates = [a for c in assessment.contraindications.contraindications for a in c.alternatives]
    candidates += [a for al in assessment.allergies.alerts for a in al.alternatives]
    return list(dict.fromkeys(candidates))


class AlertManager:
    """Creates, queries and transitions clinical alerts."""

    def __init__(
        self,
        store: AlertStore,
        broadcaster: Broadcaster | None = None,
        event_publisher: EventPublisher | None = None,
        executor: Executor | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Args:
            store: Alert persistence
            broadcaster: Real-time fan-out; alerts are only persisted if None
            event_publisher: Domain-event publisher for downstream consumers
            executor: Runs broadcasts and event publishing off the caller's thread; inline if None
            logger: Logger to use (module logger by default)
        """
        self.store = store
        self.broadcaster = broadcaster
        self.event_publisher = event_publisher
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    # --- Creation ---

    def create_alert(
        self,
        patient_id: str,
        alert_type: AlertType | str,
        severity: AlertSeverity | str,
        message: str,
        priority: AlertPriority | str | None = None,
        facility_id: str | None = None,
        organization_id: str | None = None,
        clinical_context: dict | None = None,
        risk_score: int | None = None,
        risk_level: RiskLevel | str | None = None,
        recommendations: list[str] | None = None,
        alternatives: list[str] | None = None,
        triggered_by: str | None = None,
        source: AlertSource | str = AlertSource.AUTOMATED,
        confidence: int = 100,
    ) -> Alert:
        """Persist a new alert and broadcast it if it needs immediate action.

        Raises:
            AlertPersistenceError: the alert could not be stored
        """
        alert_type = AlertType(alert_type)
        severity = AlertSeverity(severity)
        now = datetime.now()

        alert = Alert(
            id="",
            patient_id=patient_id,
            facility_id=facility_id,
            organization_id=organization_id,
            alert_type=alert_type,
            severity=severity,
            priority=AlertPriority(priority) if priority else AlertPriority.for_severity(severity),
            title=generate_title(alert_type, clinical_context, severity),
            message=message,
            clinical_context=clinical_context or {},
            risk_score=risk_score,
            risk_level=RiskLevel(risk_level) if risk_level else None,
            recommendations=list(recommendations or []),
            alternatives=list(alternatives or []),
            triggered_by=triggered_by,
            source=AlertSource(source),
            confidence=confidence,
            created_at=now,
            updated_at=now,
            expires_at=calculate_expiry(alert_type, now),
        )

        try:
            alert = self.store.save_alert(alert)
        except sqlite3.Error as e:
            self.logger.error(
                f"Failed to persist {alert_type.value} alert for {patient_ref(patient_id)}: {e}"
            )
            raise AlertPersistenceError("Alert could not be saved") from e

        self.logger.info(
            f"Created alert {alert.id} ({alert.alert_type.value}/{alert.severity.value}) "
            f"for {patient_ref(patient_id)}"
        )

        self._publish(ALERT_CREATED, self._event_payload(alert))

        if alert.requires_immediate_action:
            self.logger.warning(
                f"High-risk alert {alert.id}: severity={alert.severity.value} "
                f"risk={alert.risk_level.value if alert.risk_level else 'n/a'}"
            )
            self._dispatch(self._broadcast_alert, alert)

        return alert

    def create_risk_alert(
        self,
        patient_id: str,
        assessment: SafetyAssessment,
        subject: str,
        facility_id: str | None = None,
        organization_id: str | None = None,
        clinical_context: dict | None = None,
        triggered_by: str | None = None,
    ) -> Alert:
        """Create the alert for a high-risk or blocking safety assessment.

        The alert type follows the dominant finding (or the first degraded
        check when there are no findings). The alert is critical when the
        verdict blocks administration or the dominant finding saturates the
        score on its own.

        Args:
            patient_id: Patient the assessment was run for
            assessment: Completed safety assessment
            subject: What was assessed, used in the message (e.g. a medication name)
            facility_id: Facility room to notify
            organization_id: Organization room to notify
            clinical_context: Extra context merged over the assessment summary
            triggered_by: Acting user

        Raises:
            AlertPersistenceError: the alert could not be stored
        """
        verdict = assessment.verdict
        dominant = verdict.dominant_finding
        if dominant:
            alert_type = AlertType.for_finding(dominant.kind)
            summary = dominant.description
        else:
            alert_type = DEGRADED_ALERT_TYPES.get(
                verdict.degraded_checks[0] if verdict.degraded_checks else "", AlertType.DOSE_ERROR
            )
            summary = "Safety checks could not be completed"

        critical = verdict.blocks_administration or (
            dominant is not None and dominant.weight >= CRITICAL_FINDING_WEIGHT
        )

        context = {
            "riskFactors": dict(verdict.factors),
            "findings": [f.to_dict() for f in verdict.findings],
            "degradedChecks": list(verdict.degraded_checks),
        }
        context.update(clinical_context or {})

        return self.create_alert(
            patient_id=patient_id,
            facility_id=facility_id,
            organization_id=organization_id,
            alert_type=alert_type,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
            message=f"{AlertType.display_name(alert_type)} risk for {subject}: {summary}",
            clinical_context=context,
            risk_score=verdict.score,
            risk_level=verdict.level,
            recommendations=risk_recommendations(assessment),
            alternatives=risk_alternatives(assessment),
            triggered_by=triggered_by,
        )

    # --- Queries ---

    def get_alert(self, alert_id: str) -> Alert:
        alert = self.store.get_alert(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def get_alerts(
        self,
        patient_id: str,
        status: AlertStatus | str | None = None,
        severity: AlertSeverity | str | None = None,
        active_only: bool = False,
        limit: int = 100,
    ) -> list[Alert]:
        """A patient's alerts, newest first.

        Active alerts past their expiry are swept to expired before reading.
        """
        self.expire_due_alerts()
        return self.store.list_alerts(
            patient_id,
            status=AlertStatus(status) if status else None,
            severity=AlertSeverity(severity) if severity else None,
            active_only=active_only,
            limit=limit,
        )

    def get_alert_summary(
        self, organization_id: str | None = None, facility_id: str | None = None
    ) -> dict[str, Any]:
        return self.store.get_summary(organization_id=organization_id, facility_id=facility_id)

    @staticmethod
    def requires_immediate_action(alert: Alert) -> bool:
        return alert.requires_immediate_action

    # --- Transitions ---

    def acknowledge_alert(self, alert_id: str, user_id: str, note: str | None = None) -> Alert:
        """Mark an alert acknowledged.

        Raises:
            AlertNotFoundError: no alert with this id
            AlertTransitionError: alert is not active
        """
        now = datetime.now()
        alert = self._transition(
            alert_id,
            AlertStatus.ACKNOWLEDGED,
            user_id,
            {
                "acknowledged_by": user_id,
                "acknowledged_at": now,
                "acknowledgment_note": note,
            },
            now,
        )
        self.logger.info(f"Alert {alert_id} acknowledged by {user_id}")
        self._publish(ALERT_ACKNOWLEDGED, self._event_payload(alert))
        self._dispatch(
            self._notify_patient_room,
            alert,
            ALERT_ACKNOWLEDGED_EVENT,
            {"alertId": alert.id, "acknowledgedBy": user_id, "timestamp": now.isoformat()},
        )
        return alert

    def dismiss_alert(self, alert_id: str, user_id: str, reason: str) -> Alert:
        """Dismiss an active or acknowledged alert.

        Raises:
            AlertNotFoundError: no alert with this id
            AlertTransitionError: alert is already dismissed or expired
        """
        now = datetime.now()
        alert = self._transition(
            alert_id,
            AlertStatus.DISMISSED,
            user_id,
            {
                "dismissed_by": user_id,
                "dismissed_at": now,
                "dismissal_reason": reason,
            },
            now,
        )
        self.logger.info(f"Alert {alert_id} dismissed by {user_id}")
        self._publish(ALERT_DISMISSED, self._event_payload(alert))
        self._dispatch(
            self._notify_patient_room,
            alert,
            ALERT_DISMISSED_EVENT,
            {"alertId": alert.id, "dismissedBy": user_id, "timestamp": now.isoformat()},
        )
        return alert

    def expire_due_alerts(self, now: datetime | None = None) -> int:
        """Expire every active alert whose expiry has passed."""
        expired = self.store.expire_due(now)
        if expired:
            self.logger.info(f"Expired {len(expired)} alerts")
        return len(expired)

    def _transition(
        self,
        alert_id: str,
        target: AlertStatus,
        user_id: str,
        fields: dict[str, Any],
        now: datetime,
    ) -> Alert:
        alert = self.get_alert(alert_id)
        if alert.status == AlertStatus.ACTIVE and alert.is_expired(now):
            self.store.expire_due(now)
            alert = self.get_alert(alert_id)

        allowed_from = {s for s, targets in ALERT_TRANSITIONS.items() if target in targets}
        if alert.status not in allowed_from:
            raise AlertTransitionError(alert_id, alert.status.value, target.value)

        updated = self.store.transition(
            alert_id, target, allowed_from, performed_by=user_id, fields=fields, now=now
        )
        if not updated:
            # Lost a race with another transition
            current = self.get_alert(alert_id)
            raise AlertTransitionError(alert_id, current.status.value, target.value)

        return self.get_alert(alert_id)

    # --- Delivery ---

    def _dispatch(self, fn, *args) -> None:
        if self.broadcaster is None:
            return
        if self.executor is None:
            fn(*args)
            return
        try:
            self.executor.submit(fn, *args)
        except RuntimeError as e:
            # Executor shut down
            self.logger.error(f"Broadcast dispatch failed: {e}")

    def _publish(self, event_type: str, payload: dict[str, Any]) -> None:
        publish_safely(self.event_publisher, event_type, payload, self.logger, executor=self.executor)

    def _broadcast_alert(self, alert: Alert) -> None:
        try:
            self.broadcaster.broadcast_alert(alert)
        except Exception as e:
            self.logger.error(f"Failed to broadcast alert {alert.id}: {e}")

    def _notify_patient_room(self, alert: Alert, event: str, payload: dict[str, Any]) -> None:
        try:
            self.broadcaster.broadcast(patient_room(alert.patient_id), event, payload)
        except Exception as e:
            self.logger.error(f"Failed to broadcast {event} for alert {alert.id}: {e}")

    @staticmethod
    def _event_payload(alert: Alert) -> dict[str, Any]:
        return {
            "alertId": alert.id,
            "patientId": alert.patient_id,
            "facilityId": alert.facility_id,
            "organizationId": alert.organization_id,
            "alertType": alert.alert_type.value,
            "severity": alert.severity.value,
            "status": alert.status.value,
            "riskLevel": alert.risk_level.value if alert.risk_level else None,
        }
