"""Tests for alert persistence, lifecycle and broadcast fan-out."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from common.channels.broadcaster import (
    ALL_STAFF_ROOM,
    CLINICAL_ALERT_EVENT,
    CRITICAL_ALERT_EVENT,
    InMemoryConnection,
)
from common.clinical_safety.errors import (
    AlertNotFoundError,
    AlertPersistenceError,
    AlertTransitionError,
)
from common.clinical_safety.models import (
    Alert,
    AlertPriority,
    AlertSeverity,
    AlertStatus,
    AlertType,
    Medication,
    PatientContext,
    RiskLevel,
)
from safety_src.alert_manager import calculate_expiry, generate_title
from safety_src.events import ALERT_ACKNOWLEDGED, ALERT_CREATED


def _critical_alert(manager, patient_id="P-1001", **kwargs):
    return manager.create_alert(
        patient_id=patient_id,
        alert_type=AlertType.DRUG_INTERACTION,
        severity=AlertSeverity.CRITICAL,
        message="Linezolid with sertraline: risk of serotonin syndrome",
        **kwargs,
    )


class ExplodingConnection(InMemoryConnection):
    def send(self, event, payload):
        raise ConnectionError("socket closed")


def test_create_alert_defaults(alert_manager, event_publisher):
    """Test the defaults filled in for a new alert."""
    alert = _critical_alert(alert_manager)

    assert alert.id.startswith("CA-")
    assert alert.status == AlertStatus.ACTIVE
    assert alert.priority == AlertPriority.URGENT
    assert alert.title == "CRITICAL: Drug Interaction Alert"
    assert alert.expires_at - alert.created_at == timedelta(hours=24)
    assert event_publisher.of_type(ALERT_CREATED)[0]["alertId"] == alert.id


def test_expiry_policy():
    """Test the expiry window for each alert type."""
    now = datetime(2026, 1, 1, 12, 0)
    assert calculate_expiry(AlertType.ALLERGY, now) is None
    assert calculate_expiry(AlertType.CONTRAINDICATION, now) is None
    assert calculate_expiry(AlertType.DOSE_ERROR, now) == now + timedelta(hours=12)
    assert calculate_expiry(AlertType.GUIDELINE_DEVIATION, now) == now + timedelta(days=7)


def test_generate_title_falls_back_without_context():
    """Without medications in the context the type's generic title is used."""
    assert generate_title(AlertType.ALLERGY, severity=AlertSeverity.WARNING) == "Allergy Alert"
    assert generate_title("dose-error", severity="critical") == "CRITICAL: Dose Error Alert"
    assert generate_title(AlertType.DRUG_INTERACTION, {"medications": ["Warfarin"]}) == "Drug Interaction Alert"
    assert generate_title(AlertType.GUIDELINE_DEVIATION, {}) == "Guideline Deviation"


def test_generate_title_names_the_medications():
    """Different clinical contexts give different titles for the same type."""
    warfarin = {"findings": [{"kind": "interaction", "medications": ["warfarin", "aspirin"]}]}
    linezolid = {"medications": [{"name": "Linezolid"}, {"name": "Sertraline"}]}

    assert generate_title(AlertType.DRUG_INTERACTION, warfarin) == "Drug Interaction: Warfarin + Aspirin"
    assert generate_title(AlertType.DRUG_INTERACTION, linezolid) == "Drug Interaction: Linezolid + Sertraline"
    assert (
        generate_title(AlertType.CONTRAINDICATION, {"medication": {"name": "Lisinopril"}}, "critical")
        == "CRITICAL: Contraindication: Lisinopril"
    )
    assert generate_title(AlertType.ALLERGY, {"medication": "amoxicillin"}) == "Allergy Alert: Amoxicillin"
    assert (
        generate_title(AlertType.GUIDELINE_DEVIATION, {"guideline": "VTE prophylaxis"})
        == "Guideline Deviation: VTE prophylaxis"
    )


def test_generate_title_prefers_the_matching_finding():
    """The title uses the finding of the alert's own kind, not the first one."""
    context = {
        "medications": ["Metformin", "Lisinopril"],
        "findings": [
            {"kind": "interaction", "medications": ["lisinopril", "spironolactone"]},
            {"kind": "dose", "medications": ["metformin"]},
        ],
    }
    assert generate_title(AlertType.DOSE_ERROR, context) == "Dose Error: Metformin"


def test_create_risk_alert_from_assessment(alert_manager, safety_checker):
    """A high-risk assessment becomes a persisted alert with its findings."""
    assessment = safety_checker.assess(
        [Medication("Warfarin", "5mg", "daily"), Medication("Aspirin", "81mg", "daily")],
        PatientContext.build(age=72),
    )

    alert = alert_manager.create_risk_alert(
        "P-1001", assessment, subject="Warfarin, Aspirin", clinical_context={"source": "ward-round"}
    )

    stored = alert_manager.get_alert(alert.id)
    assert stored.alert_type == AlertType.DRUG_INTERACTION
    assert stored.risk_level == RiskLevel.HIGH
    assert stored.risk_score == assessment.verdict.score
    assert stored.clinical_context["riskFactors"]["interaction"] == 1
    assert stored.clinical_context["source"] == "ward-round"
    assert stored.message.startswith("Drug Interaction risk for Warfarin, Aspirin:")
    assert "Warfarin" in stored.title and "Aspirin" in stored.title


def test_critical_alert_fan_out(alert_manager, broadcaster):
    """Critical alerts reach the patient, facility, organization and staff rooms."""
    registry = broadcaster.registry
    rooms = ["patient-P-1001", "facility-FAC-1", "organization-ORG-1", ALL_STAFF_ROOM]
    connections = {}
    for room in rooms:
        connections[room] = InMemoryConnection(room)
        registry.join(room, connections[room])
    bystander = InMemoryConnection("other-patient")
    registry.join("patient-P-9999", bystander)

    alert = _critical_alert(alert_manager, facility_id="FAC-1", organization_id="ORG-1")

    patient_events = connections["patient-P-1001"].events(CLINICAL_ALERT_EVENT)
    assert patient_events[0]["alertId"] == alert.id
    assert "clinicalContext" not in patient_events[0]
    assert connections["facility-FAC-1"].events(CLINICAL_ALERT_EVENT)[0]["id"] == alert.id
    assert connections["organization-ORG-1"].events(CLINICAL_ALERT_EVENT)[0]["id"] == alert.id
    assert connections[ALL_STAFF_ROOM].events(CRITICAL_ALERT_EVENT)[0]["id"] == alert.id
    assert bystander.messages == []
    assert broadcaster.broadcast_alert(alert) == rooms


def test_warning_alert_is_not_broadcast(alert_manager, broadcaster):
    """Test that warning alerts are stored but not pushed to subscribers."""
    connection = InMemoryConnection()
    broadcaster.registry.join("patient-P-1001", connection)

    alert_manager.create_alert(
        patient_id="P-1001",
        alert_type=AlertType.DOSE_ERROR,
        severity=AlertSeverity.WARNING,
        message="Dose near maximum",
    )

    assert connection.messages == []


def test_broadcast_failure_does_not_fail_creation(alert_manager, broadcaster):
    """A broken subscriber does not stop the alert being recorded."""
    healthy = InMemoryConnection("healthy")
    broadcaster.registry.join("patient-P-1001", ExplodingConnection("broken"))
    broadcaster.registry.join("patient-P-1001", healthy)

    alert = _critical_alert(alert_manager)

    assert alert_manager.get_alert(alert.id).status == AlertStatus.ACTIVE
    assert len(healthy.events(CLINICAL_ALERT_EVENT)) == 1


def test_persistence_failure_raises(alert_manager, monkeypatch):
    """Test that a storage error surfaces as AlertPersistenceError."""
    def fail(alert):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(alert_manager.store, "save_alert", fail)
    with pytest.raises(AlertPersistenceError):
        _critical_alert(alert_manager)


def test_acknowledge_then_dismiss(alert_manager, event_publisher, broadcaster):
    """Test the acknowledge and dismiss transitions and their broadcasts."""
    connection = InMemoryConnection()
    broadcaster.registry.join("patient-P-1001", connection)
    alert = _critical_alert(alert_manager)

    acknowledged = alert_manager.acknowledge_alert(alert.id, "nurse-1", note="Pharmacy paged")
    assert acknowledged.status == AlertStatus.ACKNOWLEDGED
    assert acknowledged.acknowledged_by == "nurse-1"
    assert acknowledged.acknowledgment_note == "Pharmacy paged"
    assert acknowledged.acknowledged_at is not None
    assert connection.events("alert:acknowledged")[0]["acknowledgedBy"] == "nurse-1"
    assert event_publisher.of_type(ALERT_ACKNOWLEDGED)[0]["status"] == "acknowledged"

    dismissed = alert_manager.dismiss_alert(alert.id, "dr-house", "Therapy changed")
    assert dismissed.status == AlertStatus.DISMISSED
    assert dismissed.dismissal_reason == "Therapy changed"

    actions = [entry["action"] for entry in alert_manager.store.get_audit_log(alert.id)]
    assert actions == ["created", "acknowledged", "dismissed"]


def test_transitions_are_forward_only(alert_manager):
    """An acknowledged alert cannot be acknowledged again."""
    alert = _critical_alert(alert_manager)
    alert_manager.acknowledge_alert(alert.id, "nurse-1")

    with pytest.raises(AlertTransitionError) as exc_info:
        alert_manager.acknowledge_alert(alert.id, "nurse-2")
    assert exc_info.value.current == "acknowledged"

    alert_manager.dismiss_alert(alert.id, "nurse-1", "Resolved")
    with pytest.raises(AlertTransitionError):
        alert_manager.dismiss_alert(alert.id, "nurse-1", "Again")


def test_unknown_alert(alert_manager):
    """Test acknowledging an alert that does not exist."""
    with pytest.raises(AlertNotFoundError):
        alert_manager.acknowledge_alert("CA-DOESNOTEXIST", "nurse-1")


def test_expire_due_alerts(alert_manager):
    """Test that only alerts past their expiry are expired."""
    dose_alert = alert_manager.create_alert(
        patient_id="P-1001",
        alert_type=AlertType.DOSE_ERROR,
        severity=AlertSeverity.WARNING,
        message="Dose above range",
    )
    allergy_alert = alert_manager.create_alert(
        patient_id="P-1001",
        alert_type=AlertType.ALLERGY,
        severity=AlertSeverity.WARNING,
        message="Penicillin class warning",
    )

    expired = alert_manager.expire_due_alerts(now=datetime.now() + timedelta(hours=13))

    assert expired == 1
    assert alert_manager.get_alert(dose_alert.id).status == AlertStatus.EXPIRED
    assert alert_manager.get_alert(allergy_alert.id).status == AlertStatus.ACTIVE
    with pytest.raises(AlertTransitionError):
        alert_manager.acknowledge_alert(dose_alert.id, "nurse-1")


def test_overdue_alerts_expired_on_read(alert_manager, alert_store):
    """Overdue alerts are expired lazily when read."""
    created = datetime.now() - timedelta(days=2)
    alert_store.save_alert(Alert(
        id="",
        patient_id="P-1001",
        alert_type=AlertType.DRUG_INTERACTION,
        severity=AlertSeverity.WARNING,
        priority=AlertPriority.HIGH,
        title="Drug Interaction Alert",
        message="Stale interaction alert",
        created_at=created,
        expires_at=created + timedelta(hours=24),
    ))

    alerts = alert_manager.get_alerts("P-1001")

    assert [a.status for a in alerts] == [AlertStatus.EXPIRED]
    assert alert_manager.get_alerts("P-1001", active_only=True) == []


def test_get_alerts_filters_and_order(alert_manager):
    """Test patient alert filters and newest-first ordering."""
    first = _critical_alert(alert_manager)
    second = alert_manager.create_alert(
        patient_id="P-1001",
        alert_type=AlertType.ALLERGY,
        severity=AlertSeverity.WARNING,
        message="Cross-reactivity warning",
    )
    _critical_alert(alert_manager, patient_id="P-2002")

    assert [a.id for a in alert_manager.get_alerts("P-1001")] == [second.id, first.id]
    assert [a.id for a in alert_manager.get_alerts("P-1001", severity="critical")] == [first.id]

    alert_manager.acknowledge_alert(first.id, "nurse-1")
    assert [a.id for a in alert_manager.get_alerts("P-1001", active_only=True)] == [second.id]
    assert [a.id for a in alert_manager.get_alerts("P-1001", status="acknowledged")] == [first.id]


def test_alert_summary(alert_manager):
    """Test summary counts for an organization."""
    _critical_alert(alert_manager, facility_id="FAC-1", organization_id="ORG-1")
    alert_manager.create_alert(
        patient_id="P-2002",
        alert_type=AlertType.ALLERGY,
        severity=AlertSeverity.WARNING,
        message="Allergy warning",
        facility_id="FAC-2",
        organization_id="ORG-1",
    )

    summary = alert_manager.get_alert_summary(organization_id="ORG-1")
    assert summary["totalAlerts"] == 2
    assert summary["activeAlerts"] == 2
    assert summary["criticalAlerts"] == 1
    assert summary["byType"] == {"drug-interaction": 1, "allergy": 1}

    assert alert_manager.get_alert_summary(facility_id="FAC-2")["totalAlerts"] == 1
    assert alert_manager.get_alert_summary(organization_id="ORG-404")["totalAlerts"] == 0


def test_alert_round_trips_json_fields(alert_manager):
    """Test that list and dict fields survive storage."""
    alert = alert_manager.create_alert(
        patient_id="P-1001",
        alert_type="contraindication",
        severity="critical",
        message="ACE inhibitor in pregnancy",
        clinical_context={"medication": {"name": "Lisinopril"}},
        recommendations=["Do not administer."],
        alternatives=["labetalol"],
        risk_score=100,
        risk_level="high",
    )

    stored = alert_manager.get_alert(alert.id)
    assert stored.clinical_context == {"medication": {"name": "Lisinopril"}}
    assert stored.recommendations == ["Do not administer."]
    assert stored.alternatives == ["labetalol"]
    assert stored.expires_at is None
    assert stored.to_dict()["riskLevel"] == "high"
