"""Prescription gate.

Decides whether a new prescription may proceed::

    Evaluating -> Blocked               (absolute contraindication / toxic dose, 403)
               -> NeedsOverride         (high risk, no justification, 400)
               -> ApprovedWithWarnings  (medium risk, or high risk overridden, 201)
               -> ApprovedClean         (low / no risk, 201)

A block cannot be overridden. High-risk outcomes that proceed, and blocks,
raise a clinical alert once aggregation has completed.
"""

import logging
import uuid
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable

from common.clinical_safety.errors import AlertPersistenceError
from common.clinical_safety.models import Alert, Medication, PatientContext, RiskLevel
from common.clinical_safety.redaction import patient_ref

from .alert_manager import AlertManager
from .events import MEDICATION_OVERRIDE, MEDICATION_PRESCRIBED, EventPublisher, publish_safely
from .safety_check import MedicationSafetyChecker, SafetyAssessment


class GateOutcome(str, Enum):
    BLOCKED = "blocked"
    NEEDS_OVERRIDE = "needs-override"
    APPROVED_WITH_WARNINGS = "approved-with-warnings"
    APPROVED_CLEAN = "approved-clean"

    @property
    def http_status(self) -> int:
        return {
            "blocked": 403,
            "needs-override": 400,
            "approved-with-warnings": 201,
            "approved-clean": 201,
        }[self.value]

    @property
    def approved(self) -> bool:
        return self in (GateOutcome.APPROVED_WITH_WARNINGS, GateOutcome.APPROVED_CLEAN)


@dataclass(frozen=True)
class PrescriptionRequest:
    patient_id: str
    medication: Medication
    patient: PatientContext
    active_medications: tuple[Medication, ...] = ()
    prescriber_id: str | None = None
    override_reason: str | None = None
    facility_id: str | None = None
    organization_id: str | None = None

    @property
    def has_override(self) -> bool:
        return bool(self.override_reason and self.override_reason.strip())

    def medication_list(self) -> list[Medication]:
        """Active medications plus the new one, de-duplicated by identity.

        The new order replaces an active entry for the same drug so that its
        dose is the one validated.
        """
        by_key = {}
        for medication in (*self.active_medications, self.medication):
            if medication.key in by_key and medication is not self.medication:
                continue
            by_key[medication.key] = medication
        return list(by_key.values())


@dataclass
class GateDecision:
    outcome: GateOutcome
    assessment: SafetyAssessment
    message: str
    prescription: dict[str, Any] | None = None
    alert: Alert | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def http_status(self) -> int:
        return self.outcome.http_status

    def to_dict(self) -> dict[str, Any]:
        verdict = self.assessment.verdict
        body: dict[str, Any] = {
            "outcome": self.outcome.value,
            "message": self.message,
            "riskAssessment": verdict.to_dict(),
            "findings": self.assessment.to_dict(),
        }
        if self.outcome == GateOutcome.BLOCKED:
            body["blocked"] = True
        elif self.outcome == GateOutcome.NEEDS_OVERRIDE:
            body["requiresOverride"] = True
            body["riskFactors"] = dict(verdict.factors)
        else:
            body["prescription"] = self.prescription
            body["warnings"] = list(self.warnings)
        if self.alert:
            body["alertId"] = self.alert.id
        return body


class PrescriptionGate:
    """Applies the block / override policy to a prescription attempt."""

    def __init__(
        self,
        safety_checker: MedicationSafetyChecker,
        alert_manager: AlertManager | None = None,
        event_publisher: EventPublisher | None = None,
        on_approved: Callable[[dict[str, Any]], None] | None = None,
        executor: Executor | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Args:
            safety_checker: Runs the four checks and aggregates risk
            alert_manager: Records alerts for blocked and high-risk prescriptions
            event_publisher: Receives medication.prescribed / medication.override
            on_approved: Caller-supplied persistence for approved prescriptions
            executor: Runs event publishing off the request thread; inline if None
            logger: Logger to use (module logger by default)
        """
        self.safety_checker = safety_checker
        self.alert_manager = alert_manager
        self.event_publisher = event_publisher
        self.on_approved = on_approved
        self.executor = executor
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, request: PrescriptionRequest) -> GateDecision:
        assessment = self.safety_checker.assess(request.medication_list(), request.patient)
        verdict = assessment.verdict
        ref = patient_ref(request.patient_id)

        if verdict.blocks_administration:
            if request.has_override:
                self.logger.warning(f"Override supplied for blocked prescription ({ref}); ignored")
            self.logger.warning(
                f"Prescription blocked for {ref}: score={verdict.score} "
                f"degraded={list(verdict.degraded_checks)}"
            )
            decision = GateDecision(
                outcome=GateOutcome.BLOCKED,
                assessment=assessment,
                message="Medication administration blocked due to critical safety concerns",
            )
            decision.alert = self._raise_alert(request, decision)
            return decision

        if verdict.requires_override and not request.has_override:
            self.logger.info(f"Prescription for {ref} requires override: score={verdict.score}")
            return GateDecision(
                outcome=GateOutcome.NEEDS_OVERRIDE,
                assessment=assessment,
                message="High-risk prescription requires an override reason",
            )

        overridden = verdict.requires_override
        if overridden or verdict.level in (RiskLevel.MEDIUM, RiskLevel.HIGH):
            outcome = GateOutcome.APPROVED_WITH_WARNINGS
            message = "Prescription created with safety warnings"
        else:
            outcome = GateOutcome.APPROVED_CLEAN
            message = "Prescription created"

        prescription = self._build_prescription(request, assessment, overridden)
        if self.on_approved:
            self.on_approved(prescription)

        decision = GateDecision(
            outcome=outcome,
            assessment=assessment,
            message=message,
            prescription=prescription,
            warnings=self._warnings(assessment) if outcome == GateOutcome.APPROVED_WITH_WARNINGS else [],
        )

        if overridden:
            self.logger.warning(
                f"High-risk prescription {prescription['id']} overridden by "
                f"{request.prescriber_id or 'unknown prescriber'}; flagged for quality review"
            )
            publish_safely(
                self.event_publisher,
                MEDICATION_OVERRIDE,
                {
                    "prescriptionId": prescription["id"],
                    "patientId": request.patient_id,
                    "prescriberId": request.prescriber_id,
                    "riskScore": verdict.score,
                },
                self.logger,
                executor=self.executor,
            )

        publish_safely(
            self.event_publisher,
            MEDICATION_PRESCRIBED,
            {
                "prescriptionId": prescription["id"],
                "patientId": request.patient_id,
                "medication": request.medication.name,
                "safetyRiskLevel": verdict.level.value,
                "requiresQualityReview": prescription["requiresQualityReview"],
            },
            self.logger,
            executor=self.executor,
        )

        if verdict.level == RiskLevel.HIGH:
            decision.alert = self._raise_alert(request, decision)

        self.logger.info(f"Prescription {prescription['id']} for {ref}: {outcome.value}")
        return decision

    def _build_prescription(
        self, request: PrescriptionRequest, assessment: SafetyAssessment, overridden: bool
    ) -> dict[str, Any]:
        verdict = assessment.verdict
        return {
            "id": f"RX-{uuid.uuid4().hex[:10].upper()}",
            "patientId": request.patient_id,
            "prescriberId": request.prescriber_id,
            "facilityId": request.facility_id,
            "organizationId": request.organization_id,
            "medication": request.medication.to_dict(),
            "prescribedAt": datetime.now().isoformat(),
            "status": "active",
            "safetyCheckPerformed": True,
            "safetyRiskLevel": verdict.level.value,
            "riskScore": verdict.score,
            "overrideReason": request.override_reason if overridden else None,
            "requiresQualityReview": overridden,
            "degradedChecks": list(verdict.degraded_checks),
            "cdsFindings": {
                "interactions": len(assessment.interactions.interactions),
                "allergyAlerts": len(assessment.allergies.alerts),
                "contraindications": len(assessment.contraindications.contraindications),
                "doseIssues": sum(1 for v in assessment.doses.validations if v.status.is_error),
            },
        }

    @staticmethod
    def _warnings(assessment: SafetyAssessment) -> list[str]:
        warnings = [
            f"{finding.kind.value} ({finding.severity}): {finding.description}"
            for finding in assessment.verdict.findings
        ]
        warnings.extend(
            f"{name} check unavailable; findings unknown"
            for name in assessment.verdict.degraded_checks
        )
        return warnings

    def _raise_alert(self, request: PrescriptionRequest, decision: GateDecision) -> Alert | None:
        if self.alert_manager is None:
            return None
        try:
            return self.alert_manager.create_risk_alert(
                request.patient_id,
                decision.assessment,
                subject=request.medication.name,
                facility_id=request.facility_id,
                organization_id=request.organization_id,
                clinical_context={
                    "medication": request.medication.to_dict(),
                    "outcome": decision.outcome.value,
                    "overridden": decision.outcome.approved and request.has_override,
                },
                triggered_by=request.prescriber_id,
            )
        except AlertPersistenceError as e:
            self.logger.error(f"Prescription alert not recorded: {e}")
            return None
