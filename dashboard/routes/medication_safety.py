"""Medication safety check and prescribing routes.

    POST /medication-safety/check           all four checks + overall risk
    POST /drug-interactions/check           2-20 medications
    GET  /drug-interactions/medication/<n>  known interactions of one drug
    GET  /drug-interactions/statistics
    POST /allergy-alerts/check
    POST /contraindications/check
    GET  /contraindications/medication/<n>/absolute
    POST /dose-validation/validate
    POST /guidelines/check                  practice guidelines for conditions
    GET  /guidelines/search                 ?q=
    POST /prescriptions                     prescription gate
    GET  /health
"""

import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

from common.clinical_safety.errors import (
    AlertPersistenceError,
    RequestValidationError,
    SafetyCheckUnavailable,
)
from common.clinical_safety.models import RiskLevel
from common.clinical_safety.redaction import patient_ref
from dashboard.services.safety import get_safety_services
from dashboard.services.user import get_user_from_request
from dashboard.utils.api_response import api_success
from dashboard.utils.validation import (
    parse_allergy_check,
    parse_contraindication_check,
    parse_dose_validation,
    parse_guideline_check,
    parse_interaction_check,
    parse_prescription,
    parse_safety_check,
)

logger = logging.getLogger(__name__)

medication_safety_bp = Blueprint("medication_safety", __name__)


@medication_safety_bp.route("/medication-safety/check", methods=["POST"])
def check_medication_safety():
    """Run every safety check for a patient's medication list.

    A high-risk result is recorded as a clinical alert; persisting and
    broadcasting it never fails the check itself.
    """
    patient_id, medications, context = parse_safety_check(request.get_json(silent=True))
    services = get_safety_services()

    assessment = services.safety_checker.assess(medications, context)
    verdict = assessment.verdict
    data = {"patientId": patient_id, **assessment.to_dict()}

    if verdict.level == RiskLevel.HIGH:
        logger.warning(f"High-risk medication check for {patient_ref(patient_id)}: score={verdict.score}")
        try:
            alert = services.alert_manager.create_risk_alert(
                patient_id,
                assessment,
                subject=", ".join(m.name for m in medications),
                clinical_context={
                    "medications": [m.to_dict() for m in medications],
                    "allergies": [a.to_dict() for a in context.allergies],
                    "conditions": [c.to_dict() for c in context.conditions],
                },
                triggered_by=get_user_from_request(),
            )
            data["alertId"] = alert.id
        except AlertPersistenceError as e:
            logger.error(f"Medication safety alert not recorded: {e}")

    return api_success(data=data)


@medication_safety_bp.route("/drug-interactions/check", methods=["POST"])
def check_drug_interactions():
    medications = parse_interaction_check(request.get_json(silent=True))
    result = get_safety_services().safety_checker.interaction_checker.check_interactions(medications)
    return api_success(data=result.to_dict())


@medication_safety_bp.route("/drug-interactions/medication/<name>")
def medication_interactions(name):
    interactions = get_safety_services().safety_checker.interaction_checker.interactions_for_medication(name)
    return api_success(data={
        "medication": name,
        "interactions": [i.to_dict() for i in interactions],
    })


@medication_safety_bp.route("/drug-interactions/statistics")
def interaction_statistics():
    return api_success(data=get_safety_services().safety_checker.interaction_checker.statistics())


@medication_safety_bp.route("/allergy-alerts/check", methods=["POST"])
def check_allergies():
    medications, allergies = parse_allergy_check(request.get_json(silent=True))
    result = get_safety_services().safety_checker.allergy_checker.check_allergies(medications, allergies)
    return api_success(data=result.to_dict())


@medication_safety_bp.route("/contraindications/check", methods=["POST"])
def check_contraindications():
    medications, conditions = parse_contraindication_check(request.get_json(silent=True))
    checker = get_safety_services().safety_checker.contraindication_checker
    result = checker.check_contraindications(medications, conditions)
    return api_success(data=result.to_dict())


@medication_safety_bp.route("/contraindications/medication/<name>/absolute")
def absolute_contraindications(name):
    checker = get_safety_services().safety_checker.contraindication_checker
    return api_success(data={
        "medication": name,
        "contraindications": checker.absolute_contraindications(name),
    })


@medication_safety_bp.route("/dose-validation/validate", methods=["POST"])
def validate_doses():
    medications, context = parse_dose_validation(request.get_json(silent=True))
    result = get_safety_services().safety_checker.dose_validator.validate_doses(medications, context)
    return api_success(data=result.to_dict())


@medication_safety_bp.route("/guidelines/check", methods=["POST"])
def check_guidelines():
    medications, conditions = parse_guideline_check(request.get_json(silent=True))
    advisor = get_safety_services().safety_checker.guideline_advisor
    if advisor is None:
        raise SafetyCheckUnavailable("guidelines", "not configured")
    return api_success(data=advisor.guidelines_for(medications, conditions).to_dict())


@medication_safety_bp.route("/guidelines/search")
def search_guidelines():
    query = (request.args.get("q") or "").strip()
    if not query:
        raise RequestValidationError({"q": "is required"})
    advisor = get_safety_services().safety_checker.guideline_advisor
    if advisor is None:
        raise SafetyCheckUnavailable("guidelines", "not configured")
    return api_success(data={"query": query, "guidelines": advisor.search(query)})


@medication_safety_bp.route("/prescriptions", methods=["POST"])
def prescribe_medication():
    """Gate a new prescription on the safety checks.

    Returns 201 when approved, 400 with requiresOverride when a high-risk
    prescription lacks an override reason, 403 when administration is blocked.
    """
    prescription_request = parse_prescription(
        request.get_json(silent=True), prescriber_id=get_user_from_request()
    )
    decision = get_safety_services().gate.evaluate(prescription_request)

    if decision.outcome.approved:
        return api_success(
            data=decision.to_dict(),
            message=decision.message,
            status_code=decision.http_status,
        )

    return jsonify({
        "success": False,
        "error": decision.message,
        **decision.to_dict(),
    }), decision.http_status


@medication_safety_bp.route("/health")
def health():
    services = get_safety_services()
    return jsonify({
        "status": "healthy",
        "service": "clinical-safety",
        "referenceDataset": services.reference_store.dataset_version,
        "timestamp": datetime.now().isoformat(),
    })
