"""Request payload validation for the clinical safety API.

Each ``parse_*`` function converts a JSON body into domain objects, collecting
every problem before raising ``RequestValidationError`` so a client sees all
offending fields at once.
"""

from typing import Any

from common.clinical_safety.errors import RequestValidationError
from common.clinical_safety.models import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    AllergySeverity,
    HepaticFunction,
    Medication,
    PatientAllergy,
    PatientCondition,
    PatientContext,
)
from safety_src.gate import PrescriptionRequest

MAX_INTERACTION_MEDICATIONS = 20
MAX_MEDICATIONS = 50


def require_object(data: Any) -> dict:
    if not isinstance(data, dict):
        raise RequestValidationError({"body": "JSON object required"})
    return data


def _string(data: dict, key: str, errors: dict, required: bool = True) -> str | None:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            errors[key] = "is required"
        return None
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        errors[key] = "must be a string"
        return None
    return str(value).strip()


def _number(
    data: dict, key: str, errors: dict, minimum: float, maximum: float
) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors[key] = "must be a number"
        return None
    if not minimum <= value <= maximum:
        errors[key] = f"must be between {minimum:g} and {maximum:g}"
        return None
    return float(value)


def _medication(value: Any, path: str, errors: dict, require_dose: bool) -> Medication | None:
    if isinstance(value, str):
        if not value.strip():
            errors[path] = "medication name is required"
            return None
        if require_dose:
            errors[f"{path}.dose"] = "is required"
            return None
        return Medication(name=value.strip())

    if not isinstance(value, dict):
        errors[path] = "must be a medication name or object"
        return None

    name = value.get("name")
    if not isinstance(name, str) or not name.strip():
        errors[f"{path}.name"] = "is required"
        return None

    dose = value.get("dose", value.get("dosage"))
    if dose is not None and not isinstance(dose, (str, int, float)):
        errors[f"{path}.dose"] = "must be a string such as '500mg'"
        return None
    if require_dose and (dose is None or not str(dose).strip()):
        errors[f"{path}.dose"] = "is required"
        return None

    frequency = value.get("frequency")
    if frequency is not None and not isinstance(frequency, str):
        errors[f"{path}.frequency"] = "must be a string such as 'bid'"
        return None

    return Medication.from_value({**value, "name": name.strip(), "dose": "" if dose is None else str(dose)})


def _medication_list(
    data: dict,
    key: str,
    errors: dict,
    min_items: int = 1,
    max_items: int = MAX_MEDICATIONS,
    require_dose: bool = False,
) -> list[Medication]:
    values = data.get(key)
    if values is None:
        errors[key] = "is required"
        return []
    if not isinstance(values, list):
        errors[key] = "must be a list"
        return []
    if not min_items <= len(values) <= max_items:
        errors[key] = f"must contain between {min_items} and {max_items} medications"
        return []

    medications = []
    for i, value in enumerate(values):
        medication = _medication(value, f"{key}[{i}]", errors, require_dose)
        if medication:
            medications.append(medication)
    return medications


def _text_fields(value: dict, path: str, errors: dict, keys: tuple[str, ...]) -> bool:
    """Check that the given keys of an object are strings when present."""
    ok = True
    for key in keys:
        if value.get(key) is not None and not isinstance(value[key], str):
            errors[f"{path}.{key}"] = "must be a string"
            ok = False
    return ok


def _allergy_list(data: dict, key: str, errors: dict) -> list[PatientAllergy]:
    values = data.get(key) or []
    if not isinstance(values, list):
        errors[key] = "must be a list"
        return []

    allergies = []
    for i, value in enumerate(values):
        path = f"{key}[{i}]"
        if isinstance(value, str) and value.strip():
            allergies.append(PatientAllergy(allergen=value.strip()))
            continue
        if not isinstance(value, dict) or not isinstance(value.get("allergen"), str) or not value["allergen"].strip():
            errors[path] = "must be an allergen name or {allergen, severity, reaction}"
            continue
        if not _text_fields(value, path, errors, ("reaction",)):
            continue
        try:
            severity = AllergySeverity.parse(value.get("severity"))
        except ValueError:
            errors[f"{path}.severity"] = (
                "must be one of " + ", ".join(s.value for s in AllergySeverity)
            )
            continue
        allergies.append(PatientAllergy(
            allergen=value["allergen"].strip(),
            severity=severity,
            reaction=value.get("reaction"),
        ))
    return allergies


def _condition_list(data: dict, key: str, errors: dict) -> list[PatientCondition]:
    values = data.get(key) or []
    if not isinstance(values, list):
        errors[key] = "must be a list"
        return []

    conditions = []
    for i, value in enumerate(values):
        path = f"{key}[{i}]"
        if isinstance(value, str) and value.strip():
            conditions.append(PatientCondition.from_value(value.strip()))
            continue
        if not isinstance(value, dict):
            errors[path] = "must be a condition name or {code, name, status}"
            continue
        if not _text_fields(value, path, errors, ("code", "name", "status")):
            continue
        if not (value.get("code") or "").strip() and not (value.get("name") or "").strip():
            errors[path] = "must be a condition name or {code, name, status}"
            continue
        conditions.append(PatientCondition(
            code=(value.get("code") or "").strip(),
            name=(value.get("name") or "").strip(),
            status=(value.get("status") or "active").strip().lower(),
        ))
    return conditions


def _patient_context(data: dict, errors: dict, allergies=None, conditions=None) -> PatientContext:
    hepatic = data.get("hepaticFunction")
    if hepatic is not None:
        try:
            hepatic = HepaticFunction(hepatic)
        except (ValueError, TypeError):
            errors["hepaticFunction"] = "must be one of " + ", ".join(h.value for h in HepaticFunction)
            hepatic = None

    return PatientContext(
        allergies=tuple(allergies if allergies is not None else _allergy_list(data, "allergies", errors)),
        conditions=tuple(conditions if conditions is not None else _condition_list(data, "conditions", errors)),
        age=_number(data, "patientAge", errors, 0, 130),
        weight=_number(data, "patientWeight", errors, 0.2, 700),
        renal_function=_number(data, "renalFunction", errors, 0, 200),
        hepatic_function=hepatic,
    )


def _raise_if(errors: dict) -> None:
    if errors:
        raise RequestValidationError(errors)


# --- Endpoint payloads ---


def parse_safety_check(data: Any) -> tuple[str, list[Medication], PatientContext]:
    data = require_object(data)
    errors: dict[str, str] = {}
    patient_id = _string(data, "patientId", errors)
    medications = _medication_list(data, "medications", errors)
    context = _patient_context(data, errors)
    _raise_if(errors)
    return patient_id, medications, context


def parse_interaction_check(data: Any) -> list[Medication]:
    data = require_object(data)
    errors: dict[str, str] = {}
    medications = _medication_list(
        data, "medications", errors, min_items=2, max_items=MAX_INTERACTION_MEDICATIONS
    )
    _raise_if(errors)
    return medications


def parse_allergy_check(data: Any) -> tuple[list[Medication], list[PatientAllergy]]:
    data = require_object(data)
    errors: dict[str, str] = {}
    medications = _medication_list(data, "medications", errors)
    allergies = _allergy_list(data, "allergies", errors)
    _raise_if(errors)
    return medications, allergies


def parse_contraindication_check(data: Any) -> tuple[list[Medication], list[PatientCondition]]:
    data = require_object(data)
    errors: dict[str, str] = {}
    medications = _medication_list(data, "medications", errors)
    conditions = _condition_list(data, "conditions", errors)
    _raise_if(errors)
    return medications, conditions


def parse_guideline_check(data: Any) -> tuple[list[Medication], list[PatientCondition]]:
    data = require_object(data)
    errors: dict[str, str] = {}
    medications = _medication_list(data, "medications", errors, min_items=0) if "medications" in data else []
    conditions = _condition_list(data, "conditions", errors)
    if not conditions and "conditions" not in errors:
        errors["conditions"] = "at least one condition is required"
    _raise_if(errors)
    return medications, conditions


def parse_dose_validation(data: Any) -> tuple[list[Medication], PatientContext]:
    data = require_object(data)
    errors: dict[str, str] = {}
    medications = _medication_list(data, "medications", errors, require_dose=True)
    context = _patient_context(data, errors, allergies=(), conditions=())
    _raise_if(errors)
    return medications, context


def parse_prescription(data: Any, prescriber_id: str | None = None) -> PrescriptionRequest:
    data = require_object(data)
    errors: dict[str, str] = {}
    patient_id = _string(data, "patientId", errors)

    medication = None
    if data.get("medication") is None:
        errors["medication"] = "is required"
    else:
        medication = _medication(data["medication"], "medication", errors, require_dose=True)

    active = _medication_list(data, "activeMedications", errors, min_items=0) if "activeMedications" in data else []
    context = _patient_context(data, errors)
    override_reason = _string(data, "overrideReason", errors, required=False)
    _raise_if(errors)

    return PrescriptionRequest(
        patient_id=patient_id,
        medication=medication,
        patient=context,
        active_medications=tuple(active),
        prescriber_id=prescriber_id or _string(data, "prescriberId", {}, required=False),
        override_reason=override_reason,
        facility_id=_string(data, "facilityId", {}, required=False),
        organization_id=_string(data, "organizationId", {}, required=False),
    )


def parse_alert_filters(args) -> dict[str, Any]:
    errors: dict[str, str] = {}
    filters: dict[str, Any] = {}

    status = args.get("status")
    if status:
        try:
            filters["status"] = AlertStatus(status)
        except ValueError:
            errors["status"] = "must be one of " + ", ".join(s.value for s in AlertStatus)

    severity = args.get("severity")
    if severity:
        try:
            filters["severity"] = AlertSeverity(severity)
        except ValueError:
            errors["severity"] = "must be one of " + ", ".join(s.value for s in AlertSeverity)

    filters["active_only"] = str(args.get("activeOnly", "")).lower() in ("1", "true", "yes")

    limit = args.get("limit")
    if limit is not None:
        try:
            filters["limit"] = int(limit)
            if not 1 <= filters["limit"] <= 500:
                raise ValueError
        except ValueError:
            errors["limit"] = "must be an integer between 1 and 500"

    _raise_if(errors)
    return filters


def parse_acknowledgement(data: Any) -> str | None:
    """The optional acknowledgement note."""
    data = require_object(data if data is not None else {})
    note = data.get("note")
    if note is not None and not isinstance(note, str):
        raise RequestValidationError({"note": "must be a string"})
    if not note or not note.strip():
        return None
    return note.strip()


def parse_dismissal(data: Any) -> str:
    data = require_object(data if data is not None else {})
    errors: dict[str, str] = {}
    reason = data.get("reason")
    if reason is None or (isinstance(reason, str) and not reason.strip()):
        errors["reason"] = "is required"
    elif not isinstance(reason, str):
        errors["reason"] = "must be a string"
    _raise_if(errors)
    return reason.strip()


def parse_manual_alert(data: Any) -> dict[str, Any]:
    data = require_object(data)
    errors: dict[str, str] = {}
    fields = {
        "patient_id": _string(data, "patientId", errors),
        "message": _string(data, "message", errors),
        "facility_id": _string(data, "facilityId", errors, required=False),
        "organization_id": _string(data, "organizationId", errors, required=False),
    }
    for key, enum, target in (
        ("alertType", AlertType, "alert_type"),
        ("severity", AlertSeverity, "severity"),
    ):
        value = data.get(key)
        try:
            fields[target] = enum(value)
        except (ValueError, TypeError):
            errors[key] = "must be one of " + ", ".join(v.value for v in enum)

    recommendations = data.get("recommendations") or []
    if not isinstance(recommendations, list) or not all(isinstance(r, str) for r in recommendations):
        errors["recommendations"] = "must be a list of strings"
    fields["recommendations"] = recommendations

    _raise_if(errors)
    return fields
