"""Dose range validation against patient physiology.

Adult reference ranges are adjusted for the patient before comparison:

- Pediatric (<18 y with a weight): Clark's rule, adult dose x weight / 70 kg
- Geriatric (>=65 y): percentage reduction of the maximum
- Renal: GFR tier factor applied to the maximum
- Hepatic: per-grade factor applied to the maximum

Reductions multiply. A dose that cannot be parsed or converted into the
range's unit is reported as toxic.
"""

import re
from typing import Iterable

from common.clinical_safety.models import (
    DoseStatus,
    DoseValidation,
    DoseValidationResult,
    Medication,
    PatientContext,
)

from .base import BaseChecker

ADULT_REFERENCE_WEIGHT_KG = 70
GERIATRIC_AGE = 65
PEDIATRIC_AGE = 18

# Factor to convert one unit into milligrams
UNIT_TO_MG = {
    "g": 1000.0,
    "mg": 1.0,
    "mcg": 0.001,
}

UNIT_ALIASES = {
    "g": "g", "gm": "g", "gram": "g", "grams": "g",
    "mg": "mg", "milligram": "mg", "milligrams": "mg",
    "mcg": "mcg", "ug": "mcg", "µg": "mcg", "microgram": "mcg", "micrograms": "mcg",
}

FREQUENCY_MAP = {
    "once": 1, "stat": 1, "od": 1, "qd": 1, "daily": 1, "once daily": 1,
    "qam": 1, "qpm": 1, "qhs": 1, "nightly": 1,
    "bid": 2, "bd": 2, "twice daily": 2,
    "tid": 3, "tds": 3, "three times daily": 3,
    "qid": 4, "qds": 4, "four times daily": 4,
}

_DOSE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Zµ]+)?\s*$")
_QH_PATTERN = re.compile(r"^q\s*(\d+(?:\.\d+)?)\s*h(?:rs?|ours?)?$")
_EVERY_PATTERN = re.compile(r"^every\s+(\d+(?:\.\d+)?)\s*h(?:rs?|ours?)?$")
_TIMES_PATTERN = re.compile(r"^(\d+)\s*(?:x|times)\s*(?:daily|a day|per day|/day)?$")


def parse_dose(dose: str) -> tuple[float, str | None] | None:
    """Parse "500mg", "1 g", "1,000 mg" into (value, canonical unit).

    Returns None when the text is not a dose. The unit is None when omitted
    and "?" when present but unrecognized.
    """
    match = _DOSE_PATTERN.match((dose or "").replace(",", ""))
    if not match:
        return None
    value = float(match.group(1))
    unit = match.group(2)
    if unit is None:
        return value, None
    return value, UNIT_ALIASES.get(unit.lower(), "?")


def parse_frequency(frequency: str) -> tuple[float | None, str | None]:
    """Parse a frequency into doses per day.

    Returns:
        (doses_per_day, warning). doses_per_day is None when daily totals
        cannot be computed (PRN, unknown, missing).
    """
    text = (frequency or "").strip().lower().replace(".", "")
    if not text:
        return None, "No frequency supplied; daily dose not checked"
    if text in FREQUENCY_MAP:
        return float(FREQUENCY_MAP[text]), None
    if text.startswith("prn") or text.endswith("prn") or "as needed" in text:
        return None, "PRN order; daily maximum must be checked at administration"

    for pattern in (_QH_PATTERN, _EVERY_PATTERN):
        match = pattern.match(text)
        if match:
            hours = float(match.group(1))
            if hours <= 0:
                break
            return 24.0 / hours, None

    match = _TIMES_PATTERN.match(text)
    if match:
        return float(match.group(1)), None

    return None, f"Unrecognized frequency '{frequency}'; daily dose not checked"


def convert(value: float, from_unit: str, to_unit: str) -> float | None:
    if from_unit not in UNIT_TO_MG or to_unit not in UNIT_TO_MG:
        return None
    return value * UNIT_TO_MG[from_unit] / UNIT_TO_MG[to_unit]


def _fmt(value: float) -> str:
    return f"{value:g}" if value == int(value) else f"{value:.4g}"


class DoseValidator(BaseChecker):

    name = "doses"

    def validate_doses(self, medications: Iterable, patient: PatientContext) -> DoseValidationResult:
        validations = tuple(
            self.validate_dose(medication, patient)
            for medication in self._medications(medications)
        )
        errors = sum(1 for v in validations if v.status.is_error)
        if errors:
            self.logger.info(f"Dose validation: {errors} of {len(validations)} doses out of range")
        return DoseValidationResult(validations=validations)

    def check(self, medications: Iterable, patient: PatientContext) -> DoseValidationResult:
        return self.validate_doses(medications, patient)

    def validate_dose(self, medication: Medication, patient: PatientContext) -> DoseValidation:
        dose_range = self._require(self.reference_store.dose_range(medication.normalized_name))
        if not dose_range:
            return DoseValidation(
                medication=medication.name,
                dose=medication.dose,
                frequency=medication.frequency,
                status=DoseStatus.NORMAL,
                validated=False,
                warnings=("No reference dose range available; dose not validated",),
                message="Dose not validated",
            )
        dose_range = dose_range[0]
        unit = dose_range["unit"]

        if not medication.dose.strip():
            return DoseValidation(
                medication=medication.name,
                dose=medication.dose,
                frequency=medication.frequency,
                status=DoseStatus.NORMAL,
                validated=False,
                unit=unit,
                warnings=("No dose supplied; dose not validated",),
                message="Dose not validated",
            )

        warnings = []
        parsed = parse_dose(medication.dose)
        if parsed is None:
            return self._fail_closed(medication, unit, f"Unable to parse dose '{medication.dose}'")

        value, dose_unit = parsed
        if dose_unit is None:
            dose_unit = unit
            warnings.append(f"No unit supplied; assumed {unit}")
        amount = convert(value, dose_unit, unit)
        if amount is None:
            return self._fail_closed(
                medication, unit, f"Dose unit cannot be converted to {unit}"
            )

        doses_per_day, frequency_warning = parse_frequency(medication.frequency)
        if frequency_warning:
            warnings.append(frequency_warning)
        daily = amount * doses_per_day if doses_per_day else None

        min_dose, max_dose, max_daily, toxic, adjustments = self._adjusted_range(
            dose_range, patient, warnings
        )

        recommendations = []
        if daily is not None and max_daily and daily >= 2 * max_daily:
            status = DoseStatus.TOXIC
        elif toxic and amount >= toxic:
            status = DoseStatus.TOXIC
        elif amount > max_dose or (daily is not None and max_daily and daily > max_daily):
            status = DoseStatus.ABOVE_RANGE
        elif amount < min_dose:
            status = DoseStatus.BELOW_RANGE
        else:
            status = DoseStatus.NORMAL

        if status == DoseStatus.TOXIC:
            message = f"Dose exceeds the toxic threshold for {medication.name}"
            recommendations.append("Do not administer. Verify the order with the prescriber.")
        elif status == DoseStatus.ABOVE_RANGE:
            message = f"Dose above the recommended range for {medication.name}"
            recommendations.append(
                f"Reduce to at most {_fmt(max_dose)} {unit} per dose"
                + (f" and {_fmt(max_daily)} {unit} per day" if max_daily else "")
            )
        elif status == DoseStatus.BELOW_RANGE:
            message = f"Dose below the recommended range for {medication.name}"
            warnings.append(f"Dose below the usual minimum of {_fmt(min_dose)} {unit}")
            recommendations.append("Confirm the dose is intended; it may be subtherapeutic.")
        else:
            message = "Dose within the recommended range"
            if amount > max_dose * 0.8:
                warnings.append("Dose approaching the recommended maximum")
            elif amount < min_dose * 1.2:
                warnings.append("Dose near the lower limit of the recommended range")

        if adjustments:
            recommendations.append("Range adjusted for patient factors: " + "; ".join(adjustments))
        recommendations.extend(f"Monitor: {m}" for m in dose_range.get("monitoring", ()))

        return DoseValidation(
            medication=medication.name,
            dose=medication.dose,
            frequency=medication.frequency,
            status=status,
            parsed_dose=amount,
            unit=unit,
            doses_per_day=doses_per_day,
            daily_dose=daily,
            min_dose=min_dose,
            max_dose=max_dose,
            max_daily_dose=max_daily,
            adjustments=tuple(adjustments),
            warnings=tuple(warnings),
            recommendations=tuple(recommendations),
            message=message,
        )

    def _adjusted_range(self, dose_range: dict, patient: PatientContext, warnings: list[str]):
        min_dose = float(dose_range["min"])
        max_dose = float(dose_range["max"])
        max_daily = float(dose_range["max_daily"]) if dose_range.get("max_daily") else None
        toxic = float(dose_range["toxic"]) if dose_range.get("toxic") else None
        adjustments = []

        age = patient.age
        if age is not None and age < PEDIATRIC_AGE:
            if patient.weight:
                scale = min(1.0, patient.weight / ADULT_REFERENCE_WEIGHT_KG)
                min_dose *= scale
                max_dose *= scale
                max_daily = max_daily * scale if max_daily else None
                toxic = toxic * scale if toxic else None
                adjustments.append(f"pediatric weight-based ({scale:.0%} of adult)")
            else:
                warnings.append("Pediatric patient without a recorded weight; adult range used")

        factor = 1.0
        reduction = dose_range.get("geriatric_reduction_pct")
        if age is not None and age >= GERIATRIC_AGE and reduction:
            factor *= 1 - reduction / 100
            adjustments.append(f"geriatric (-{_fmt(reduction)}%)")

        gfr = patient.renal_function
        if gfr is not None:
            tiers = [f for threshold, f in dose_range.get("renal", ()) if gfr < threshold]
            if tiers:
                renal_factor = min(tiers)
                factor *= renal_factor
                adjustments.append(f"renal GFR {_fmt(gfr)} ({renal_factor:.0%} of max)")

        hepatic = patient.hepatic_function
        if hepatic is not None:
            hepatic_factor = dose_range.get("hepatic", {}).get(hepatic.value)
            if hepatic_factor:
                factor *= hepatic_factor
                adjustments.append(f"hepatic {hepatic.value} ({hepatic_factor:.0%} of max)")

        max_dose *= factor
        max_daily = max_daily * factor if max_daily else None
        min_dose = min(min_dose, max_dose)

        return min_dose, max_dose, max_daily, toxic, adjustments

    def _fail_closed(self, medication: Medication, unit: str, reason: str) -> DoseValidation:
        self.logger.warning(f"Dose for {medication.name} treated as toxic: {reason}")
        return DoseValidation(
            medication=medication.name,
            dose=medication.dose,
            frequency=medication.frequency,
            status=DoseStatus.TOXIC,
            unit=unit,
            warnings=(reason,),
            recommendations=("Re-enter the dose in a recognized unit before administration.",),
            message=f"{reason}; treated as unsafe",
        )
