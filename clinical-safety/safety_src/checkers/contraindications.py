"""Medication vs. patient condition contraindication checks."""

from typing import Any, Iterable

from common.clinical_safety.models import (
    ContraindicationAlert,
    ContraindicationCheckResult,
    ContraindicationSeverity,
    ContraindicationType,
    PatientCondition,
    PatientContext,
)

from .base import BaseChecker


def condition_matches(rule: dict, condition: PatientCondition) -> bool:
    """Match a condition by ICD-10 code prefix or by name keyword."""
    code = (condition.code or "").strip().upper()
    if code:
        for prefix in rule.get("condition_codes", ()):
            if code.startswith(prefix.upper()):
                return True

    name = f"{condition.name or ''} {condition.code or ''}".lower()
    return any(keyword in name for keyword in rule.get("condition_keywords", ()))


class ContraindicationChecker(BaseChecker):

    name = "contraindications"

    def check_contraindications(
        self, medications: Iterable, conditions: Iterable
    ) -> ContraindicationCheckResult:
        conditions = [
            c for c in (PatientCondition.from_value(v) for v in conditions or ())
            if c.status in ("active", "")
        ]
        if not conditions:
            return ContraindicationCheckResult()

        found = []
        for medication in self._medications(medications):
            for rule in self._rules_for(medication.normalized_name):
                for condition in conditions:
                    if condition_matches(rule, condition):
                        found.append(self._to_alert(medication.name, rule, condition))
                        break

        found.sort(
            key=lambda c: (
                c.type != ContraindicationType.ABSOLUTE,
                -c.severity.weight,
                c.medication.lower(),
                c.condition.lower(),
            )
        )
        result = ContraindicationCheckResult(contraindications=tuple(found))
        if found:
            self.logger.info(
                f"Contraindication check: {len(result.absolute)} absolute, "
                f"{len(result.relative)} relative"
            )
        return result

    def check(self, medications: Iterable, patient: PatientContext) -> ContraindicationCheckResult:
        return self.check_contraindications(medications, patient.conditions)

    def absolute_contraindications(self, medication: str) -> list[dict[str, Any]]:
        """Absolute contraindications known for one medication (or its class)."""
        return [
            {
                "medication": rule["medication"],
                "condition": rule["condition"],
                "conditionCodes": list(rule.get("condition_codes", ())),
                "severity": ContraindicationSeverity(rule["severity"]).value,
                "description": rule.get("description", ""),
                "clinicalRationale": rule.get("clinical_rationale", ""),
                "alternatives": list(rule.get("alternatives", ())),
                "recommendation": rule.get("recommendation", ""),
            }
            for rule in self._rules_for(medication.strip().lower())
            if ContraindicationType(rule["type"]) == ContraindicationType.ABSOLUTE
        ]

    def _rules_for(self, name: str) -> tuple:
        classes = self._require(self.reference_store.drug_classes(name))
        return self._require(self.reference_store.contraindications_for(name, classes))

    @staticmethod
    def _to_alert(medication: str, rule: dict, condition: PatientCondition) -> ContraindicationAlert:
        return ContraindicationAlert(
            medication=medication,
            condition=condition.name or rule["condition"],
            condition_code=condition.code,
            type=ContraindicationType(rule["type"]),
            severity=ContraindicationSeverity(rule["severity"]),
            description=rule.get("description", ""),
            clinical_rationale=rule.get("clinical_rationale", ""),
            alternatives=tuple(rule.get("alternatives", ())),
            recommendation=rule.get("recommendation", ""),
        )
