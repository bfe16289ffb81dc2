"""Medication vs. patient allergy checks.

Each medication/allergy pair is evaluated in order:

1. Direct match - the medication is the allergen (or contains its name)
2. Class warning - the allergen names the medication's drug class, or a drug
   of the same class
3. Cross-reactivity - a known cross-reaction between the allergen's class and
   the medication's class

A direct match skips the class and cross-reactivity checks for that pair.
"""

from typing import Iterable

from common.clinical_safety.models import (
    AllergyAlert,
    AllergyAlertType,
    AllergyCheckResult,
    AllergySeverity,
    PatientAllergy,
    PatientContext,
)

from .base import BaseChecker


def _is_direct_match(medication: str, allergen: str) -> bool:
    if medication == allergen:
        return True
    # Ignore very short allergen strings to avoid accidental substring hits
    return len(allergen) >= 4 and (allergen in medication or medication in allergen)


class AllergyChecker(BaseChecker):

    name = "allergies"

    def check_allergies(self, medications: Iterable, allergies: Iterable) -> AllergyCheckResult:
        allergies = [PatientAllergy.from_value(a) for a in allergies or ()]
        if not allergies:
            return AllergyCheckResult()

        alerts = []
        for medication in self._medications(medications):
            med_name = medication.normalized_name
            med_classes = set(self._require(self.reference_store.drug_classes(med_name)))

            for allergy in allergies:
                alert = self._evaluate_pair(medication.name, med_name, med_classes, allergy)
                if alert:
                    alerts.append(alert)

        alerts.sort(key=lambda a: (-a.severity.rank, a.medication.lower(), a.allergen.lower()))
        if alerts:
            self.logger.info(
                f"Allergy check: {len(alerts)} alerts, highest {alerts[0].severity.value}"
            )
        return AllergyCheckResult(alerts=tuple(alerts))

    def check(self, medications: Iterable, patient: PatientContext) -> AllergyCheckResult:
        return self.check_allergies(medications, patient.allergies)

    def _evaluate_pair(
        self,
        display_name: str,
        med_name: str,
        med_classes: set[str],
        allergy: PatientAllergy,
    ) -> AllergyAlert | None:
        allergen = allergy.allergen.strip().lower()
        if not allergen:
            return None

        profile = self._require(self.reference_store.allergen_profile(allergen))
        profile = profile[0] if profile else {}
        default_severity = AllergySeverity.parse(profile.get("default_severity"))
        alternatives = tuple(profile.get("alternatives", ()))

        if _is_direct_match(med_name, allergen):
            severity = allergy.severity or default_severity or AllergySeverity.SEVERE
            return AllergyAlert(
                medication=display_name,
                allergen=allergy.allergen,
                alert_type=AllergyAlertType.DIRECT_MATCH,
                severity=severity,
                reaction=allergy.reaction,
                description=f"Patient has a documented allergy to {allergy.allergen}",
                recommendation="Do not administer. Select an alternative medication.",
                alternatives=alternatives,
            )

        allergen_classes = set(self._require(self.reference_store.drug_classes(allergen)))
        shared = sorted(med_classes & allergen_classes)
        if shared:
            severity = allergy.severity or default_severity or AllergySeverity.MODERATE
            return AllergyAlert(
                medication=display_name,
                allergen=allergy.allergen,
                alert_type=AllergyAlertType.CLASS_WARNING,
                severity=severity,
                reaction=allergy.reaction,
                description=(
                    f"{display_name} belongs to the same drug class ({', '.join(shared)}) "
                    f"as documented allergen {allergy.allergen}"
                ),
                recommendation="Avoid unless the allergy has been evaluated; consider an alternative class.",
                alternatives=alternatives,
            )

        if not allergen_classes or not med_classes:
            return None

        rules = self._require(
            self.reference_store.cross_reactivity(allergen_classes, med_classes)
        )
        if not rules:
            return None

        rule = max(rules, key=lambda r: r.get("risk_percentage") or 0)
        severity = AllergySeverity.parse(rule["severity"])
        if allergy.severity == AllergySeverity.LIFE_THREATENING and rule.get(
            "severity_if_life_threatening"
        ):
            severity = AllergySeverity.parse(rule["severity_if_life_threatening"])

        return AllergyAlert(
            medication=display_name,
            allergen=allergy.allergen,
            alert_type=AllergyAlertType.CROSS_REACTIVITY,
            severity=severity,
            reaction=allergy.reaction,
            description=rule.get("description", ""),
            recommendation=rule.get("recommendation", ""),
            risk_percentage=rule.get("risk_percentage"),
            alternatives=alternatives,
        )
