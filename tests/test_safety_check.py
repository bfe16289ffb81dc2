"""Tests for the concurrent safety assessment."""

import time

import pytest

from common.clinical_safety.models import Medication, PatientContext, RiskLevel
from common.clinical_safety.reference import StaticReferenceStore
from safety_src.cache import TTLCache
from safety_src.checkers import (
    AllergyChecker,
    ContraindicationChecker,
    DoseValidator,
    GuidelineAdvisor,
    InteractionChecker,
)
from safety_src.safety_check import MedicationSafetyChecker


class SlowDoseValidator(DoseValidator):
    def check(self, medications, patient):
        time.sleep(0.5)
        return super().check(medications, patient)


class BrokenAllergyChecker(AllergyChecker):
    def check(self, medications, patient):
        raise RuntimeError("allergy service exploded")


def _checker(store, allergy_cls=AllergyChecker, dose_cls=DoseValidator, **kwargs):
    return MedicationSafetyChecker(
        InteractionChecker(store, cache=TTLCache()),
        allergy_cls(store),
        ContraindicationChecker(store),
        dose_cls(store),
        **kwargs,
    )


def test_assessment_combines_all_checks(safety_checker):
    """Test an assessment with findings from every check."""
    patient = PatientContext.build(
        allergies=[{"allergen": "Penicillin", "severity": "mild"}],
        conditions=[{"code": "N18.3", "name": "CKD stage 3"}],
        age=70,
    )
    medications = [
        Medication("Warfarin", "5mg", "daily"),
        Medication("Ibuprofen", "400mg", "tid"),
        Medication("Cefazolin", "1g", "q8h"),
    ]

    assessment = safety_checker.assess(medications, patient)

    assert assessment.interactions.has_interactions
    assert assessment.allergies.has_alerts
    assert len(assessment.contraindications.relative) == 1
    assert len(assessment.doses.validations) == 3
    assert assessment.verdict.level == RiskLevel.HIGH
    assert not assessment.degraded_checks
    assert set(assessment.durations_ms) == {"interactions", "allergies", "contraindications", "doses"}


def test_assessment_to_dict_keys(safety_checker):
    """Test the serialized assessment keys."""
    body = safety_checker.assess(["Acetaminophen"], PatientContext()).to_dict()

    assert set(body) == {
        "interactions", "allergyAlerts", "contraindications",
        "doseValidation", "overallRisk", "degradedChecks", "guidelines",
    }
    assert body["overallRisk"]["level"] == "none"


def test_unconfigured_checks_degrade_the_verdict(unconfigured_store):
    """Checks without reference data degrade the verdict."""
    checker = _checker(unconfigured_store, timeout_seconds=5, degraded_policy="override")
    try:
        assessment = checker.assess(
            [Medication("Warfarin", "5mg", "daily"), Medication("Aspirin", "81mg", "daily")],
            PatientContext(),
        )
    finally:
        checker.shutdown()

    # Allergy and contraindication checks have no patient data to look up
    assert assessment.degraded_checks == ("doses", "interactions")
    assert assessment.verdict.level == RiskLevel.HIGH
    assert assessment.verdict.requires_override


def test_block_policy_blocks_degraded_verdict(unconfigured_store):
    """Test the block policy on a degraded assessment."""
    checker = _checker(unconfigured_store, timeout_seconds=5, degraded_policy="block")
    try:
        assessment = checker.assess([Medication("Warfarin", "5mg", "daily")], PatientContext())
    finally:
        checker.shutdown()

    assert assessment.verdict.blocks_administration


def test_timed_out_check_is_degraded():
    """A check past its deadline is recorded as degraded."""
    checker = _checker(
        StaticReferenceStore(), dose_cls=SlowDoseValidator, timeout_seconds=0.05
    )
    try:
        assessment = checker.assess([Medication("Acetaminophen", "650mg", "q6h")], PatientContext())
    finally:
        checker.shutdown()

    assert assessment.degraded_checks == ("doses",)
    assert assessment.verdict.requires_override


def test_failing_check_is_degraded():
    """Test a check that raises."""
    checker = _checker(StaticReferenceStore(), allergy_cls=BrokenAllergyChecker, timeout_seconds=5)
    try:
        assessment = checker.assess(["Acetaminophen"], PatientContext())
    finally:
        checker.shutdown()

    assert assessment.degraded_checks == ("allergies",)
    assert assessment.verdict.level == RiskLevel.HIGH


DETERMINISM_MEDICATIONS = [
    Medication("Warfarin", "5mg", "daily"),
    Medication("Aspirin", "81mg", "daily"),
    Medication("Amoxicillin", "500mg", "q8h"),
    Medication("Lisinopril", "10mg", "daily"),
    Medication("Metformin", "1000mg", "bid"),
]
DETERMINISM_PATIENT = PatientContext.build(
    allergies=[{"allergen": "Penicillin", "severity": "severe"}],
    conditions=[{"code": "N18.4", "name": "CKD stage 4"}, {"code": "I10", "name": "Hypertension"}],
    age=78,
    weight=62,
    renal_function=25,
)


@pytest.mark.parametrize("make_checker", [
    lambda store: InteractionChecker(store, cache=TTLCache()),
    AllergyChecker,
    ContraindicationChecker,
    DoseValidator,
    GuidelineAdvisor,
], ids=["interactions", "allergies", "contraindications", "doses", "guidelines"])
def test_checkers_are_deterministic(reference_store, make_checker):
    """Test that two fresh checkers return equal results for the same input."""
    first = make_checker(reference_store).check(DETERMINISM_MEDICATIONS, DETERMINISM_PATIENT)
    second = make_checker(reference_store).check(DETERMINISM_MEDICATIONS, DETERMINISM_PATIENT)

    assert first == second


def test_assessment_verdict_is_deterministic(reference_store):
    """Repeated assessments agree on every finding and on the verdict."""
    verdicts = []
    for _ in range(2):
        checker = _checker(reference_store, timeout_seconds=5)
        try:
            assessment = checker.assess(DETERMINISM_MEDICATIONS, DETERMINISM_PATIENT)
        finally:
            checker.shutdown()
        assert not assessment.degraded_checks
        verdicts.append(assessment.verdict)

    assert verdicts[0] == verdicts[1]
    assert verdicts[0].level == RiskLevel.HIGH
