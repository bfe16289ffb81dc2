"""Tests for clinical practice guideline lookup."""

from datetime import date

import pytest

from common.clinical_safety.errors import SafetyCheckUnavailable
from common.clinical_safety.models import Medication, PatientCondition, PatientContext
from common.clinical_safety.reference import StaticReferenceStore, default_tables
from safety_src.checkers import GuidelineAdvisor
from safety_src.checkers.guidelines import applicability_score, is_current, reasoning
from safety_src.safety_check import MedicationSafetyChecker

DIABETES = PatientCondition("E11.9", "Type 2 diabetes mellitus")
AFIB = PatientCondition("I48.91", "Atrial fibrillation")


@pytest.fixture
def advisor(reference_store):
    return GuidelineAdvisor(reference_store)


def test_no_conditions_means_no_guidelines(advisor):
    """Guidance is keyed on conditions; none means an empty result."""
    result = advisor.guidelines_for([Medication("Metformin")], [])

    assert result.available is True
    assert result.recommendations == ()


def test_first_line_therapy_ranks_high(advisor):
    """Metformin for type 2 diabetes is a high-applicability first-line match."""
    result = advisor.guidelines_for([Medication("Metformin", "500mg", "bid")], [DIABETES])

    top = result.recommendations[0]
    assert top.guideline == "Pharmacologic Approaches to Glycemic Treatment"
    assert top.score == 85
    assert top.applicability == "high"
    assert top.reasoning == (
        "Patient condition matches guideline. Proposed medication is first-line therapy. "
        "High-quality evidence (Grade A)."
    )
    assert top.to_dict()["evidenceLevel"] == "High-quality evidence"


def test_second_line_therapy_scores_lower(advisor):
    """Warfarin in atrial fibrillation is second-line behind the DOACs."""
    warfarin = advisor.guidelines_for([Medication("Warfarin")], [AFIB]).recommendations[0]
    apixaban = advisor.guidelines_for([Medication("Apixaban")], [AFIB]).recommendations[0]

    assert warfarin.score == 70
    assert apixaban.score == 85
    assert "second-line" in warfarin.reasoning


def test_condition_match_without_matching_medication(advisor):
    """A guideline for the condition still applies when no proposed drug is listed."""
    result = advisor.guidelines_for([Medication("Acetaminophen")], [PatientCondition("F32.1", "Depression")])

    [recommendation] = result.recommendations
    assert recommendation.score == 50
    assert recommendation.applicability == "medium"
    assert recommendation.reasoning == "Patient condition matches guideline."


def test_results_ranked_by_score(advisor):
    """Several conditions give several guidelines, best fit first."""
    ckd = PatientCondition("N18.3", "Chronic kidney disease stage 3")
    hypertension = PatientCondition("I10", "Essential hypertension")

    result = advisor.guidelines_for([Medication("Lisinopril", "10mg")], [ckd, hypertension])

    scores = [r.score for r in result.recommendations]
    assert scores == sorted(scores, reverse=True)
    assert {r.condition for r in result.recommendations} == {"Chronic kidney disease", "Essential hypertension"}


def test_resolved_conditions_are_ignored(advisor):
    """Only active conditions are matched against guidelines."""
    resolved = PatientCondition("J18.9", "Pneumonia", status="resolved")

    assert advisor.guidelines_for([Medication("Amoxicillin")], [resolved]).recommendations == ()


def test_stale_guidelines_are_filtered():
    """Guidelines not reviewed in five years are left out."""
    store = StaticReferenceStore(tables={"clinical_guidelines": [
        {"title": "Old", "icd_codes": ["E11"], "last_reviewed": "2001-01-01"},
        {"title": "New", "icd_codes": ["E11"], "last_reviewed": date.today().isoformat()},
    ]})

    result = GuidelineAdvisor(store).guidelines_for([], [DIABETES])

    assert [r.guideline for r in result.recommendations] == ["New"]


def test_unconfigured_guidelines_raise(unconfigured_store):
    """A missing guideline table is reported as unavailable, not as no guidance."""
    with pytest.raises(SafetyCheckUnavailable):
        GuidelineAdvisor(unconfigured_store).guidelines_for([], [DIABETES])


def test_score_helpers():
    """Scoring adds condition, therapy line and evidence grade."""
    row = {"icd_codes": ["I48"], "first_line": ["apixaban"], "second_line": ["warfarin"], "evidence_level": "B"}

    assert applicability_score(row, ["I48.0"], ["apixaban"]) == 80
    assert applicability_score(row, ["E11"], ["warfarin"]) == 15
    assert reasoning(row, ["ibuprofen"], 0) == "General guideline for this condition."
    assert not is_current({"last_reviewed": "2019-01-01"}, today=date(2026, 1, 1))
    assert is_current({"last_reviewed": "2022-06-01"}, today=date(2026, 1, 1))


def test_search(advisor):
    """Search matches title, condition, summary and category."""
    titles = [g["title"] for g in advisor.search("pregnancy")]

    assert titles == ["Chronic Hypertension in Pregnancy"]
    assert advisor.search("no-such-topic") == []


def test_assessment_carries_guidelines(safety_checker):
    """The comprehensive assessment returns guidance without scoring it."""
    assessment = safety_checker.assess(
        [Medication("Metformin", "500mg", "bid")],
        PatientContext.build(conditions=[{"code": "E11.9", "name": "Type 2 diabetes"}], age=55),
    )

    body = assessment.to_dict()["guidelines"]
    assert body["available"] is True
    assert body["recommendations"][0]["applicability"] == "high"
    assert assessment.verdict.score == 0


def test_unavailable_guidelines_do_not_degrade_the_verdict():
    """Losing the guideline table leaves the four safety checks intact."""
    tables = default_tables()
    del tables["clinical_guidelines"]
    checker = MedicationSafetyChecker.from_reference_store(
        StaticReferenceStore(tables=tables), timeout_seconds=5, degraded_policy="override"
    )
    try:
        assessment = checker.assess(
            [Medication("Metformin", "500mg", "bid")], PatientContext.build(conditions=["E11.9"])
        )
    finally:
        checker.shutdown()

    assert assessment.guidelines.available is False
    assert assessment.degraded_checks == ()
