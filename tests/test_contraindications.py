"""Tests for medication vs. condition contraindication checks."""

import pytest

from common.clinical_safety.errors import SafetyCheckUnavailable
from common.clinical_safety.models import (
    ContraindicationSeverity,
    ContraindicationType,
    PatientCondition,
)
from safety_src.checkers import ContraindicationChecker
from safety_src.checkers.contraindications import condition_matches


def test_ace_inhibitor_in_pregnancy_is_absolute(contraindication_checker):
    """Test that an ACE inhibitor in pregnancy is an absolute contraindication."""
    result = contraindication_checker.check_contraindications(
        ["Lisinopril"], [{"code": "Z33.1", "name": "Pregnant state"}]
    )

    assert result.blocks_administration
    alert = result.absolute[0]
    assert alert.type == ContraindicationType.ABSOLUTE
    assert alert.severity == ContraindicationSeverity.CRITICAL
    assert alert.condition_code == "Z33.1"
    assert "labetalol" in alert.alternatives


def test_relative_contraindication_does_not_block(contraindication_checker):
    """Test a relative contraindication."""
    result = contraindication_checker.check_contraindications(
        ["Ibuprofen"], [{"code": "N18.3", "name": "Chronic kidney disease, stage 3"}]
    )

    assert not result.blocks_administration
    assert len(result.relative) == 1
    assert result.relative[0].severity == ContraindicationSeverity.SEVERE


def test_condition_matched_by_keyword(contraindication_checker):
    """Free-text conditions match on keywords."""
    result = contraindication_checker.check_contraindications(
        ["Propranolol"], ["Asthma, moderate persistent"]
    )

    assert len(result.contraindications) == 1
    assert result.contraindications[0].condition == "Asthma, moderate persistent"


def test_resolved_conditions_are_ignored(contraindication_checker):
    """Test that resolved conditions are skipped."""
    result = contraindication_checker.check_contraindications(
        ["Lisinopril"], [{"code": "Z33.1", "name": "Pregnancy", "status": "resolved"}]
    )
    assert not result.has_contraindications


def test_absolute_listed_before_relative(contraindication_checker):
    """Test ordering of absolute and relative contraindications."""
    result = contraindication_checker.check_contraindications(
        ["Ibuprofen"],
        [
            {"code": "N18.3", "name": "CKD stage 3"},
            {"code": "K92.2", "name": "GI hemorrhage"},
        ],
    )

    types = [c.type for c in result.contraindications]
    assert types == [ContraindicationType.ABSOLUTE, ContraindicationType.RELATIVE]
    body = result.to_dict()
    assert body["absoluteCount"] == 1
    assert body["relativeCount"] == 1
    assert body["blocksAdministration"] is True


def test_no_conditions_returns_empty_result(contraindication_checker):
    """Test a patient with no conditions."""
    assert not contraindication_checker.check_contraindications(["Metformin"], []).has_contraindications


def test_absolute_contraindications_for_medication(contraindication_checker):
    """Test the absolute rules listed for one medication."""
    rules = contraindication_checker.absolute_contraindications("Ibuprofen")

    assert [r["condition"] for r in rules] == ["Active gastrointestinal bleeding"]
    assert rules[0]["conditionCodes"] == ["K92.2", "K25.0", "K26.0"]


def test_condition_code_prefix_match():
    """ICD-10 codes match by prefix, case-insensitively."""
    rule = {"condition_codes": ["N18"], "condition_keywords": []}

    assert condition_matches(rule, PatientCondition(code="n18.4"))
    assert not condition_matches(rule, PatientCondition(code="N17.9"))


def test_unconfigured_reference_data_raises(unconfigured_store):
    """Test a missing contraindication table."""
    checker = ContraindicationChecker(unconfigured_store)
    with pytest.raises(SafetyCheckUnavailable):
        checker.check_contraindications(["Lisinopril"], ["Z33.1"])
