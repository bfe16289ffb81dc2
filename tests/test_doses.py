"""Tests for dose parsing and dose range validation."""

import pytest

from common.clinical_safety.errors import SafetyCheckUnavailable
from common.clinical_safety.models import DoseStatus, Medication, PatientContext
from safety_src.checkers import DoseValidator
from safety_src.checkers.doses import convert, parse_dose, parse_frequency

ADULT = PatientContext.build(age=40, weight=70)


@pytest.mark.parametrize("text,expected", [
    ("500mg", (500.0, "mg")),
    ("1 g", (1.0, "g")),
    ("1,000 mg", (1000.0, "mg")),
    ("125 mcg", (125.0, "mcg")),
    ("650", (650.0, None)),
    ("5 tabs", (5.0, "?")),
    ("two tablets", None),
    ("", None),
])
def test_parse_dose(text, expected):
    """Test dose string parsing."""
    assert parse_dose(text) == expected


@pytest.mark.parametrize("text,per_day", [
    ("daily", 1.0),
    ("BID", 2.0),
    ("t.i.d.", 3.0),
    ("q6h", 4.0),
    ("every 8 hours", 3.0),
    ("3x daily", 3.0),
])
def test_parse_frequency(text, per_day):
    """Test frequency parsing into doses per day."""
    assert parse_frequency(text) == (per_day, None)


def test_parse_frequency_prn_and_unknown():
    """PRN and unrecognized frequencies give a warning instead of a count."""
    doses, warning = parse_frequency("q4h prn")
    assert doses is None and "PRN" in warning

    doses, warning = parse_frequency("with meals")
    assert doses is None and "Unrecognized" in warning

    doses, warning = parse_frequency("")
    assert doses is None and "No frequency" in warning


def test_convert_units():
    """Test unit conversion."""
    assert convert(1, "g", "mg") == 1000
    assert convert(500, "mcg", "mg") == 0.5
    assert convert(1, "?", "mg") is None


def test_normal_dose(dose_validator):
    """Test a dose within range."""
    validation = dose_validator.validate_dose(Medication("Acetaminophen", "650mg", "q6h"), ADULT)

    assert validation.status == DoseStatus.NORMAL
    assert validation.daily_dose == 2600
    assert validation.warnings == ()


def test_dose_converted_into_reference_unit(dose_validator):
    """Test that doses are converted to the reference unit."""
    validation = dose_validator.validate_dose(Medication("Digoxin", "0.125 mg", "daily"), ADULT)

    assert validation.status == DoseStatus.NORMAL
    assert validation.parsed_dose == pytest.approx(125)
    assert validation.unit == "mcg"


def test_daily_total_above_range(dose_validator):
    """Test a daily total above the maximum."""
    validation = dose_validator.validate_dose(Medication("Acetaminophen", "1000mg", "q4h"), ADULT)

    assert validation.status == DoseStatus.ABOVE_RANGE
    assert validation.recommendations[0].startswith("Reduce to at most 1000 mg per dose")


def test_daily_total_twice_maximum_is_toxic(dose_validator):
    """A daily total at twice the maximum is toxic."""
    validation = dose_validator.validate_dose(Medication("Acetaminophen", "1000mg", "q2h"), ADULT)
    assert validation.status == DoseStatus.TOXIC


def test_single_dose_at_toxic_threshold(dose_validator):
    """Test a single dose at the toxic threshold."""
    validation = dose_validator.validate_dose(Medication("Warfarin", "50mg", "once"), ADULT)
    assert validation.status == DoseStatus.TOXIC


def test_below_range(dose_validator):
    """Test a subtherapeutic dose."""
    result = dose_validator.validate_doses([Medication("Amoxicillin", "100mg", "bid")], ADULT)

    assert result.validations[0].status == DoseStatus.BELOW_RANGE
    assert not result.has_errors
    assert result.has_warnings


def test_unparseable_dose_is_toxic(dose_validator):
    """An unparseable dose is treated as toxic."""
    validation = dose_validator.validate_dose(Medication("Warfarin", "lots", "daily"), ADULT)

    assert validation.status == DoseStatus.TOXIC
    assert "Unable to parse" in validation.message


def test_unconvertible_unit_is_toxic(dose_validator):
    """Test a unit that cannot be converted."""
    validation = dose_validator.validate_dose(Medication("Warfarin", "5 tabs", "daily"), ADULT)
    assert validation.status == DoseStatus.TOXIC


def test_missing_dose_is_not_validated(dose_validator):
    """Test a medication with no dose."""
    validation = dose_validator.validate_dose(Medication("Warfarin"), ADULT)

    assert validation.status == DoseStatus.NORMAL
    assert not validation.validated


def test_medication_without_reference_range(dose_validator):
    """Test a medication with no reference range."""
    validation = dose_validator.validate_dose(Medication("Piperacillin-tazobactam", "4.5g", "q8h"), ADULT)

    assert validation.status == DoseStatus.NORMAL
    assert not validation.validated


def test_missing_unit_assumes_reference_unit(dose_validator):
    """A bare number is read in the reference unit, with a warning."""
    validation = dose_validator.validate_dose(Medication("Acetaminophen", "650", "q6h"), ADULT)

    assert validation.status == DoseStatus.NORMAL
    assert "No unit supplied; assumed mg" in validation.warnings


def test_geriatric_reduction(dose_validator):
    """Test the geriatric dose reduction."""
    medication = Medication("Warfarin", "9mg", "daily")

    adult = dose_validator.validate_dose(medication, ADULT)
    older = dose_validator.validate_dose(medication, PatientContext.build(age=80, weight=70))

    assert adult.status == DoseStatus.NORMAL
    assert older.status == DoseStatus.ABOVE_RANGE
    assert older.max_dose == pytest.approx(7.5)
    assert older.adjustments == ("geriatric (-25%)",)


def test_renal_adjustment(dose_validator):
    """Test renal dose adjustment."""
    validation = dose_validator.validate_dose(
        Medication("Vancomycin", "1500mg", "q12h"),
        PatientContext.build(age=50, weight=80, renal_function=40),
    )

    assert validation.status == DoseStatus.ABOVE_RANGE
    assert validation.max_dose == pytest.approx(1000)
    assert validation.max_daily_dose == pytest.approx(2000)
    assert validation.adjustments[0].startswith("renal GFR 40")


def test_hepatic_adjustment(dose_validator):
    """Test hepatic dose adjustment."""
    validation = dose_validator.validate_dose(
        Medication("Acetaminophen", "650mg", "q8h"),
        PatientContext.build(age=50, hepatic_function="moderate"),
    )

    assert validation.status == DoseStatus.ABOVE_RANGE
    assert validation.max_dose == pytest.approx(500)


def test_pediatric_weight_based_range(dose_validator):
    """Test the weight-based pediatric range."""
    validation = dose_validator.validate_dose(
        Medication("Amoxicillin", "500mg", "tid"),
        PatientContext.build(age=5, weight=20),
    )

    assert validation.status == DoseStatus.ABOVE_RANGE
    assert validation.max_dose == pytest.approx(1000 * 20 / 70)
    assert validation.adjustments[0].startswith("pediatric")


def test_pediatric_without_weight_uses_adult_range(dose_validator):
    """Without a weight a child is checked against the adult range."""
    validation = dose_validator.validate_dose(
        Medication("Amoxicillin", "500mg", "tid"), PatientContext.build(age=5)
    )

    assert validation.status == DoseStatus.NORMAL
    assert any("without a recorded weight" in w for w in validation.warnings)


def test_unconfigured_reference_data_raises(unconfigured_store):
    """Missing dose ranges are reported as unavailable."""
    validator = DoseValidator(unconfigured_store)
    with pytest.raises(SafetyCheckUnavailable):
        validator.validate_doses([Medication("Warfarin", "5mg", "daily")], ADULT)
