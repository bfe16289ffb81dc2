"""Risk aggregation.

Reduces the four checker outputs to a single ``RiskVerdict``. Everything here
is a pure function of its inputs.

    score = min(100, sum(weights) * 15)
    level: 0 none, 1-19 low, 20-59 medium, >=60 high

Absolute contraindications and toxic doses carry a saturating weight and set
``blocks_administration`` unconditionally.
"""

from collections import Counter
from typing import Iterable

from common.clinical_safety.models import (
    AllergyAlert,
    ContraindicationAlert,
    ContributingFinding,
    DoseStatus,
    DoseValidation,
    FindingKind,
    Interaction,
    RiskLevel,
    RiskVerdict,
)

SCORE_MULTIPLIER = 15
MAX_SCORE = 100

POLICY_OVERRIDE = "override"
POLICY_BLOCK = "block"


def _findings(
    interactions: Iterable[Interaction],
    allergy_alerts: Iterable[AllergyAlert],
    contraindications: Iterable[ContraindicationAlert],
    dose_validations: Iterable[DoseValidation],
) -> list[ContributingFinding]:
    findings = []

    for interaction in interactions:
        if interaction.severity.weight:
            findings.append(ContributingFinding(
                kind=FindingKind.INTERACTION,
                severity=interaction.severity.value,
                weight=interaction.severity.weight,
                medications=interaction.pair,
                description=interaction.description,
            ))

    for alert in allergy_alerts:
        findings.append(ContributingFinding(
            kind=FindingKind.ALLERGY,
            severity=alert.severity.value,
            weight=alert.severity.weight,
            medications=(alert.medication.lower(),),
            description=f"{alert.alert_type.value}: {alert.allergen}",
        ))

    for contraindication in contraindications:
        findings.append(ContributingFinding(
            kind=FindingKind.CONTRAINDICATION,
            severity=f"{contraindication.type.value}/{contraindication.severity.value}",
            weight=contraindication.weight,
            medications=(contraindication.medication.lower(),),
            description=contraindication.description,
            blocks_administration=contraindication.blocks_administration,
        ))

    for validation in dose_validations:
        if validation.status == DoseStatus.NORMAL:
            continue
        findings.append(ContributingFinding(
            kind=FindingKind.DOSE,
            severity=validation.status.value,
            weight=validation.status.weight,
            medications=(validation.medication.lower(),),
            description=validation.message,
            blocks_administration=validation.status == DoseStatus.TOXIC,
        ))

    return findings


def aggregate(
    interactions: Iterable[Interaction] = (),
    allergy_alerts: Iterable[AllergyAlert] = (),
    contraindications: Iterable[ContraindicationAlert] = (),
    dose_validations: Iterable[DoseValidation] = (),
    degraded_checks: Iterable[str] = (),
) -> RiskVerdict:
    """Combine checker findings into one verdict."""
    findings = sorted(
        _findings(interactions, allergy_alerts, contraindications, dose_validations),
        key=ContributingFinding.sort_key,
    )

    total_weight = sum(f.weight for f in findings)
    score = min(MAX_SCORE, total_weight * SCORE_MULTIPLIER)
    level = RiskLevel.from_score(score)
    blocks = any(f.blocks_administration for f in findings)

    counts = Counter(f.kind for f in findings)
    factors = tuple((kind.value, counts.get(kind, 0)) for kind in FindingKind)

    return RiskVerdict(
        score=score,
        level=level,
        blocks_administration=blocks,
        requires_override=level == RiskLevel.HIGH and not blocks,
        findings=tuple(findings),
        factors=factors,
        degraded_checks=tuple(sorted(set(degraded_checks))),
    )


def apply_degraded_policy(verdict: RiskVerdict, policy: str = POLICY_OVERRIDE) -> RiskVerdict:
    """Escalate a verdict produced without every check completing.

    A degraded verdict is never "no risk": with the ``override`` policy it
    requires a documented override, with ``block`` it blocks administration.
    """
    if not verdict.degraded_checks:
        return verdict

    if policy == POLICY_BLOCK:
        return RiskVerdict(
            score=verdict.score,
            level=RiskLevel.HIGH,
            blocks_administration=True,
            requires_override=False,
            findings=verdict.findings,
            factors=verdict.factors,
            degraded_checks=verdict.degraded_checks,
        )

    if policy != POLICY_OVERRIDE:
        raise ValueError(f"Unknown degraded safety policy: {policy}")

    return RiskVerdict(
        score=verdict.score,
        level=RiskLevel.HIGH,
        blocks_administration=verdict.blocks_administration,
        requires_override=not verdict.blocks_administration,
        findings=verdict.findings,
        factors=verdict.factors,
        degraded_checks=verdict.degraded_checks,
    )
