"""Clinical practice guideline lookup.

Guidance is advisory: it is returned alongside an assessment but never
contributes to the risk score. Guidelines are ranked by how well they fit
the patient::

    condition matches a guideline ICD-10 prefix   +50
    proposed medication is first-line therapy     +30
    ... or second-line therapy                    +15
    grade A evidence                              +5
"""

from datetime import date, timedelta
from typing import Iterable

from common.clinical_safety.models import (
    GuidelineRecommendation,
    GuidelineResult,
    PatientContext,
)

from .base import BaseChecker

CONDITION_MATCH_SCORE = 50
FIRST_LINE_SCORE = 30
SECOND_LINE_SCORE = 15
GRADE_A_SCORE = 5

# Guidelines not reviewed within this window are considered superseded
REVIEW_WINDOW = timedelta(days=5 * 365)
MAX_GUIDELINES = 10


def _therapy_match(therapies: Iterable[str], medication_names: Iterable[str]) -> bool:
    therapies = [t.lower() for t in therapies]
    return any(name in therapy for name in medication_names for therapy in therapies)


def is_current(row: dict, today: date | None = None) -> bool:
    reviewed = row.get("last_reviewed")
    if not reviewed:
        return False
    today = today or date.today()
    return today - date.fromisoformat(reviewed) <= REVIEW_WINDOW


def applicability_score(row: dict, condition_codes: Iterable[str], medication_names: Iterable[str]) -> int:
    codes = [c.upper() for c in condition_codes]
    names = list(medication_names)
    score = 0
    if any(code.startswith(prefix.upper()) for code in codes for prefix in row.get("icd_codes", ())):
        score += CONDITION_MATCH_SCORE
    if _therapy_match(row.get("first_line", ()), names):
        score += FIRST_LINE_SCORE
    elif _therapy_match(row.get("second_line", ()), names):
        score += SECOND_LINE_SCORE
    if row.get("evidence_level") == "A":
        score += GRADE_A_SCORE
    return min(score, 100)


def reasoning(row: dict, medication_names: Iterable[str], score: int) -> str:
    names = list(medication_names)
    reasons = []
    if score >= CONDITION_MATCH_SCORE:
        reasons.append("Patient condition matches guideline")
    if _therapy_match(row.get("first_line", ()), names):
        reasons.append("Proposed medication is first-line therapy")
    if _therapy_match(row.get("second_line", ()), names):
        reasons.append("Proposed medication is second-line therapy")
    if row.get("evidence_level") == "A":
        reasons.append("High-quality evidence (Grade A)")
    if not reasons:
        reasons.append("General guideline for this condition")
    return ". ".join(reasons) + "."


class GuidelineAdvisor(BaseChecker):

    name = "guidelines"

    def guidelines_for(self, medications: Iterable, conditions: Iterable) -> GuidelineResult:
        """Current guidelines for the patient's active conditions, best fit first.

        Raises:
            SafetyCheckUnavailable: the guideline table is not configured
        """
        conditions = [c for c in PatientContext.build(conditions=conditions).active_conditions if c.code]
        if not conditions:
            return GuidelineResult()

        codes = [c.code.strip() for c in conditions]
        names = [m.normalized_name for m in self._medications(medications)]
        rows = self._require(self.reference_store.guidelines_for(codes))

        scored = []
        for row in rows:
            if not is_current(row):
                self.logger.debug(f"Skipping guideline {row.get('id')}: last reviewed {row.get('last_reviewed')}")
                continue
            score = applicability_score(row, codes, names)
            scored.append(GuidelineRecommendation(
                guideline=row["title"],
                condition=row.get("condition", ""),
                recommendation=row.get("summary", ""),
                evidence_level=row.get("evidence_level", ""),
                strength=row.get("strength", ""),
                score=score,
                reasoning=reasoning(row, names, score),
                source=row.get("source", ""),
            ))

        scored.sort(key=lambda r: (-r.score, r.guideline))
        return GuidelineResult(recommendations=tuple(scored[:MAX_GUIDELINES]))

    def check(self, medications: Iterable, patient: PatientContext) -> GuidelineResult:
        return self.guidelines_for(medications, patient.conditions)

    def search(self, query: str) -> list[dict]:
        rows = self._require(self.reference_store.search_guidelines(query))
        return sorted(
            (
                {
                    "id": row.get("id"),
                    "title": row["title"],
                    "condition": row.get("condition", ""),
                    "summary": row.get("summary", ""),
                    "category": row.get("category", ""),
                    "source": row.get("source", ""),
                    "lastReviewed": row.get("last_reviewed"),
                    "current": is_current(row),
                }
                for row in rows
            ),
            key=lambda g: g["title"],
        )
