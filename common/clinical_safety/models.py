"""Data models for medication safety checks and clinical alerts."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
import json


# Weight assigned to findings that must saturate the risk score on their own
# (absolute contraindications, toxic doses).
SATURATING_WEIGHT = 7


class InteractionSeverity(str, Enum):
    """Drug-drug interaction severity, totally ordered."""
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _INTERACTION_RANK[self]

    @property
    def weight(self) -> int:
        return _INTERACTION_WEIGHT[self]

    @classmethod
    def highest(cls, severities) -> "InteractionSeverity":
        """Return the most severe value, or NONE for an empty collection."""
        return max(severities, key=lambda s: s.rank, default=cls.NONE)


_INTERACTION_RANK = {
    InteractionSeverity.NONE: 0,
    InteractionSeverity.MINOR: 1,
    InteractionSeverity.MODERATE: 2,
    InteractionSeverity.MAJOR: 3,
    InteractionSeverity.CRITICAL: 4,
}

_INTERACTION_WEIGHT = {
    InteractionSeverity.NONE: 0,
    InteractionSeverity.MINOR: 1,
    InteractionSeverity.MODERATE: 2,
    InteractionSeverity.MAJOR: 4,
    InteractionSeverity.CRITICAL: 8,
}


class AlertSeverity(str, Enum):
    """Severity of a persisted clinical alert."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return {"info": 0, "warning": 1, "critical": 2}[self.value]

    @classmethod
    def all_options(cls):
        """Get all options as (value, display_name) tuples for dropdowns."""
        return [
            (cls.CRITICAL.value, "Critical"),
            (cls.WARNING.value, "Warning"),
            (cls.INFO.value, "Info"),
        ]


class AllergySeverity(str, Enum):
    """Severity of a recorded or inferred allergic reaction."""
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    LIFE_THREATENING = "life-threatening"

    @property
    def rank(self) -> int:
        return _ALLERGY_RANK[self]

    @property
    def weight(self) -> int:
        return _ALLERGY_WEIGHT[self]

    @property
    def alert_severity(self) -> AlertSeverity:
        if self in (AllergySeverity.SEVERE, AllergySeverity.LIFE_THREATENING):
            return AlertSeverity.CRITICAL
        if self == AllergySeverity.MODERATE:
            return AlertSeverity.WARNING
        return AlertSeverity.INFO

    @classmethod
    def parse(cls, value) -> "AllergySeverity | None":
        """Lenient parse for severities recorded in free-form patient data."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip().lower().replace("_", "-").replace(" ", "-")
        if not text:
            return None
        if text in ("anaphylaxis", "life-threatening", "lifethreatening"):
            return cls.LIFE_THREATENING
        return cls(text)


_ALLERGY_RANK = {
    AllergySeverity.MILD: 1,
    AllergySeverity.MODERATE: 2,
    AllergySeverity.SEVERE: 3,
    AllergySeverity.LIFE_THREATENING: 4,
}

_ALLERGY_WEIGHT = {
    AllergySeverity.MILD: 1,
    AllergySeverity.MODERATE: 2,
    AllergySeverity.SEVERE: 4,
    AllergySeverity.LIFE_THREATENING: 8,
}


class AllergyAlertType(str, Enum):
    """How a medication was matched against an allergy."""
    DIRECT_MATCH = "direct-match"
    CROSS_REACTIVITY = "cross-reactivity"
    CLASS_WARNING = "class-warning"


class ContraindicationType(str, Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"


class ContraindicationSeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        return {"mild": 1, "moderate": 2, "severe": 4, "critical": 8}[self.value]


class HepaticFunction(str, Enum):
    NORMAL = "normal"
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"


class DoseStatus(str, Enum):
    """Outcome of validating one dose against its adjusted range."""
    NORMAL = "normal"
    BELOW_RANGE = "below-range"
    ABOVE_RANGE = "above-range"
    TOXIC = "toxic"

    @property
    def weight(self) -> int:
        return {
            "normal": 0,
            "below-range": 1,
            "above-range": 2,
            "toxic": SATURATING_WEIGHT,
        }[self.value]

    @property
    def is_error(self) -> bool:
        return self in (DoseStatus.ABOVE_RANGE, DoseStatus.TOXIC)


class RiskLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return {"none": 0, "low": 1, "medium": 2, "high": 3}[self.value]

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        """Map a 0-100 risk score to a level."""
        if score <= 0:
            return cls.NONE
        if score < 20:
            return cls.LOW
        if score < 60:
            return cls.MEDIUM
        return cls.HIGH


class FindingKind(str, Enum):
    """Kind of finding contributing to a risk verdict."""
    INTERACTION = "interaction"
    ALLERGY = "allergy"
    CONTRAINDICATION = "contraindication"
    DOSE = "dose"


class AlertType(str, Enum):
    """Category of persisted clinical alert."""
    DRUG_INTERACTION = "drug-interaction"
    ALLERGY = "allergy"
    CONTRAINDICATION = "contraindication"
    DOSE_ERROR = "dose-error"
    GUIDELINE_DEVIATION = "guideline-deviation"

    @classmethod
    def display_name(cls, value):
        """Get human-readable display name for an alert type."""
        display_map = {
            cls.DRUG_INTERACTION: "Drug Interaction",
            cls.ALLERGY: "Allergy",
            cls.CONTRAINDICATION: "Contraindication",
            cls.DOSE_ERROR: "Dose Error",
            cls.GUIDELINE_DEVIATION: "Guideline Deviation",
        }
        if isinstance(value, cls):
            return display_map[value]
        return display_map.get(cls(value), value) if value else ""

    @classmethod
    def for_finding(cls, kind: FindingKind) -> "AlertType":
        return {
            FindingKind.INTERACTION: cls.DRUG_INTERACTION,
            FindingKind.ALLERGY: cls.ALLERGY,
            FindingKind.CONTRAINDICATION: cls.CONTRAINDICATION,
            FindingKind.DOSE: cls.DOSE_ERROR,
        }[kind]

    @classmethod
    def all_options(cls):
        """Get all options as (value, display_name) tuples for dropdowns."""
        return [(t.value, cls.display_name(t)) for t in cls]


class AlertPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def for_severity(cls, severity: AlertSeverity) -> "AlertPriority":
        """Default priority when the caller does not supply one."""
        return {
            AlertSeverity.CRITICAL: cls.URGENT,
            AlertSeverity.WARNING: cls.HIGH,
            AlertSeverity.INFO: cls.MEDIUM,
        }[AlertSeverity(severity)]


class AlertStatus(str, Enum):
    """Alert lifecycle status. Transitions are forward-only."""
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"
    EXPIRED = "expired"

    def can_transition_to(self, target: "AlertStatus") -> bool:
        return AlertStatus(target) in ALERT_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not ALERT_TRANSITIONS[self]


ALERT_TRANSITIONS = {
    AlertStatus.ACTIVE: frozenset(
        {AlertStatus.ACKNOWLEDGED, AlertStatus.DISMISSED, AlertStatus.EXPIRED}
    ),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.DISMISSED}),
    AlertStatus.DISMISSED: frozenset(),
    AlertStatus.EXPIRED: frozenset(),
}


class AlertSource(str, Enum):
    AUTOMATED = "automated"
    MANUAL = "manual"


# --- Patient and medication inputs ---


@dataclass(frozen=True)
class Medication:
    """A medication as ordered or currently active for a patient."""
    name: str
    dose: str = ""
    frequency: str = ""
    route: str | None = None
    code: str | None = None  # RxNorm

    @property
    def normalized_name(self) -> str:
        return self.name.strip().lower()

    @property
    def key(self) -> str:
        """Identity used for de-duplication."""
        return self.code or self.normalized_name

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dose": self.dose,
            "frequency": self.frequency,
            "route": self.route,
            "code": self.code,
        }

    @classmethod
    def from_value(cls, value) -> "Medication":
        """Build from a plain name or a request dict."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(name=value)
        return cls(
            name=value["name"],
            dose=str(value.get("dose") or value.get("dosage") or ""),
            frequency=str(value.get("frequency") or ""),
            route=value.get("route"),
            code=value.get("code") or value.get("rxnorm"),
        )


@dataclass(frozen=True)
class PatientAllergy:
    allergen: str
    severity: AllergySeverity | None = None
    reaction: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "allergen": self.allergen,
            "severity": self.severity.value if self.severity else None,
            "reaction": self.reaction,
        }

    @classmethod
    def from_value(cls, value) -> "PatientAllergy":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls(allergen=value)
        return cls(
            allergen=value["allergen"],
            severity=AllergySeverity.parse(value.get("severity")),
            reaction=value.get("reaction"),
        )


@dataclass(frozen=True)
class PatientCondition:
    code: str  # ICD-10
    name: str = ""
    status: str = "active"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "name": self.name, "status": self.status}

    @classmethod
    def from_value(cls, value) -> "PatientCondition":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            # Bare strings may be either a code or a condition name
            return cls(code=value, name=value)
        return cls(
            code=value.get("code", ""),
            name=value.get("name", ""),
            status=value.get("status", "active"),
        )


@dataclass(frozen=True)
class PatientContext:
    """Immutable snapshot of the patient facts a safety check needs."""
    allergies: tuple[PatientAllergy, ...] = ()
    conditions: tuple[PatientCondition, ...] = ()
    age: float | None = None
    weight: float | None = None  # kg
    renal_function: float | None = None  # GFR mL/min
    hepatic_function: HepaticFunction | None = None

    @property
    def active_conditions(self) -> tuple[PatientCondition, ...]:
        return tuple(c for c in self.conditions if c.status in ("active", ""))

    @classmethod
    def build(
        cls,
        allergies=(),
        conditions=(),
        age=None,
        weight=None,
        renal_function=None,
        hepatic_function=None,
    ) -> "PatientContext":
        """Build a context from loosely-typed inputs."""
        return cls(
            allergies=tuple(PatientAllergy.from_value(a) for a in allergies or ()),
            conditions=tuple(PatientCondition.from_value(c) for c in conditions or ()),
            age=age,
            weight=weight,
            renal_function=renal_function,
            hepatic_function=HepaticFunction(hepatic_function) if hepatic_function else None,
        )


# --- Findings ---


@dataclass(frozen=True)
class Interaction:
    """A known interaction between two drugs. Symmetric in its drug pair."""
    drug_a: str
    drug_b: str
    severity: InteractionSeverity
    description: str = ""
    mechanism: str = ""
    recommendation: str = ""
    evidence_level: str = ""

    @property
    def pair(self) -> tuple[str, str]:
        return tuple(sorted((self.drug_a.lower(), self.drug_b.lower())))

    def involves(self, name: str) -> bool:
        return name.lower() in self.pair

    def to_dict(self) -> dict[str, Any]:
        return {
            "drug1": self.drug_a,
            "drug2": self.drug_b,
            "severity": self.severity.value,
            "description": self.description,
            "mechanism": self.mechanism,
            "recommendation": self.recommendation,
            "evidenceLevel": self.evidence_level,
        }


@dataclass(frozen=True)
class InteractionCheckResult:
    interactions: tuple[Interaction, ...] = ()

    @property
    def has_interactions(self) -> bool:
        return bool(self.interactions)

    @property
    def highest_severity(self) -> InteractionSeverity:
        return InteractionSeverity.highest(i.severity for i in self.interactions)

    @property
    def requires_action(self) -> bool:
        return self.highest_severity.rank >= InteractionSeverity.MAJOR.rank

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasInteractions": self.has_interactions,
            "interactions": [i.to_dict() for i in self.interactions],
            "highestSeverity": self.highest_severity.value,
            "requiresAction": self.requires_action,
        }


@dataclass(frozen=True)
class AllergyAlert:
    medication: str
    allergen: str
    alert_type: AllergyAlertType
    severity: AllergySeverity
    description: str = ""
    recommendation: str = ""
    reaction: str | None = None
    risk_percentage: float | None = None
    alternatives: tuple[str, ...] = ()

    @property
    def alert_severity(self) -> AlertSeverity:
        return self.severity.alert_severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication": self.medication,
            "allergen": self.allergen,
            "alertType": self.alert_type.value,
            "severity": self.severity.value,
            "alertSeverity": self.alert_severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "reaction": self.reaction,
            "riskPercentage": self.risk_percentage,
            "alternatives": list(self.alternatives),
        }


@dataclass(frozen=True)
class AllergyCheckResult:
    alerts: tuple[AllergyAlert, ...] = ()

    @property
    def has_alerts(self) -> bool:
        return bool(self.alerts)

    @property
    def highest_severity(self) -> AllergySeverity | None:
        return max((a.severity for a in self.alerts), key=lambda s: s.rank, default=None)

    def to_dict(self) -> dict[str, Any]:
        highest = self.highest_severity
        return {
            "hasAlerts": self.has_alerts,
            "alerts": [a.to_dict() for a in self.alerts],
            "highestSeverity": highest.value if highest else None,
        }


@dataclass(frozen=True)
class ContraindicationAlert:
    medication: str
    condition: str
    type: ContraindicationType
    severity: ContraindicationSeverity
    condition_code: str = ""
    description: str = ""
    clinical_rationale: str = ""
    alternatives: tuple[str, ...] = ()
    recommendation: str = ""

    @property
    def blocks_administration(self) -> bool:
        return self.type == ContraindicationType.ABSOLUTE

    @property
    def weight(self) -> int:
        if self.blocks_administration:
            return SATURATING_WEIGHT
        return self.severity.weight

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "medication": self.medication,
            "condition": self.condition,
            "conditionCode": self.condition_code,
            "description": self.description,
            "clinicalRationale": self.clinical_rationale,
            "alternatives": list(self.alternatives),
            "recommendation": self.recommendation,
            "blocksAdministration": self.blocks_administration,
        }


@dataclass(frozen=True)
class ContraindicationCheckResult:
    contraindications: tuple[ContraindicationAlert, ...] = ()

    @property
    def has_contraindications(self) -> bool:
        return bool(self.contraindications)

    @property
    def absolute(self) -> tuple[ContraindicationAlert, ...]:
        return tuple(c for c in self.contraindications if c.type == ContraindicationType.ABSOLUTE)

    @property
    def relative(self) -> tuple[ContraindicationAlert, ...]:
        return tuple(c for c in self.contraindications if c.type == ContraindicationType.RELATIVE)

    @property
    def blocks_administration(self) -> bool:
        return bool(self.absolute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasContraindications": self.has_contraindications,
            "contraindications": [c.to_dict() for c in self.contraindications],
            "absoluteCount": len(self.absolute),
            "relativeCount": len(self.relative),
            "blocksAdministration": self.blocks_administration,
        }


@dataclass(frozen=True)
class DoseValidation:
    medication: str
    dose: str
    frequency: str
    status: DoseStatus
    validated: bool = True
    parsed_dose: float | None = None
    unit: str | None = None
    doses_per_day: float | None = None
    daily_dose: float | None = None
    min_dose: float | None = None
    max_dose: float | None = None
    max_daily_dose: float | None = None
    adjustments: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication": self.medication,
            "dose": self.dose,
            "frequency": self.frequency,
            "status": self.status.value,
            "validated": self.validated,
            "parsedDose": self.parsed_dose,
            "unit": self.unit,
            "dosesPerDay": self.doses_per_day,
            "dailyDose": self.daily_dose,
            "recommendedRange": {
                "min": self.min_dose,
                "max": self.max_dose,
                "maxDaily": self.max_daily_dose,
                "unit": self.unit,
            },
            "adjustments": list(self.adjustments),
            "warnings": list(self.warnings),
            "recommendations": list(self.recommendations),
            "message": self.message,
        }


@dataclass(frozen=True)
class DoseValidationResult:
    validations: tuple[DoseValidation, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(v.status.is_error for v in self.validations)

    @property
    def has_warnings(self) -> bool:
        return any(
            v.warnings or v.status == DoseStatus.BELOW_RANGE for v in self.validations
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasErrors": self.has_errors,
            "hasWarnings": self.has_warnings,
            "validations": [v.to_dict() for v in self.validations],
        }


# --- Guidelines ---

EVIDENCE_LEVELS = {
    "A": "High-quality evidence",
    "B": "Moderate-quality evidence",
    "C": "Low-quality evidence",
    "D": "Expert opinion",
}


@dataclass(frozen=True)
class GuidelineRecommendation:
    """A practice guideline that applies to the patient's conditions."""
    guideline: str
    condition: str
    recommendation: str
    evidence_level: str
    strength: str
    score: int
    reasoning: str
    source: str = ""

    @property
    def applicability(self) -> str:
        if self.score >= 70:
            return "high"
        if self.score >= 40:
            return "medium"
        return "low"

    def to_dict(self) -> dict[str, Any]:
        return {
            "guideline": self.guideline,
            "condition": self.condition,
            "recommendation": self.recommendation,
            "evidenceLevel": EVIDENCE_LEVELS.get(self.evidence_level, self.evidence_level),
            "strength": self.strength,
            "applicability": self.applicability,
            "score": self.score,
            "reasoning": self.reasoning,
            "source": self.source,
        }


@dataclass(frozen=True)
class GuidelineResult:
    """Guidance for an assessment. Advisory only; never part of the risk score."""
    recommendations: tuple[GuidelineRecommendation, ...] = ()
    available: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


# --- Risk verdict ---


@dataclass(frozen=True)
class ContributingFinding:
    """One finding flattened for risk aggregation."""
    kind: FindingKind
    severity: str
    weight: int
    medications: tuple[str, ...]
    description: str = ""
    blocks_administration: bool = False

    def sort_key(self):
        return (-self.weight, self.kind.value, self.medications, self.description)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity,
            "weight": self.weight,
            "medications": list(self.medications),
            "description": self.description,
            "blocksAdministration": self.blocks_administration,
        }


@dataclass(frozen=True)
class RiskVerdict:
    score: int
    level: RiskLevel
    blocks_administration: bool = False
    requires_override: bool = False
    findings: tuple[ContributingFinding, ...] = ()
    factors: tuple[tuple[str, int], ...] = ()
    degraded_checks: tuple[str, ...] = ()

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_checks)

    @property
    def dominant_finding(self) -> ContributingFinding | None:
        return self.findings[0] if self.findings else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level.value,
            "blocksAdministration": self.blocks_administration,
            "requiresOverride": self.requires_override,
            "factors": dict(self.factors),
            "findings": [f.to_dict() for f in self.findings],
            "degradedChecks": list(self.degraded_checks),
        }


# --- Persisted alerts ---


@dataclass
class Alert:
    """A persisted clinical alert. Alerts are never deleted."""
    id: str
    patient_id: str
    alert_type: AlertType
    severity: AlertSeverity
    priority: AlertPriority
    title: str
    message: str
    status: AlertStatus = AlertStatus.ACTIVE
    facility_id: str | None = None
    organization_id: str | None = None
    clinical_context: dict = field(default_factory=dict)
    risk_score: int | None = None
    risk_level: RiskLevel | None = None
    recommendations: list[str] = field(default_factory=list)
    alternatives: list[str] = field(default_factory=list)
    triggered_by: str | None = None
    source: AlertSource = AlertSource.AUTOMATED
    confidence: int = 100
    created_at: datetime | None = None
    updated_at: datetime | None = None
    expires_at: datetime | None = None
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    acknowledgment_note: str | None = None
    dismissed_by: str | None = None
    dismissed_at: datetime | None = None
    dismissal_reason: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.status == AlertStatus.EXPIRED:
            return True
        if self.expires_at is None or self.status != AlertStatus.ACTIVE:
            return False
        return self.expires_at <= (now or datetime.now())

    @property
    def requires_immediate_action(self) -> bool:
        return self.severity == AlertSeverity.CRITICAL or self.risk_level == RiskLevel.HIGH

    def to_dict(self) -> dict[str, Any]:
        def _iso(value):
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "patientId": self.patient_id,
            "facilityId": self.facility_id,
            "organizationId": self.organization_id,
            "alertType": self.alert_type.value,
            "severity": self.severity.value,
            "priority": self.priority.value,
            "title": self.title,
            "message": self.message,
            "clinicalContext": self.clinical_context,
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value if self.risk_level else None,
            "recommendations": list(self.recommendations),
            "alternatives": list(self.alternatives),
            "status": self.status.value,
            "triggeredBy": self.triggered_by,
            "source": self.source.value,
            "confidence": self.confidence,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "expiresAt": _iso(self.expires_at),
            "acknowledgedBy": self.acknowledged_by,
            "acknowledgedAt": _iso(self.acknowledged_at),
            "acknowledgmentNote": self.acknowledgment_note,
            "dismissedBy": self.dismissed_by,
            "dismissedAt": _iso(self.dismissed_at),
            "dismissalReason": self.dismissal_reason,
        }

    def to_patient_payload(self) -> dict[str, Any]:
        """Slim payload delivered to the patient's room."""
        return {
            "type": self.alert_type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "recommendations": list(self.recommendations),
            "alertId": self.id,
            "timestamp": (self.created_at or datetime.now()).isoformat(),
        }

    @classmethod
    def from_row(cls, row) -> "Alert":
        """Create from database row."""
        def _dt(value):
            return datetime.fromisoformat(value) if value else None

        return cls(
            id=row["id"],
            patient_id=row["patient_id"],
            facility_id=row["facility_id"],
            organization_id=row["organization_id"],
            alert_type=AlertType(row["alert_type"]),
            severity=AlertSeverity(row["severity"]),
            priority=AlertPriority(row["priority"]),
            title=row["title"],
            message=row["message"],
            clinical_context=json.loads(row["clinical_context"]) if row["clinical_context"] else {},
            risk_score=row["risk_score"],
            risk_level=RiskLevel(row["risk_level"]) if row["risk_level"] else None,
            recommendations=json.loads(row["recommendations"]) if row["recommendations"] else [],
            alternatives=json.loads(row["alternatives"]) if row["alternatives"] else [],
            status=AlertStatus(row["status"]),
            triggered_by=row["triggered_by"],
            source=AlertSource(row["source"]),
            confidence=row["confidence"],
            created_at=_dt(row["created_at"]),
            updated_at=_dt(row["updated_at"]),
            expires_at=_dt(row["expires_at"]),
            acknowledged_by=row["acknowledged_by"],
            acknowledged_at=_dt(row["acknowledged_at"]),
            acknowledgment_note=row["acknowledgment_note"],
            dismissed_by=row["dismissed_by"],
            dismissed_at=_dt(row["dismissed_at"]),
            dismissal_reason=row["dismissal_reason"],
        )
