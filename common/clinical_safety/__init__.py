"""Clinical safety models, reference data and alert storage."""

from .errors import (
    AlertNotFoundError,
    AlertPersistenceError,
    AlertTransitionError,
    RequestValidationError,
    SafetyCheckUnavailable,
    SafetySystemError,
)
from .models import (
    Alert,
    AlertPriority,
    AlertSeverity,
    AlertSource,
    AlertStatus,
    AlertType,
    AllergySeverity,
    InteractionSeverity,
    Medication,
    PatientContext,
    RiskLevel,
    RiskVerdict,
)
from .reference import ReferenceLookup, SQLiteReferenceStore, StaticReferenceStore
from .store import AlertStore

__all__ = [
    "Alert",
    "AlertNotFoundError",
    "AlertPersistenceError",
    "AlertPriority",
    "AlertSeverity",
    "AlertSource",
    "AlertStatus",
    "AlertStore",
    "AlertTransitionError",
    "AlertType",
    "AllergySeverity",
    "InteractionSeverity",
    "Medication",
    "PatientContext",
    "ReferenceLookup",
    "RequestValidationError",
    "RiskLevel",
    "RiskVerdict",
    "SQLiteReferenceStore",
    "SafetyCheckUnavailable",
    "SafetySystemError",
    "StaticReferenceStore",
]
