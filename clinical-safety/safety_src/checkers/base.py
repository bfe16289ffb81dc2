"""Base class for safety checkers."""

import logging
from typing import Iterable

from common.clinical_safety.errors import SafetyCheckUnavailable
from common.clinical_safety.models import Medication, PatientContext
from common.clinical_safety.reference import BaseReferenceStore, ReferenceLookup


class BaseChecker:
    """A safety check run against a medication list and patient context."""

    name = ""

    def __init__(self, reference_store: BaseReferenceStore, logger: logging.Logger | None = None):
        self.reference_store = reference_store
        self.logger = logger or logging.getLogger(type(self).__module__)

    def check(self, medications: Iterable, patient: PatientContext):
        """Run the check for a patient. Returns the checker's result type.

        Raises:
            SafetyCheckUnavailable: reference data needed by the check is not configured
        """
        raise NotImplementedError

    def _require(self, lookup: ReferenceLookup) -> tuple:
        """Rows of a lookup, or SafetyCheckUnavailable if it was not configured."""
        if not lookup.configured:
            raise SafetyCheckUnavailable(self.name, lookup.source)
        return lookup.rows

    @staticmethod
    def _medications(medications: Iterable) -> list[Medication]:
        return [Medication.from_value(m) for m in medications or ()]
