"""Medication safety checkers."""

from .allergies import AllergyChecker
from .base import BaseChecker
from .contraindications import ContraindicationChecker
from .doses import DoseValidator
from .guidelines import GuidelineAdvisor
from .interactions import InteractionChecker

__all__ = [
    "AllergyChecker",
    "BaseChecker",
    "ContraindicationChecker",
    "DoseValidator",
    "GuidelineAdvisor",
    "InteractionChecker",
]
