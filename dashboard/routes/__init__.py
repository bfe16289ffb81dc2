"""Dashboard routes."""

from .clinical_alerts import clinical_alerts_bp
from .medication_safety import medication_safety_bp
from .realtime import realtime_bp

__all__ = [
    "clinical_alerts_bp",
    "medication_safety_bp",
    "realtime_bp",
]
