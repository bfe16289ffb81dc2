"""Exceptions raised by the clinical safety components."""


class SafetySystemError(Exception):
    """Base class for clinical safety errors."""


class SafetyCheckUnavailable(SafetySystemError):
    """A safety check could not run because its reference data is unavailable."""

    def __init__(self, check: str, source: str = ""):
        self.check = check
        self.source = source
        super().__init__(f"{check} unavailable ({source or 'reference data not configured'})")


class AlertNotFoundError(SafetySystemError):
    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")


class AlertTransitionError(SafetySystemError):
    """Requested status change is not allowed from the alert's current status."""

    def __init__(self, alert_id: str, current: str, target: str):
        self.alert_id = alert_id
        self.current = current
        self.target = target
        super().__init__(f"Alert {alert_id} cannot move from {current} to {target}")


class AlertPersistenceError(SafetySystemError):
    """The alert store failed to persist an alert."""


class RequestValidationError(SafetySystemError):
    """A request payload failed validation. ``fields`` maps field to message."""

    def __init__(self, fields: dict[str, str]):
        self.fields = fields
        super().__init__("Validation failed: " + ", ".join(sorted(fields)))
