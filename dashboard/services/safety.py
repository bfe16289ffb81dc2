"""Access to the clinical safety service graph from request handlers."""

from flask import current_app

from safety_src.factory import SafetyServices, build_services


def get_safety_services() -> SafetyServices:
    """Get the clinical safety services, initializing if needed."""
    if not hasattr(current_app, "safety_services"):
        current_app.safety_services = build_services()
    return current_app.safety_services
