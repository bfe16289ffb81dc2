"""Flask application for the clinical safety API."""

import logging

from flask import Flask

from common.clinical_safety.errors import (
    AlertNotFoundError,
    AlertPersistenceError,
    AlertTransitionError,
    RequestValidationError,
    SafetyCheckUnavailable,
)
from dashboard.routes import clinical_alerts_bp, medication_safety_bp, realtime_bp
from dashboard.utils.api_response import api_error, api_validation_error

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Map domain errors to JSON responses. Messages stay generic (no PHI)."""

    @app.errorhandler(RequestValidationError)
    def handle_validation_error(e):
        return api_validation_error(e.fields)

    @app.errorhandler(SafetyCheckUnavailable)
    def handle_unavailable(e):
        logger.warning(f"Safety check unavailable: {e}")
        return api_error("Safety reference data unavailable", 503, check=e.check)

    @app.errorhandler(AlertNotFoundError)
    def handle_not_found(e):
        return api_error("Alert not found", 404)

    @app.errorhandler(AlertTransitionError)
    def handle_transition(e):
        return api_error(
            f"Alert cannot move from {e.current} to {e.target}", 409,
            currentStatus=e.current,
        )

    @app.errorhandler(AlertPersistenceError)
    def handle_persistence(e):
        logger.error(f"Alert persistence error: {e}")
        return api_error("Alert could not be saved", 500)


def create_app(config_overrides: dict | None = None, services=None) -> Flask:
    """Create the Flask app.

    Args:
        config_overrides: Extra Flask config values
        services: Prebuilt SafetyServices (built from configuration on first use if None)
    """
    app = Flask(__name__)
    app.config.update(config_overrides or {})

    if services is not None:
        app.safety_services = services

    app.register_blueprint(medication_safety_bp)
    app.register_blueprint(clinical_alerts_bp)
    app.register_blueprint(realtime_bp)
    register_error_handlers(app)

    return app
