"""Clinical alert routes.

    GET  /alerts/patient/<patient_id>   ?status=&severity=&activeOnly=&limit=
    POST /alerts                        manual alert
    GET  /alerts/<alert_id>
    POST /alerts/<alert_id>/acknowledge {note}
    POST /alerts/<alert_id>/dismiss     {reason}
    GET  /alerts/<alert_id>/audit
    GET  /alerts/summary                ?organizationId=&facilityId=
    POST /alerts/expire
"""

import logging

from flask import Blueprint, request

from common.clinical_safety.errors import RequestValidationError
from common.clinical_safety.models import AlertSource
from dashboard.services.safety import get_safety_services
from dashboard.services.user import get_user_from_request
from dashboard.utils.api_response import api_success
from dashboard.utils.validation import (
    parse_acknowledgement,
    parse_alert_filters,
    parse_dismissal,
    parse_manual_alert,
)

logger = logging.getLogger(__name__)

clinical_alerts_bp = Blueprint("clinical_alerts", __name__, url_prefix="/alerts")


def _require_user() -> str:
    user = get_user_from_request()
    if not user:
        raise RequestValidationError({"userId": "is required (X-User-Id header or userId)"})
    return user


@clinical_alerts_bp.route("/patient/<patient_id>")
def patient_alerts(patient_id):
    filters = parse_alert_filters(request.args)
    alerts = get_safety_services().alert_manager.get_alerts(patient_id, **filters)
    return api_success(data=[alert.to_dict() for alert in alerts])


@clinical_alerts_bp.route("", methods=["POST"])
def create_alert():
    """Record a manually raised alert."""
    fields = parse_manual_alert(request.get_json(silent=True))
    alert = get_safety_services().alert_manager.create_alert(
        **fields,
        triggered_by=get_user_from_request(),
        source=AlertSource.MANUAL,
    )
    return api_success(data=alert.to_dict(), message="Alert created", status_code=201)


@clinical_alerts_bp.route("/summary")
def alert_summary():
    summary = get_safety_services().alert_manager.get_alert_summary(
        organization_id=request.args.get("organizationId"),
        facility_id=request.args.get("facilityId"),
    )
    return api_success(data=summary)


@clinical_alerts_bp.route("/expire", methods=["POST"])
def expire_alerts():
    count = get_safety_services().alert_manager.expire_due_alerts()
    return api_success(data={"expired": count})


@clinical_alerts_bp.route("/<alert_id>")
def get_alert(alert_id):
    alert = get_safety_services().alert_manager.get_alert(alert_id)
    return api_success(data=alert.to_dict())


@clinical_alerts_bp.route("/<alert_id>/audit")
def alert_audit(alert_id):
    manager = get_safety_services().alert_manager
    manager.get_alert(alert_id)
    return api_success(data=manager.store.get_audit_log(alert_id))


@clinical_alerts_bp.route("/<alert_id>/acknowledge", methods=["POST"])
def acknowledge_alert(alert_id):
    user = _require_user()
    note = parse_acknowledgement(request.get_json(silent=True))
    alert = get_safety_services().alert_manager.acknowledge_alert(alert_id, user, note=note)
    return api_success(data=alert.to_dict(), message="Alert acknowledged")


@clinical_alerts_bp.route("/<alert_id>/dismiss", methods=["POST"])
def dismiss_alert(alert_id):
    user = _require_user()
    reason = parse_dismissal(request.get_json(silent=True))
    alert = get_safety_services().alert_manager.dismiss_alert(alert_id, user, reason)
    return api_success(data=alert.to_dict(), message="Alert dismissed")
