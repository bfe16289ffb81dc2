"""Standardized API response helpers for the clinical safety API.

All JSON API endpoints return responses in a unified envelope format:

    Success: {"success": true, "data": ..., "message": ...}
    Error:   {"success": false, "error": ...}
    Invalid: {"success": false, "error": "Validation failed", "fields": {...}}

Usage:
    from dashboard.utils.api_response import api_success, api_error

    @bp.route("/alerts/summary")
    def alert_summary():
        return api_success(data=manager.get_alert_summary())
"""

from flask import jsonify


def api_success(data=None, message=None, status_code=200):
    """Return a standardized success response.

    Returns: {"success": true, "data": ..., "message": ...}
    """
    response = {"success": True}
    if data is not None:
        response["data"] = data
    if message is not None:
        response["message"] = message
    return jsonify(response), status_code


def api_error(error, status_code=400, **extra):
    """Return a standardized error response.

    Returns: {"success": false, "error": ..., **extra}
    """
    return jsonify({"success": False, "error": str(error), **extra}), status_code


def api_validation_error(fields):
    """Return a 400 listing every offending field."""
    return api_error("Validation failed", 400, fields=fields)
