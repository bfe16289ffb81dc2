"""Resolve the acting user for a request.

Authentication happens upstream (reverse proxy / SSO); the authenticated user
id arrives in the ``X-User-Id`` header.
"""

from flask import request


def get_user_from_request(default: str | None = None) -> str | None:
    """Return the acting user's id, falling back to the JSON body then ``default``."""
    user = request.headers.get("X-User-Id")
    if user:
        return user.strip()

    data = request.get_json(silent=True) or {}
    if isinstance(data, dict):
        user = data.get("userId") or data.get("user_id")
        if user:
            return str(user).strip()

    return default
