# Overview: Flask API routes for admin login and token checks.

"""
Admin Authentication Routes

- POST /api/admin/login   - Exchange the admin password for a signed token
- GET  /api/admin/verify  - 200 when the presented credential is valid

Tokens are stateless; there is no logout. They expire after
ADMIN_TOKEN_TTL_SECONDS.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import error_response, registry_settings, require_admin
from ..services import admin_auth_service
from ..validation import UnauthorizedError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/login")
def login_route():
    """
    Request body:
    {
        "password": "..."
    }

    Response:
    {
        "token": "<payload>.<signature>",
        "expires_at": 1735689600000
    }
    """
    data = request.get_json(silent=True) or {}
    settings = registry_settings()

    if not admin_auth_service.check_admin_password(settings.admin_password, data.get("password")):
        return error_response(UnauthorizedError("Invalid credentials"))

    token = admin_auth_service.issue_token(settings.admin_secret, settings.admin_token_ttl_seconds)
    payload = admin_auth_service.decode_token(token) or {}
    return jsonify({"token": token, "expires_at": payload.get("exp")}), 200


@admin_bp.get("/verify")
@require_admin
def verify_route():
    return jsonify({"valid": True, "auth": g.admin_auth}), 200
