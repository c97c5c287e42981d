# Overview: Request guard decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .config import RegistrySettings
from .services import admin_auth_service
from .validation import UnauthorizedError


ADMIN_KEY_HEADER = "X-Admin-Key"


def registry_settings() -> RegistrySettings:
    return current_app.extensions["registry_settings"]


def error_response(exc):
    """Render a RegistryError as {"error_kind", "message"} with its status."""
    return jsonify(exc.to_dict()), exc.http_status


def require_admin(f):
    """
    Require an admin credential.

    Accepts either:
    - Authorization: Bearer <signed admin token> (browser admin panel)
    - X-Admin-Key: <static key> (scripts and admin tools)

    Sets g.admin_auth to "token" or "static_key".

    SECURITY: Returns 401 UNAUTHORIZED when neither credential verifies.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        settings = registry_settings()

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header.split(" ", 1)[1].strip()
            if admin_auth_service.verify_token(settings.admin_secret, token):
                g.admin_auth = "token"
                return f(*args, **kwargs)

        static_key = request.headers.get(ADMIN_KEY_HEADER)
        if admin_auth_service.verify_static_key(settings.admin_static_key, static_key):
            g.admin_auth = "static_key"
            return f(*args, **kwargs)

        return error_response(UnauthorizedError("Admin authentication required"))

    return decorated_function
