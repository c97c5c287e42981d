# backend/cart_registry/routes/system.py
"""
System health, version and static email asset endpoints.
"""

import os
import sys
import time
from flask import Blueprint, abort, current_app, send_from_directory
from ..extensions import db
from ..models import Cart, Registration
from ..models.registration import STATUS_ACTIVE
from cart_registry.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        registration_count = db.session.query(Registration).count()
        active_count = db.session.query(Registration).filter_by(status=STATUS_ACTIVE).count()
        cart_count = db.session.query(Cart).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "registrations": registration_count,
                "active_registrations": active_count,
                "carts": cart_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_mail_health() -> dict:
    """Mail is optional: unconfigured SMTP is 'degraded', not 'unhealthy'."""
    dispatcher = current_app.extensions["mail_dispatcher"]
    if dispatcher.enabled:
        return {"status": "healthy"}
    return {"status": "degraded", "details": "SMTP not configured; confirmations disabled"}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: Healthy or degraded (mail off)
    - 503: Database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    mail_health = check_mail_health()

    if database_health["status"] == "unhealthy":
        overall_status = "unhealthy"
        http_status = 503
    elif mail_health["status"] == "degraded":
        overall_status = "degraded"
        http_status = 200  # Degraded is still operational
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "mail": mail_health,
        }
    }

    return response, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secrets, credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }


@system_bp.get("/email-assets/images/<path:filename>")
def email_asset(filename: str):
    """Catalogue images linked from confirmation mail."""
    assets_dir = os.path.abspath(current_app.extensions["registry_settings"].email_assets_dir)
    if not os.path.isdir(assets_dir):
        abort(404)
    return send_from_directory(assets_dir, filename)
