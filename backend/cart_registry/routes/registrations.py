# Overview: Flask API routes for warranty registrations; parses input and returns JSON responses.

# backend/cart_registry/routes/registrations.py
"""
Registration API Routes

- POST /api/registrations         - Register a new-sale warranty (public form)
- GET  /api/registrations         - List registrations (admin)
- GET  /api/registrations/:id     - Look up one registration / order (admin)
- POST /api/registrations/purge   - Bulk purge, dry run by default (admin)

Confirmation mail is sent only AFTER the registration transaction commits;
a mail failure never changes the response.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import error_response, registry_settings, require_admin
from ..services import cart_service, purge_service, registration_service
from ..services.commands import NewRegistrationCommand
from ..services.purge_service import PurgeFilters
from ..validation import RegistryError


registrations_bp = Blueprint("registrations", __name__, url_prefix="/api/registrations")


def _internal_error(message: str):
    current_app.logger.exception(message)
    return error_response(RegistryError("Internal server error"))


@registrations_bp.post("/")
@registrations_bp.post("")
def create_registration_route():
    """
    Register the warranty for a cart bought new.

    Request body:
    {
        "serial": "SN123",
        "model": "VERTX",
        "customer": {"name": "...", "email": "...", "phone": "..."},
        "location": "Pro Shop Milano",
        "purchase_date": "2024-01-15",      (or "15/01/2024")
        "order_ref": "1001",                (optional; becomes the id)
        "warranty_months": 24               (optional; default from config)
    }
    """
    try:
        command = NewRegistrationCommand.from_payload(request.get_json(silent=True))
        reg = cart_service.register_new_sale(command, settings=registry_settings())
        payload = reg.to_dict()
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to register new sale")

    mail_sent = current_app.extensions["mail_dispatcher"].send_confirmation(reg)

    return jsonify({
        "registration": payload,
        "mail_sent": mail_sent,
        "message": "Warranty registered",
    }), 201


@registrations_bp.get("/")
@registrations_bp.get("")
@require_admin
def list_registrations_route():
    """
    List registrations, newest first.

    Query params: serial, email, kind, status, limit (default 200, max 1000)
    """
    try:
        regs = registration_service.list_registrations(
            serial=request.args.get("serial") or None,
            email=request.args.get("email") or None,
            kind=request.args.get("kind") or None,
            status=request.args.get("status") or None,
            limit=request.args.get("limit", 200, type=int),
        )
        return jsonify({"registrations": [r.to_dict() for r in regs]}), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to list registrations")


@registrations_bp.get("/<string:registration_id>")
@require_admin
def get_registration_route(registration_id: str):
    """Fetch one registration by id (the shop order number for new sales)."""
    try:
        reg = registration_service.get_registration(registration_id)
        return jsonify({"registration": reg.to_dict()}), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to load registration")


@registrations_bp.post("/purge")
@require_admin
def purge_registrations_route():
    """
    Purge registrations matching any filter.

    Request body:
    {
        "ids": ["1001", "1002"],
        "order_ref_prefix": "TEST-",
        "email_domain": "test.com",
        "created_before": "2023-01-01",
        "dry_run": true                     (default true)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        filters = PurgeFilters.from_payload(data)
        dry_run = data.get("dry_run", True) is not False
        settings = registry_settings()

        report = purge_service.purge(
            filters,
            dry_run=dry_run,
            scan_limit=settings.purge_scan_limit,
            batch_size=settings.purge_batch_size,
        )
        return jsonify(report), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to purge registrations")
