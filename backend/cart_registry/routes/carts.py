# Overview: Flask API routes for cart transitions and warranty lookup.

# backend/cart_registry/routes/carts.py
"""
Cart Lifecycle API Routes

- POST /api/carts/:serial/trade-in   - Dealer picks a cart up (admin)
- POST /api/carts/:serial/used-sale  - Resell a traded-in cart (admin)
- GET  /api/carts/:serial/events     - Cart event log (admin)
- GET  /api/warranty/:serial         - Public warranty status

The serial in the path wins over any serial in the body.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import error_response, registry_settings, require_admin
from ..services import cart_service, lookup_service, registration_service
from ..services.commands import TradeInPickupCommand, UsedSaleCommand
from ..validation import RegistryError


carts_bp = Blueprint("carts", __name__, url_prefix="/api/carts")
warranty_bp = Blueprint("warranty", __name__, url_prefix="/api/warranty")


def _internal_error(message: str):
    current_app.logger.exception(message)
    return error_response(RegistryError("Internal server error"))


@carts_bp.post("/<string:serial>/trade-in")
@require_admin
def trade_in_route(serial: str):
    """
    Record a trade-in pickup.

    Request body:
    {
        "model": "VERTX",
        "note": "scratches on left panel",   (optional)
        "return_date": "2025-03-01"          (optional)
    }
    """
    try:
        command = TradeInPickupCommand.from_payload(request.get_json(silent=True), serial=serial)
        result = cart_service.trade_in_pickup(command, settings=registry_settings())
        return jsonify(result.to_dict()), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to record trade-in pickup")


@carts_bp.post("/<string:serial>/used-sale")
@require_admin
def used_sale_route(serial: str):
    """
    Record a used-cart sale.

    Request body:
    {
        "customer": {"name": "Mario Rossi", "email": "mario@x.it"},
        "warranty_months": 6,
        "sale_date": "2025-01-01",           (optional; default today)
        "model": "VERTX",                    (optional; default cart model)
        "order_ref": "U-77"                  (optional; informational)
    }
    """
    try:
        command = UsedSaleCommand.from_payload(request.get_json(silent=True), serial=serial)
        registration_id = cart_service.used_sale(command, settings=registry_settings())
        reg = registration_service.get_registration(registration_id)
        payload = reg.to_dict()
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to record used sale")

    mail_sent = current_app.extensions["mail_dispatcher"].send_confirmation(reg)

    return jsonify({
        "registration_id": registration_id,
        "registration": payload,
        "mail_sent": mail_sent,
    }), 201


@carts_bp.get("/<string:serial>/events")
@require_admin
def cart_events_route(serial: str):
    try:
        events = cart_service.cart_events(serial)
        return jsonify({"serial": serial, "events": [ev.to_dict() for ev in events]}), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to load cart events")


@warranty_bp.get("/<string:serial>")
def warranty_lookup_route(serial: str):
    """
    Warranty status for a serial.

    Always 200 for a well-formed serial; unknown serials return nulls.
    """
    try:
        status = lookup_service.lookup(serial)
        return jsonify(status.to_dict()), 200
    except RegistryError as e:
        return error_response(e)
    except Exception:
        return _internal_error("Failed to look up warranty")
