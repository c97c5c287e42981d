# Overview: Cart state machine; ownership transitions spanning the registration ledger and the cart record.

"""
Cart Lifecycle Engine

================================================================================
PURPOSE: Keep each serial's Cart consistent with its registration history
================================================================================

STATE MACHINE:
    UNKNOWN            -> PICKED_UP_TRADE_IN | IN_USE_BY_CUSTOMER
    PICKED_UP_TRADE_IN -> PICKED_UP_TRADE_IN | IN_USE_BY_CUSTOMER
    IN_USE_BY_CUSTOMER -> PICKED_UP_TRADE_IN | IN_USE_BY_CUSTOMER

    Nothing leads back to UNKNOWN.

TRANSITIONS (each ONE transaction over registrations + carts + cart_events):
- register_new_sale: open a NEW registration; an existing cart follows it
  into customer possession
- trade_in_pickup:   close the owner's registration, cart back to the dealer
- used_sale:         close any owner's registration, open a USED one, cart
                     into the new customer's possession

RULES:
1. All input validation happens before the transaction starts.
2. Transaction bodies may be re-run on write conflict. They touch only the
   session: no mail, no clock-dependent ids, no outside calls.
   Row locks are taken cart first, then registrations.
3. CUSTOMER possession always points at the ACTIVE registration for the
   same serial.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import RegistrySettings
from ..extensions import db
from ..models import Cart, CartEvent, Registration
from ..models.cart import (
    CART_IN_USE_BY_CUSTOMER,
    CART_PICKED_UP_TRADE_IN,
    CART_UNKNOWN,
    EVENT_NEW_SALE,
    EVENT_TRADE_IN_PICKUP,
    EVENT_USED_SALE,
    POSSESSION_CUSTOMER,
    POSSESSION_DEALER,
    VALID_CART_STATUSES,
)
from ..models.registration import KIND_NEW, KIND_USED
from ..validation import MissingFieldError, ValidationError
from . import registration_service
from .catalogue import image_url_for
from .commands import NewRegistrationCommand, TradeInPickupCommand, UsedSaleCommand
from .concurrency import lock_for_update, run_in_transaction, run_read
from .warranty_service import compute_coverage, parse_date
from cart_registry.time_utils import to_iso_date, utctoday


@dataclass(frozen=True)
class TradeInResult:
    cart: Cart
    closed_registration_id: str | None

    def to_dict(self) -> dict:
        return {
            "cart": self.cart.to_dict(),
            "closed_registration_id": self.closed_registration_id,
        }


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check a cart status change against the state machine.

    Re-entering the same state is allowed (a second pickup or a resale of
    a cart already in use); returning to UNKNOWN never is.
    """
    for status in (from_status, to_status):
        if status not in VALID_CART_STATUSES:
            raise ValidationError(
                f"Invalid cart status '{status}'. Must be one of: {', '.join(sorted(VALID_CART_STATUSES))}"
            )
    return to_status in (CART_PICKED_UP_TRADE_IN, CART_IN_USE_BY_CUSTOMER)


def get_cart(serial: str, *, for_update: bool = False) -> Cart | None:
    q = db.session.query(Cart).filter(Cart.serial == serial)
    if for_update:
        q = lock_for_update(q)
    return q.first()


def _move_cart(
    cart: Cart | None,
    serial: str,
    *,
    status: str,
    possession_type: str,
    registration_id: str | None,
    model: str | None,
) -> Cart:
    """Create-or-update the cart row, enforcing the transition table."""
    if cart is None:
        cart = Cart(serial=serial, status=CART_UNKNOWN, possession_type=POSSESSION_DEALER)
        db.session.add(cart)

    if not can_transition(cart.status, status):
        raise ValidationError(
            f"Cart {serial} cannot move from {cart.status} to {status}"
        )

    cart.status = status
    cart.possession_type = possession_type
    cart.possession_registration_id = registration_id if possession_type == POSSESSION_CUSTOMER else None
    if model:
        cart.model = model

    db.session.flush()
    return cart


def append_cart_event(serial: str, event_type: str, payload: dict) -> CartEvent:
    """
    Append-only cart event. No updates or deletes of existing events.

    Must be called after the cart row exists in the same transaction.
    """
    ev = CartEvent(serial=serial, event_type=event_type, payload=payload)
    db.session.add(ev)
    db.session.flush()
    return ev


def trade_in_pickup(
    command: TradeInPickupCommand,
    *,
    settings: RegistrySettings,
) -> TradeInResult:
    """
    Dealer takes a cart back (* -> PICKED_UP_TRADE_IN).

    Steps, atomically:
    1. Close the serial's ACTIVE registration (if any)
    2. Upsert the cart: PICKED_UP_TRADE_IN, DEALER possession, model updated
    3. Append a trade_in_pickup event

    A cart with no history is created directly in PICKED_UP_TRADE_IN and
    nothing is closed.
    """
    command.validate()
    return_date = parse_date(command.return_date, field="return_date") if command.return_date else None

    def _body() -> TradeInResult:
        existing = get_cart(command.serial, for_update=True)
        closed = registration_service.close_active_registration(command.serial)
        cart = _move_cart(
            existing,
            command.serial,
            status=CART_PICKED_UP_TRADE_IN,
            possession_type=POSSESSION_DEALER,
            registration_id=None,
            model=command.model,
        )
        append_cart_event(
            command.serial,
            EVENT_TRADE_IN_PICKUP,
            {
                "return_date": to_iso_date(return_date),
                "note": command.note,
                "closed_registration_id": closed.id if closed else None,
            },
        )
        return TradeInResult(cart=cart, closed_registration_id=closed.id if closed else None)

    return run_in_transaction(_body, attempts=settings.transaction_attempts)


def used_sale(
    command: UsedSaleCommand,
    *,
    settings: RegistrySettings,
) -> str:
    """
    Resell a cart to a new customer (* -> IN_USE_BY_CUSTOMER).

    Steps, atomically:
    1. Close the serial's ACTIVE registration (if any)
    2. Compute coverage from the sale date (default: today, UTC)
    3. Open a USED registration under a freshly generated id
    4. Upsert the cart: IN_USE_BY_CUSTOMER, possession -> new registration,
       keeping the previous model when none is supplied
    5. Append a used_sale event

    Returns:
        The new registration id

    DESIGN NOTES:
    - The id is generated once, before the transaction, so a retried body
      writes the same row.
    - order_ref is stored for reference only and never becomes the id, so
      used-sale ids cannot collide with new-sale order numbers.
    """
    command.validate()
    sale_date = parse_date(command.sale_date, field="sale_date") if command.sale_date else utctoday()
    coverage = compute_coverage(sale_date, command.warranty_months)
    new_id = registration_service.new_registration_id()
    location = command.location or settings.used_sale_location

    def _body() -> str:
        existing = get_cart(command.serial, for_update=True)
        closed = registration_service.close_active_registration(command.serial)

        model = command.model or (existing.model if existing else None) or (closed.model if closed else None)
        if not model:
            # No model supplied and none on record for this serial
            raise MissingFieldError("model")

        reg = registration_service.open_registration(
            KIND_USED,
            command.serial,
            {
                "name": command.customer.name,
                "email": command.customer.email,
                "phone": command.customer.phone,
                "model": model,
                "location": location,
                "order_ref": command.order_ref,
                "image_url": image_url_for(model, settings.base_image_url),
            },
            coverage,
            new_id=new_id,
        )
        _move_cart(
            existing,
            command.serial,
            status=CART_IN_USE_BY_CUSTOMER,
            possession_type=POSSESSION_CUSTOMER,
            registration_id=reg.id,
            model=model,
        )
        append_cart_event(
            command.serial,
            EVENT_USED_SALE,
            {
                "registration_id": reg.id,
                "customer": command.customer.to_dict(),
                "coverage_end": to_iso_date(coverage.end),
                "closed_registration_id": closed.id if closed else None,
            },
        )
        return reg.id

    return run_in_transaction(_body, attempts=settings.transaction_attempts)


def register_new_sale(
    command: NewRegistrationCommand,
    *,
    settings: RegistrySettings,
) -> Registration:
    """
    Register the warranty for a cart sold new.

    Steps, atomically:
    1. Close any OTHER ACTIVE registration for the serial
    2. Open the NEW registration, keyed by the order reference when given
       (re-submitting the same order overwrites it in place)
    3. If a cart row already exists, move it to IN_USE_BY_CUSTOMER with
       possession of the new registration and append a new_sale event.
       A new sale does not create a cart.
    """
    command.validate()
    months = command.warranty_months
    if months is None:
        months = settings.default_warranty_months
    coverage = compute_coverage(command.purchase_date, months)
    new_id = registration_service.new_registration_id()

    def _body() -> Registration:
        cart = get_cart(command.serial, for_update=True)
        closed = registration_service.close_active_registration(
            command.serial, exclude_id=command.order_ref
        )
        reg = registration_service.open_registration(
            KIND_NEW,
            command.serial,
            {
                "name": command.customer.name,
                "email": command.customer.email,
                "phone": command.customer.phone,
                "model": command.model,
                "location": command.location,
                "purchase_date": command.purchase_date,
                "order_ref": command.order_ref,
                "image_url": image_url_for(command.model, settings.base_image_url),
            },
            coverage,
            explicit_id=command.order_ref,
            new_id=new_id,
        )

        if cart is not None:
            _move_cart(
                cart,
                command.serial,
                status=CART_IN_USE_BY_CUSTOMER,
                possession_type=POSSESSION_CUSTOMER,
                registration_id=reg.id,
                model=command.model,
            )
            append_cart_event(
                command.serial,
                EVENT_NEW_SALE,
                {
                    "registration_id": reg.id,
                    "coverage_end": to_iso_date(coverage.end),
                    "closed_registration_id": closed.id if closed else None,
                },
            )
        return reg

    return run_in_transaction(_body, attempts=settings.transaction_attempts)


def cart_events(serial: str) -> list[CartEvent]:
    """Ordered event log for a cart (oldest first)."""
    def _read() -> list[CartEvent]:
        return (
            db.session.query(CartEvent)
            .filter(CartEvent.serial == serial)
            .order_by(CartEvent.sequence.asc())
            .all()
        )

    return run_read(_read)
