# Overview: Registration ledger; opens and closes ownership registrations inside a caller's transaction.

"""
Registration Ledger

INVARIANTS:
- For one serial at most one registration is ACTIVE at any time.
- CLOSED_FOR_TRADE_IN is terminal for normal operations; only an
  idempotent re-submission of the same id rewrites a closed record.
- open/close never commit. They flush inside the transaction opened by
  the lifecycle operation that calls them (see cart_service).
"""

from __future__ import annotations

import uuid
from datetime import datetime

from ..extensions import db
from ..models import Registration
from ..models.registration import (
    KIND_NEW,
    STATUS_ACTIVE,
    STATUS_CLOSED_FOR_TRADE_IN,
    VALID_KINDS,
    VALID_REGISTRATION_STATUSES,
)
from ..validation import NotFoundError, ValidationError, clean_text, require_fields
from .concurrency import lock_for_update
from .warranty_service import Coverage, parse_date
from cart_registry.time_utils import utcnow


MAX_LIST_LIMIT = 1000

REQUIRED_FIELDS = ("name", "email", "model", "serial", "location")
REQUIRED_FIELDS_NEW = REQUIRED_FIELDS + ("purchase_date",)


def new_registration_id() -> str:
    """
    Generate a registration id.

    Callers that run inside a retried transaction generate this BEFORE the
    transaction starts so every attempt writes the same id.
    """
    return uuid.uuid4().hex


def open_registration(
    kind: str,
    serial: str,
    fields: dict,
    coverage: Coverage,
    explicit_id: str | None = None,
    *,
    new_id: str | None = None,
) -> Registration:
    """
    Write an ACTIVE registration.

    Args:
        kind: NEW or USED
        serial: Cart serial number
        fields: name, email, phone, model, location, purchase_date,
            order_ref, image_url
        coverage: Computed coverage window
        explicit_id: Caller-chosen id (order reference). An existing record
            with this id is overwritten in place.
        new_id: Pre-generated id used when explicit_id is absent

    Raises:
        MissingFieldError: first blank required field, in form order
        ValidationError: explicit_id already registered to another serial
    """
    if kind not in VALID_KINDS:
        raise ValidationError(f"Invalid registration kind '{kind}'")

    values = dict(fields)
    values["serial"] = serial
    require_fields(values, REQUIRED_FIELDS_NEW if kind == KIND_NEW else REQUIRED_FIELDS)

    purchase_date = values.get("purchase_date")
    if purchase_date is not None:
        purchase_date = parse_date(purchase_date, field="purchase_date")

    reg_id = clean_text(explicit_id)
    reg = db.session.get(Registration, reg_id) if reg_id else None
    if reg is not None and reg.serial != clean_text(serial):
        # An order number identifies one cart
        raise ValidationError(
            f"Registration {reg_id} already belongs to serial {reg.serial}"
        )
    if reg is None:
        reg = Registration(id=reg_id or new_id or new_registration_id())
        db.session.add(reg)

    reg.kind = kind
    reg.serial = clean_text(serial)
    reg.model = clean_text(values.get("model"))
    reg.customer_name = clean_text(values.get("name"))
    reg.customer_email = clean_text(values.get("email"))
    reg.customer_phone = clean_text(values.get("phone"))
    reg.location = clean_text(values.get("location"))
    reg.order_ref = clean_text(values.get("order_ref"))
    reg.purchase_date = purchase_date
    reg.image_url = values.get("image_url")
    reg.coverage_start = coverage.start
    reg.coverage_end = coverage.end
    reg.coverage_months = coverage.months
    reg.status = STATUS_ACTIVE
    reg.closed_at = None

    db.session.flush()
    return reg


def _active_registrations(serial: str, *, exclude_id: str | None = None) -> list[Registration]:
    q = db.session.query(Registration).filter(
        Registration.serial == serial,
        Registration.status == STATUS_ACTIVE,
    )
    if exclude_id:
        q = q.filter(Registration.id != exclude_id)
    # Newest first; id breaks created_at ties deterministically
    q = q.order_by(Registration.created_at.desc(), Registration.id.desc())
    return lock_for_update(q).all()


def close_active_registration(
    serial: str,
    *,
    exclude_id: str | None = None,
    closed_at: datetime | None = None,
) -> Registration | None:
    """
    Close the serial's ACTIVE registration for trade-in.

    Returns the most recently created ACTIVE registration after closing it,
    or None when there is nothing to close. Never fails on absence, so
    calling it twice in a row is safe: the second call returns None.

    Stray extra ACTIVE rows (older data written before the single-ACTIVE
    rule) are closed in the same pass.
    """
    rows = _active_registrations(serial, exclude_id=exclude_id)
    if not rows:
        return None

    when = closed_at or utcnow()
    for reg in rows:
        reg.status = STATUS_CLOSED_FOR_TRADE_IN
        reg.closed_at = when

    db.session.flush()
    return rows[0]


def get_registration(registration_id: str) -> Registration:
    reg_id = clean_text(registration_id)
    reg = db.session.get(Registration, reg_id) if reg_id else None
    if reg is None:
        raise NotFoundError(f"Registration {registration_id} not found")
    return reg


def registrations_for_serial(serial: str) -> list[Registration]:
    """Full ownership history for a serial, newest first."""
    return (
        db.session.query(Registration)
        .filter(Registration.serial == serial)
        .order_by(Registration.created_at.desc(), Registration.id.desc())
        .all()
    )


def list_registrations(
    *,
    serial: str | None = None,
    email: str | None = None,
    kind: str | None = None,
    status: str | None = None,
    limit: int = 200,
) -> list[Registration]:
    """
    Query registrations, newest first.

    USAGE EXAMPLES:
    - Admin table: list_registrations(limit=200)
    - Ownership history: list_registrations(serial="SN123")
    - Open warranties: list_registrations(status="ACTIVE")
    """
    if kind is not None and kind not in VALID_KINDS:
        raise ValidationError(f"Invalid registration kind '{kind}'")
    if status is not None and status not in VALID_REGISTRATION_STATUSES:
        raise ValidationError(f"Invalid registration status '{status}'")

    limit = max(1, min(int(limit), MAX_LIST_LIMIT))

    q = db.session.query(Registration)
    if serial:
        q = q.filter(Registration.serial == serial)
    if email:
        q = q.filter(db.func.lower(Registration.customer_email) == email.strip().lower())
    if kind:
        q = q.filter(Registration.kind == kind)
    if status:
        q = q.filter(Registration.status == status)

    q = q.order_by(Registration.created_at.desc(), Registration.id.desc())
    return q.limit(limit).all()
