# Overview: Warranty status read model joining the registration ledger with the cart record.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..extensions import db
from ..models import Cart, Registration
from ..models.registration import STATUS_ACTIVE
from ..validation import clean_text, MissingFieldError
from .concurrency import run_read
from .warranty_service import residual_days


@dataclass
class WarrantyStatus:
    registration: Registration | None
    cart: Cart | None
    residual_warranty_days: int | None

    def to_dict(self) -> dict:
        return {
            "registration": self.registration.to_dict() if self.registration else None,
            "cart": self.cart.to_dict() if self.cart else None,
            "residual_warranty_days": self.residual_warranty_days,
        }


def _current_registration(serial: str) -> Registration | None:
    """
    The registration that speaks for the serial's warranty.

    Prefer the newest ACTIVE one; otherwise the newest with a coverage end
    (e.g. a cart sitting at the dealer after a trade-in).
    """
    newest_first = (Registration.created_at.desc(), Registration.id.desc())

    reg = (
        db.session.query(Registration)
        .filter(Registration.serial == serial, Registration.status == STATUS_ACTIVE)
        .order_by(*newest_first)
        .first()
    )
    if reg is not None:
        return reg

    return (
        db.session.query(Registration)
        .filter(Registration.serial == serial, Registration.coverage_end.isnot(None))
        .order_by(*newest_first)
        .first()
    )


def lookup(serial: str, *, now: datetime | None = None) -> WarrantyStatus:
    """
    Warranty status for a serial.

    Read-only, not transactional: both reads share one session so they
    come from the same connection, but may trail a concurrent write.
    residual_warranty_days is negative once coverage has expired.
    """
    serial = clean_text(serial)
    if serial is None:
        raise MissingFieldError("serial")

    def _read() -> WarrantyStatus:
        reg = _current_registration(serial)
        cart = db.session.get(Cart, serial)
        days = residual_days(reg.coverage_end, now) if reg is not None else None
        return WarrantyStatus(registration=reg, cart=cart, residual_warranty_days=days)

    return run_read(_read)
