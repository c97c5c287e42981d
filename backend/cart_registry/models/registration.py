from __future__ import annotations

from ..extensions import db
from cart_registry.time_utils import to_utc_z, to_iso_date, utcnow


KIND_NEW = "NEW"
KIND_USED = "USED"
VALID_KINDS = {KIND_NEW, KIND_USED}

STATUS_ACTIVE = "ACTIVE"
STATUS_CLOSED_FOR_TRADE_IN = "CLOSED_FOR_TRADE_IN"
VALID_REGISTRATION_STATUSES = {STATUS_ACTIVE, STATUS_CLOSED_FOR_TRADE_IN}


class Registration(db.Model):
    """
    One ownership-changing event for a cart: a new sale or a used resale.

    WHY: The registration carries the warranty coverage window for the owner
    at the time. History is kept per serial; only the most recent owner's
    registration is ACTIVE.

    LIFECYCLE:
    - ACTIVE: The owner named here currently holds the cart
    - CLOSED_FOR_TRADE_IN: The cart went back to the dealer (terminal)

    DESIGN: There is no uniqueness constraint on (serial, status). The
    single-ACTIVE rule is kept by reading and closing inside the same
    transaction that opens a new registration.
    """
    __tablename__ = "registrations"
    __table_args__ = (
        db.Index("ix_registrations_serial_status", "serial", "status"),
        db.Index("ix_registrations_created", "created_at"),
    )

    # Order reference for new sales, generated hex id otherwise
    id = db.Column(db.String(64), primary_key=True)
    kind = db.Column(db.String(8), nullable=False, index=True)  # NEW, USED

    serial = db.Column(db.String(64), nullable=False, index=True)
    model = db.Column(db.String(128), nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(64), nullable=True)

    location = db.Column(db.String(255), nullable=False)  # Where it was bought
    order_ref = db.Column(db.String(64), nullable=True, index=True)
    purchase_date = db.Column(db.Date, nullable=True)  # NEW only
    image_url = db.Column(db.String(512), nullable=True)

    coverage_start = db.Column(db.Date, nullable=False)
    coverage_end = db.Column(db.Date, nullable=False)
    coverage_months = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(32), nullable=False, default=STATUS_ACTIVE, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    # Set in Python so creation order has sub-second resolution on SQLite
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def customer_dict(self) -> dict:
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
        }

    def coverage_dict(self) -> dict:
        return {
            "start": to_iso_date(self.coverage_start),
            "end": to_iso_date(self.coverage_end),
            "duration_months": self.coverage_months,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "serial": self.serial,
            "model": self.model,
            "customer": self.customer_dict(),
            "location": self.location,
            "order_ref": self.order_ref,
            "purchase_date": to_iso_date(self.purchase_date),
            "image_url": self.image_url,
            "coverage": self.coverage_dict(),
            "status": self.status,
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
