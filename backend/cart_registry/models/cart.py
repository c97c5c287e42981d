from __future__ import annotations

from ..extensions import db
from cart_registry.time_utils import to_utc_z, utcnow


CART_UNKNOWN = "UNKNOWN"
CART_PICKED_UP_TRADE_IN = "PICKED_UP_TRADE_IN"
CART_IN_USE_BY_CUSTOMER = "IN_USE_BY_CUSTOMER"
VALID_CART_STATUSES = {CART_UNKNOWN, CART_PICKED_UP_TRADE_IN, CART_IN_USE_BY_CUSTOMER}

POSSESSION_DEALER = "DEALER"
POSSESSION_CUSTOMER = "CUSTOMER"

EVENT_TRADE_IN_PICKUP = "trade_in_pickup"
EVENT_USED_SALE = "used_sale"
EVENT_NEW_SALE = "new_sale"


class Cart(db.Model):
    """
    Current state of one physical cart, keyed by serial.

    WHY: Registrations are history; the cart row answers "where is this unit
    now and who holds it" without scanning that history.

    POSSESSION:
    - DEALER: possession_registration_id is NULL
    - CUSTOMER: possession_registration_id points at the ACTIVE registration

    Carts are created lazily by the first transition that touches a serial
    and are never deleted by normal operations.
    """
    __tablename__ = "carts"

    serial = db.Column(db.String(64), primary_key=True)
    model = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(32), nullable=False, default=CART_UNKNOWN, index=True)

    possession_type = db.Column(db.String(16), nullable=False, default=POSSESSION_DEALER)
    possession_registration_id = db.Column(
        db.String(64), db.ForeignKey("registrations.id"), nullable=True, index=True
    )

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    events = db.relationship(
        "CartEvent",
        backref="cart",
        lazy=True,
        order_by="CartEvent.sequence",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def possession_dict(self) -> dict:
        if self.possession_type == POSSESSION_CUSTOMER:
            return {
                "type": POSSESSION_CUSTOMER,
                "registration_id": self.possession_registration_id,
            }
        return {"type": POSSESSION_DEALER}

    def to_dict(self) -> dict:
        return {
            "serial": self.serial,
            "model": self.model,
            "status": self.status,
            "possession": self.possession_dict(),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class CartEvent(db.Model):
    """
    Append-only event log per cart.

    IMMUTABLE: Never update or delete. Written in the same transaction as
    the state change it records.
    """
    __tablename__ = "cart_events"
    __table_args__ = (
        db.Index("ix_cart_events_serial_sequence", "serial", "sequence"),
        {"sqlite_autoincrement": True},
    )

    sequence = db.Column(db.Integer, primary_key=True)
    serial = db.Column(db.String(64), db.ForeignKey("carts.serial"), nullable=False)

    event_type = db.Column(db.String(32), nullable=False, index=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "serial": self.serial,
            "type": self.event_type,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }
