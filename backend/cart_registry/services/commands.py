# Overview: Typed inputs for each lifecycle operation, decoded and validated before any store call.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from ..validation import ValidationError, clean_text, require_fields
from .warranty_service import parse_date, parse_duration_months


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str | None = None

    def to_dict(self) -> dict:
        return {"name": self.name, "email": self.email, "phone": self.phone}


def _customer_values(data: dict) -> dict:
    """
    Customer fields may arrive nested ({"customer": {...}}) or flat.

    Flat form follows the registration form: nome/cognome or name/surname
    are joined into one display name.
    """
    nested = data.get("customer")
    if isinstance(nested, dict):
        source = nested
    elif nested is not None:
        raise ValidationError("customer must be an object")
    else:
        source = data

    name = clean_text(source.get("name"))
    if name is None:
        first = clean_text(source.get("first_name") or source.get("nome"))
        last = clean_text(source.get("last_name") or source.get("surname") or source.get("cognome"))
        name = " ".join(p for p in (first, last) if p) or None

    return {
        "name": name,
        "email": clean_text(source.get("email")),
        "phone": clean_text(source.get("phone") or source.get("telefono")),
    }


def _payload(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@dataclass(frozen=True)
class NewRegistrationCommand:
    """Warranty registration for a cart sold new."""
    serial: str
    model: str
    customer: Customer
    location: str
    purchase_date: date
    order_ref: str | None = None
    warranty_months: int | None = None  # None -> configured default

    def validate(self) -> None:
        require_fields(
            {
                "name": self.customer.name,
                "email": self.customer.email,
                "model": self.model,
                "serial": self.serial,
                "location": self.location,
                "purchase_date": self.purchase_date,
            },
            ("name", "email", "model", "serial", "location", "purchase_date"),
        )
        parse_date(self.purchase_date, field="purchase_date")
        if self.warranty_months is not None:
            parse_duration_months(self.warranty_months)

    @classmethod
    def from_payload(cls, data: Any) -> "NewRegistrationCommand":
        data = _payload(data)
        customer = _customer_values(data)
        values = {
            "name": customer["name"],
            "email": customer["email"],
            "model": data.get("model") or data.get("modello"),
            "serial": data.get("serial"),
            "location": data.get("location") or data.get("luogo"),
            "purchase_date": data.get("purchase_date") or data.get("data_acquisto"),
        }
        require_fields(values, ("name", "email", "model", "serial", "location", "purchase_date"))

        raw_months = data.get("warranty_months")
        return cls(
            serial=clean_text(values["serial"]),
            model=clean_text(values["model"]),
            customer=Customer(**customer),
            location=clean_text(values["location"]),
            purchase_date=parse_date(values["purchase_date"], field="purchase_date"),
            order_ref=clean_text(data.get("order_ref") or data.get("ordineShopify")),
            warranty_months=None if raw_months is None else parse_duration_months(raw_months),
        )


@dataclass(frozen=True)
class TradeInPickupCommand:
    """Dealer collects a cart back from its owner."""
    serial: str
    model: str
    note: str | None = None
    return_date: date | None = None

    def validate(self) -> None:
        require_fields({"serial": self.serial, "model": self.model}, ("serial", "model"))
        if self.return_date is not None:
            parse_date(self.return_date, field="return_date")

    @classmethod
    def from_payload(cls, data: Any, *, serial: str | None = None) -> "TradeInPickupCommand":
        data = _payload(data)
        values = {
            "serial": serial if serial is not None else data.get("serial"),
            "model": data.get("model") or data.get("modello"),
        }
        require_fields(values, ("serial", "model"))

        raw_return = clean_text(data.get("return_date"))
        return cls(
            serial=clean_text(values["serial"]),
            model=clean_text(values["model"]),
            note=clean_text(data.get("note")),
            return_date=parse_date(raw_return, field="return_date") if raw_return else None,
        )


@dataclass(frozen=True)
class UsedSaleCommand:
    """Resale of a traded-in cart to a new customer."""
    serial: str
    customer: Customer
    warranty_months: int
    model: str | None = None
    sale_date: date | None = None  # None -> today (UTC)
    order_ref: str | None = None
    location: str | None = None

    def validate(self) -> None:
        require_fields(
            {
                "serial": self.serial,
                "name": self.customer.name,
                "email": self.customer.email,
            },
            ("serial", "name", "email"),
        )
        parse_duration_months(self.warranty_months)
        if self.sale_date is not None:
            parse_date(self.sale_date, field="sale_date")

    @classmethod
    def from_payload(cls, data: Any, *, serial: str | None = None) -> "UsedSaleCommand":
        data = _payload(data)
        customer = _customer_values(data)
        values = {
            "serial": serial if serial is not None else data.get("serial"),
            "name": customer["name"],
            "email": customer["email"],
        }
        require_fields(values, ("serial", "name", "email"))

        raw_sale = clean_text(data.get("sale_date"))
        return cls(
            serial=clean_text(values["serial"]),
            customer=Customer(**customer),
            warranty_months=parse_duration_months(data.get("warranty_months")),
            model=clean_text(data.get("model") or data.get("modello")),
            sale_date=parse_date(raw_sale, field="sale_date") if raw_sale else None,
            order_ref=clean_text(data.get("order_ref") or data.get("ordineShopify")),
            location=clean_text(data.get("location") or data.get("luogo")),
        )
