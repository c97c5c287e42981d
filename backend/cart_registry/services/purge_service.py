# Overview: Filter-driven bulk deletion of historical registrations, with a dry-run mode.

"""
Purge Engine

A registration matches when ANY supplied filter matches:
- its id is in `ids`
- its order reference starts with `order_ref_prefix`
- its email ends with "@<email_domain>" (case-insensitive)
- its creation date (falling back to the purchase date) is strictly before
  `created_before`

Empty filters match nothing.

Planning scans a bounded page (PURGE_SCAN_LIMIT, oldest first). Execution
deletes in batches of at most PURGE_BATCH_SIZE, one transaction per batch.
A failed batch stops the run; earlier batches stay deleted and the partial
count is reported. Purge is NOT atomic across the whole set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Cart, Registration
from ..models.cart import POSSESSION_CUSTOMER
from ..validation import ValidationError, clean_text
from .concurrency import run_read
from .warranty_service import parse_date


logger = logging.getLogger(__name__)

DEFAULT_SCAN_LIMIT = 1000
MAX_BATCH_SIZE = 400


@dataclass(frozen=True)
class PurgeFilters:
    ids: frozenset[str] = frozenset()
    order_ref_prefix: str | None = None
    email_domain: str | None = None
    created_before: date | None = None

    @classmethod
    def from_payload(cls, data: dict | None) -> "PurgeFilters":
        data = data or {}
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        raw_ids = data.get("ids") or []
        if isinstance(raw_ids, str):
            raw_ids = [raw_ids]
        if not isinstance(raw_ids, (list, tuple, set)):
            raise ValidationError("ids must be a list of registration ids")

        domain = clean_text(data.get("email_domain"))
        if domain:
            domain = domain.lstrip("@").lower()

        raw_before = clean_text(data.get("created_before"))
        return cls(
            ids=frozenset(i for i in (clean_text(x) for x in raw_ids) if i),
            order_ref_prefix=clean_text(data.get("order_ref_prefix")),
            email_domain=domain or None,
            created_before=parse_date(raw_before, field="created_before") if raw_before else None,
        )

    def is_empty(self) -> bool:
        return not (self.ids or self.order_ref_prefix or self.email_domain or self.created_before)

    def to_dict(self) -> dict:
        return {
            "ids": sorted(self.ids),
            "order_ref_prefix": self.order_ref_prefix,
            "email_domain": self.email_domain,
            "created_before": self.created_before.isoformat() if self.created_before else None,
        }


@dataclass
class PurgeResult:
    requested: int
    deleted: int = 0
    skipped: list[str] = field(default_factory=list)
    complete: bool = True
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "requested": self.requested,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "complete": self.complete,
            "error": self.error,
        }


def _derived_date(reg: Registration) -> date | None:
    created = reg.created_at
    if isinstance(created, datetime):
        return created.date()
    return reg.purchase_date


def matches(reg: Registration, filters: PurgeFilters) -> bool:
    if filters.ids and reg.id in filters.ids:
        return True

    if filters.order_ref_prefix:
        order_ref = reg.order_ref or ""
        if order_ref.startswith(filters.order_ref_prefix):
            return True

    if filters.email_domain:
        email = (reg.customer_email or "").lower()
        if email.endswith("@" + filters.email_domain):
            return True

    if filters.created_before:
        derived = _derived_date(reg)
        if derived is not None and derived < filters.created_before:
            return True

    return False


def plan_purge(filters: PurgeFilters, *, scan_limit: int = DEFAULT_SCAN_LIMIT) -> list[str]:
    """Ids of registrations matching the filters within one bounded scan page."""
    if filters.is_empty():
        return []

    def _read() -> list[str]:
        page = (
            db.session.query(Registration)
            .order_by(Registration.created_at.asc(), Registration.id.asc())
            .limit(max(1, int(scan_limit)))
            .all()
        )
        return [reg.id for reg in page if matches(reg, filters)]

    return run_read(_read)


def _held_by_cart(ids: list[str]) -> set[str]:
    rows = (
        db.session.query(Cart.possession_registration_id)
        .filter(
            Cart.possession_type == POSSESSION_CUSTOMER,
            Cart.possession_registration_id.in_(ids),
        )
        .all()
    )
    return {r[0] for r in rows}


def execute_purge(ids: Iterable[str], *, batch_size: int = MAX_BATCH_SIZE) -> PurgeResult:
    """
    Delete registrations in sequential batches.

    Registrations currently held in a cart's CUSTOMER possession are
    skipped so the cart never points at a missing record.
    """
    unique_ids = list(dict.fromkeys(i for i in ids if i))
    batch_size = max(1, min(int(batch_size), MAX_BATCH_SIZE))
    result = PurgeResult(requested=len(unique_ids))

    for start in range(0, len(unique_ids), batch_size):
        batch = unique_ids[start:start + batch_size]
        try:
            held = _held_by_cart(batch)
            deletable = [i for i in batch if i not in held]
            deleted = 0
            if deletable:
                deleted = (
                    db.session.query(Registration)
                    .filter(Registration.id.in_(deletable))
                    .delete(synchronize_session=False)
                )
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Purge batch starting at %d failed", start)
            result.complete = False
            result.error = f"Batch starting at {start} failed: {exc.__class__.__name__}"
            return result

        result.deleted += deleted
        result.skipped.extend(i for i in batch if i in held)

    return result


def purge(
    filters: PurgeFilters,
    *,
    dry_run: bool = True,
    scan_limit: int = DEFAULT_SCAN_LIMIT,
    batch_size: int = MAX_BATCH_SIZE,
) -> dict:
    """Plan, then delete unless dry_run. Returns a JSON-ready report."""
    ids = plan_purge(filters, scan_limit=scan_limit)
    report = {
        "dry_run": dry_run,
        "filters": filters.to_dict(),
        "matched": len(ids),
        "ids": ids,
    }
    if dry_run:
        return report

    report["result"] = execute_purge(ids, batch_size=batch_size).to_dict()
    return report
