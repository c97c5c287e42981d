# Overview: Warranty coverage arithmetic; pure functions, no database access.

"""
Warranty Calculator

Coverage runs from the purchase/sale date for a whole number of calendar
months. Month arithmetic, not day arithmetic:

    2024-01-15 + 24 months -> 2026-01-15
    2025-01-01 +  6 months -> 2025-07-01

ROLLOVER RULE: when the target month has fewer days than the start day,
the end date clamps to the last day of the target month:

    2024-01-31 + 1 month -> 2024-02-29
    2023-01-31 + 1 month -> 2023-02-28
"""

from __future__ import annotations

import calendar
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from ..validation import InvalidDateError, InvalidDurationError
from cart_registry.time_utils import utcnow


_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_EU_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")

SECONDS_PER_DAY = 86400

# 100 years
MAX_WARRANTY_MONTHS = 1200


@dataclass(frozen=True)
class Coverage:
    start: date
    end: date
    months: int

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_months": self.months,
        }


def parse_date(value: Any, *, field: str = "date") -> date:
    """
    Parse a calendar date.

    Accepts date/datetime objects and the two string forms used by the
    registration forms: ISO "YYYY-MM-DD" and European "DD/MM/YYYY".

    Raises:
        InvalidDateError: unrecognised format or not a real calendar day
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(f"{field} must be a date string (YYYY-MM-DD or DD/MM/YYYY)")

    s = value.strip()
    m = _ISO_DATE.match(s)
    if m:
        year, month, day = (int(g) for g in m.groups())
    else:
        m = _EU_DATE.match(s)
        if not m:
            raise InvalidDateError(f"{field} '{value}' is not YYYY-MM-DD or DD/MM/YYYY")
        day, month, year = (int(g) for g in m.groups())

    try:
        return date(year, month, day)
    except ValueError:
        raise InvalidDateError(f"{field} '{value}' is not a valid calendar date")


def parse_duration_months(value: Any) -> int:
    """
    Normalize a warranty duration to a whole number of months.

    Accepts ints, integral floats and numeric strings. Booleans, NaN,
    infinities, negative, fractional and over-long (> MAX_WARRANTY_MONTHS)
    values are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidDurationError("warranty duration must be a number of months")

    if isinstance(value, str):
        s = value.strip()
        try:
            value = float(s)
        except ValueError:
            raise InvalidDurationError(f"warranty duration '{s}' is not a number")

    if isinstance(value, int):
        months = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidDurationError("warranty duration must be finite")
        if not value.is_integer():
            raise InvalidDurationError("warranty duration must be a whole number of months")
        months = int(value)
    else:
        raise InvalidDurationError("warranty duration must be a number of months")

    if months < 0:
        raise InvalidDurationError("warranty duration must be >= 0")
    if months > MAX_WARRANTY_MONTHS:
        raise InvalidDurationError(f"warranty duration must be <= {MAX_WARRANTY_MONTHS} months")
    return months


def add_months(start: date, months: int) -> date:
    """Calendar-month addition with end-of-month clamping."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    try:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(start.day, last_day))
    except (ValueError, OverflowError):
        raise InvalidDurationError(f"coverage end falls outside the calendar ({start.isoformat()} + {months} months)")


def compute_coverage(reference_date: Any, duration_months: Any) -> Coverage:
    start = parse_date(reference_date)
    months = parse_duration_months(duration_months)
    return Coverage(start=start, end=add_months(start, months), months=months)


def residual_days(coverage_end: date | None, now: datetime | None = None) -> int | None:
    """
    Whole days of warranty left, rounded up.

    Negative once expired; the sign is meaningful and is not clamped.
    The end date is taken at 00:00 UTC.
    """
    if coverage_end is None:
        return None
    now = now or utcnow()
    end_at = datetime.combine(coverage_end, time.min)
    delta: timedelta = end_at - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
