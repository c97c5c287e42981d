from __future__ import annotations

import enum
from typing import Any, Iterable


class ErrorKind(str, enum.Enum):
    INVALID_DATE = "INVALID_DATE"
    INVALID_DURATION = "INVALID_DURATION"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    STORE_CONFLICT_EXHAUSTED = "STORE_CONFLICT_EXHAUSTED"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class RegistryError(ValueError):
    """
    Base for every failure that crosses the engine boundary.

    Carries a machine-readable kind and the HTTP status the route layer
    should answer with.
    """
    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE
    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error_kind": self.kind.value, "message": self.message}


class ValidationError(RegistryError):
    """400-level input problem."""
    kind = ErrorKind.INVALID_REQUEST
    http_status = 400


class InvalidDateError(ValidationError):
    kind = ErrorKind.INVALID_DATE


class InvalidDurationError(ValidationError):
    kind = ErrorKind.INVALID_DURATION


class MissingFieldError(ValidationError):
    kind = ErrorKind.MISSING_FIELD

    def __init__(self, field: str):
        super().__init__(f"Missing required field: {field}")
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["field"] = self.field
        return payload


class UnauthorizedError(RegistryError):
    kind = ErrorKind.UNAUTHORIZED
    http_status = 401


class NotFoundError(RegistryError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404


class StoreConflictExhaustedError(RegistryError):
    """Optimistic-concurrency retries ran out."""
    kind = ErrorKind.STORE_CONFLICT_EXHAUSTED
    http_status = 409


class StoreUnavailableError(RegistryError):
    kind = ErrorKind.STORE_UNAVAILABLE
    http_status = 503


def clean_text(value: Any) -> str | None:
    """Strip strings; blank or missing values become None."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def first_missing(values: dict, required: Iterable[str]) -> str | None:
    for name in required:
        if clean_text(values.get(name)) is None:
            return name
    return None


def require_fields(values: dict, required: Iterable[str]) -> None:
    """Raise MissingFieldError naming the first blank field, in order."""
    missing = first_missing(values, required)
    if missing is not None:
        raise MissingFieldError(missing)
