# Overview: Stateless signed admin tokens and the static-key fallback.

"""
Admin Access Control

Tokens are NOT stored. A token is

    base64url(json {"iat": ms, "exp": ms, "nonce": hex}) + "." + base64url(HMAC-SHA256)

signed over the encoded payload segment with the shared ADMIN_SECRET.

SECURITY:
- Signature compared with hmac.compare_digest
- Rejected when now > exp (epoch milliseconds)
- Any decode failure means "invalid", never an exception
- No revocation list; exposure is bounded by the TTL (default 30 minutes)
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets

from cart_registry.time_utils import now_ms as _now_ms


DEFAULT_TOKEN_TTL_SECONDS = 1800


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def _sign(secret: str, payload_segment: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), payload_segment.encode("ascii"), hashlib.sha256).digest()


def issue_token(secret: str, ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS, *, now_ms: int | None = None) -> str:
    """Issue a signed admin token valid for ttl_seconds."""
    if not secret:
        raise ValueError("Admin secret is not configured")
    issued_at = _now_ms() if now_ms is None else now_ms
    payload = {
        "iat": issued_at,
        "exp": issued_at + int(ttl_seconds) * 1000,
        "nonce": secrets.token_hex(16),
    }
    payload_segment = _b64encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{payload_segment}.{_b64encode(_sign(secret, payload_segment))}"


def decode_token(token: str) -> dict | None:
    """Decode the payload WITHOUT checking the signature (for display only)."""
    try:
        payload_segment, _ = token.split(".", 1)
        payload = json.loads(_b64decode(payload_segment))
    except (ValueError, AttributeError, binascii.Error):
        return None
    return payload if isinstance(payload, dict) else None


def verify_token(secret: str, token: str | None, *, now_ms: int | None = None) -> bool:
    """True iff the signature matches and the token has not expired."""
    if not secret or not token or not isinstance(token, str):
        return False

    parts = token.split(".")
    if len(parts) != 2:
        return False
    payload_segment, signature_segment = parts

    try:
        signature = _b64decode(signature_segment)
        payload_segment.encode("ascii")
    except (ValueError, binascii.Error):
        return False

    if not hmac.compare_digest(_sign(secret, payload_segment), signature):
        return False

    payload = decode_token(token)
    if payload is None:
        return False
    expires_at = payload.get("exp")
    if not isinstance(expires_at, int) or isinstance(expires_at, bool):
        return False

    current = _now_ms() if now_ms is None else now_ms
    return current <= expires_at


def verify_static_key(expected: str, provided: str | None) -> bool:
    """Exact match against the configured static admin key; unset key never matches."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))


def check_admin_password(expected: str, provided: str | None) -> bool:
    """Login credential check for issuing tokens; unset password disables login."""
    return verify_static_key(expected, provided)
