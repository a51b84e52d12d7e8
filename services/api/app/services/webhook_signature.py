"""Payment webhook signature scheme.

The processor sends ``Stripe-Signature: t=<unix seconds>,v1=<hex>[,v1=<hex>...]``
where each ``v1`` is HMAC-SHA256 over ``"<t>.<raw body>"`` keyed by the endpoint's
signing secret. Several ``v1`` entries appear while a secret is being rolled.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import time

from services.api.app.services.order_base import SignatureVerificationFailed

DEFAULT_TOLERANCE_SECONDS = 300


def webhook_secret() -> str:
    return os.getenv("STRIPE_WEBHOOK_SECRET", "").strip()


def tolerance_seconds() -> int:
    raw = os.getenv("ORDERLINE_WEBHOOK_TOLERANCE_SECONDS", "").strip()
    if not raw:
        return DEFAULT_TOLERANCE_SECONDS
    try:
        return max(0, int(raw))
    except ValueError:
        return DEFAULT_TOLERANCE_SECONDS


def compute_signature(payload: bytes, secret: str, timestamp: int) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a signature header the way the processor does (tests and tooling)."""

    ts = int(time.time()) if timestamp is None else int(timestamp)
    return f"t={ts},v1={compute_signature(payload, secret, ts)}"


def _parse_header(header: str) -> tuple[int, list[str]]:
    timestamp: int | None = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as e:
                raise SignatureVerificationFailed("Malformed signature timestamp") from e
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None:
        raise SignatureVerificationFailed("Signature header has no timestamp")
    if not signatures:
        raise SignatureVerificationFailed("Signature header has no v1 signature")
    return timestamp, signatures


def verify_signature(
    payload: bytes,
    header: str | None,
    secret: str | None,
    *,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: int | None = None,
) -> None:
    """Raise SignatureVerificationFailed unless ``header`` signs ``payload``."""

    if not secret:
        raise SignatureVerificationFailed("Webhook secret not configured")
    if not header:
        raise SignatureVerificationFailed("Missing signature header")

    timestamp, signatures = _parse_header(header)
    expected = compute_signature(payload, secret, timestamp)

    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise SignatureVerificationFailed("No signature matches the payload")

    if tolerance > 0:
        current = int(time.time()) if now is None else now
        if abs(current - timestamp) > tolerance:
            raise SignatureVerificationFailed("Signature timestamp outside tolerance")
