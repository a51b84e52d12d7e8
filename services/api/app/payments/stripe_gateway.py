from __future__ import annotations

import json
import os
import urllib.error
import urllib.parse
import urllib.request

from services.api.app.models.payment import CheckoutSession
from services.api.app.services.order_base import NotFound, PaymentGatewayError


class StripePaymentGateway:
    """Checkout session lookups against the Stripe REST API."""

    name = "STRIPE"

    def __init__(self, *, api_key: str, base_url: str | None = None, timeout: float = 20) -> None:
        self._api_key = api_key
        self._base_url = (base_url or default_stripe_base_url()).rstrip("/")
        self._timeout = timeout

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        quoted = urllib.parse.quote(session_id.strip(), safe="")
        payload = self._get_json(f"/v1/checkout/sessions/{quoted}")

        try:
            return CheckoutSession.model_validate(payload)
        except ValueError as e:
            raise PaymentGatewayError(f"Unexpected Stripe session shape: {e}") from e

    def _get_json(self, path: str) -> dict:
        req = urllib.request.Request(f"{self._base_url}{path}", method="GET")
        req.add_header("Authorization", f"Bearer {self._api_key}")

        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise NotFound("Checkout session") from e
            raw = e.read().decode("utf-8", errors="replace")
            raise PaymentGatewayError(f"Stripe HTTP {e.code}: {raw}") from e
        except urllib.error.URLError as e:
            raise PaymentGatewayError(f"Stripe unreachable: {e.reason}") from e


def default_stripe_base_url() -> str:
    return os.getenv("ORDERLINE_STRIPE_BASE_URL", "https://api.stripe.com")
