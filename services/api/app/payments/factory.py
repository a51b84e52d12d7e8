from __future__ import annotations

import os

from services.api.app.payments.base import PaymentGateway
from services.api.app.payments.mock import MockPaymentGateway


def get_payment_gateway() -> PaymentGateway:
    """Select the payment gateway based on env vars.

    Defaults to the mock gateway so tests and local dev never reach the processor unless
    explicitly configured otherwise.
    """

    mode = os.getenv("ORDERLINE_PAYMENT_GATEWAY", "mock").strip().lower()

    if mode == "mock":
        return MockPaymentGateway()

    if mode == "stripe":
        from services.api.app.payments.stripe_gateway import StripePaymentGateway

        api_key = os.getenv("STRIPE_SECRET_KEY", "").strip()
        if not api_key:
            raise ValueError("STRIPE_SECRET_KEY is required when ORDERLINE_PAYMENT_GATEWAY=stripe")

        return StripePaymentGateway(api_key=api_key)

    raise ValueError(f"Unknown ORDERLINE_PAYMENT_GATEWAY={mode!r}. Expected mock or stripe.")
