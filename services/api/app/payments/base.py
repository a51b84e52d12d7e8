from __future__ import annotations

from typing import Protocol

from services.api.app.models.payment import CheckoutSession


class PaymentGateway(Protocol):
    """Read-only view of the payment processor. Charges are never initiated here."""

    name: str

    def retrieve_session(self, session_id: str) -> CheckoutSession: ...
