from __future__ import annotations

from typing import Any

from services.api.app.models.payment import CheckoutSession
from services.api.app.services.order_base import NotFound


class MockPaymentGateway:
    name = "MOCK"

    def __init__(self, sessions: dict[str, dict[str, Any]] | None = None) -> None:
        self._sessions = dict(sessions or {})

    def add_session(self, session: dict[str, Any]) -> None:
        self._sessions[session["id"]] = session

    def retrieve_session(self, session_id: str) -> CheckoutSession:
        raw = self._sessions.get(session_id)
        if raw is None:
            raise NotFound("Checkout session")
        return CheckoutSession.model_validate(raw)
