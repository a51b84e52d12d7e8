import pytest
from services.api.app.payments.factory import get_payment_gateway
from services.api.app.payments.mock import MockPaymentGateway
from services.api.app.services.order_base import NotFound


def test_get_payment_gateway_defaults_to_mock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORDERLINE_PAYMENT_GATEWAY", raising=False)
    gateway = get_payment_gateway()
    assert gateway.name == "MOCK"


def test_get_payment_gateway_rejects_unknown(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ORDERLINE_PAYMENT_GATEWAY", "nope")
    with pytest.raises(ValueError, match="Unknown ORDERLINE_PAYMENT_GATEWAY"):
        get_payment_gateway()


def test_stripe_gateway_requires_secret_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ORDERLINE_PAYMENT_GATEWAY", "stripe")
    monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
    with pytest.raises(ValueError, match="STRIPE_SECRET_KEY"):
        get_payment_gateway()


def test_stripe_gateway_selected_with_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ORDERLINE_PAYMENT_GATEWAY", "stripe")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_123")
    assert get_payment_gateway().name == "STRIPE"


def test_mock_gateway_returns_known_sessions() -> None:
    gateway = MockPaymentGateway({"cs_1": {"id": "cs_1", "payment_status": "paid"}})
    assert gateway.retrieve_session("cs_1").payment_status == "paid"

    with pytest.raises(NotFound):
        gateway.retrieve_session("cs_missing")
