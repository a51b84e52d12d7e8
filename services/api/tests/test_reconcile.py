from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from packages.shared.schemas.order_v1 import RoleV1
from services.api.app.payments.mock import MockPaymentGateway
from services.api.app.services.identity import issue_token
from services.api.app.services.order_base import PaymentGatewayError


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "orderline_reconcile.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("ORDERLINE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("ORDERLINE_JWT_SECRET", "test-secret")

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


def _session(session_id: str, payment_status: str = "paid") -> dict:
    return {
        "id": session_id,
        "payment_status": payment_status,
        "payment_intent": {"id": "pi_expanded"},
        "metadata": {
            "orderId": "ORD-REC1",
            "customerId": "cust-1",
            "vendorId": "vendor-1",
            "vendorName": "Colmado La Esquina",
            "itemsJson": json.dumps(
                [{"productId": "p-1", "name": "Cafe", "price": "3", "quantity": 1}]
            ),
            "fulfillmentType": "pickup",
            "subtotal": "3",
            "total": "3",
        },
    }


def _use_gateway(monkeypatch: pytest.MonkeyPatch, gateway: object) -> None:
    import services.api.app.routers.webhooks as webhooks_router

    monkeypatch.setattr(webhooks_router, "get_payment_gateway", lambda: gateway)


def _admin() -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token('admin-1', RoleV1.ADMIN)}"}


def test_reconcile_creates_missed_order_once(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_gateway(monkeypatch, MockPaymentGateway({"cs_missed": _session("cs_missed")}))

    first = client.post("/v1/admin/payments/sessions/cs_missed/reconcile", headers=_admin())
    assert first.status_code == 200
    assert first.json()["outcome"] == "created"

    second = client.post("/v1/admin/payments/sessions/cs_missed/reconcile", headers=_admin())
    assert second.json()["outcome"] == "duplicate"
    assert second.json()["order_id"] == first.json()["order_id"]

    detail = client.get(f"/v1/orders/{first.json()['order_id']}", headers=_admin()).json()
    assert detail["order_code"] == "ORD-REC1"
    assert detail["delivery_address"] is None


def test_reconcile_ignores_unpaid_session(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_gateway(monkeypatch, MockPaymentGateway({"cs_open": _session("cs_open", "unpaid")}))
    resp = client.post("/v1/admin/payments/sessions/cs_open/reconcile", headers=_admin())
    assert resp.status_code == 200
    assert resp.json()["outcome"] == "ignored"
    assert resp.json()["order_id"] is None


def test_reconcile_is_admin_only(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_gateway(monkeypatch, MockPaymentGateway({"cs_missed": _session("cs_missed")}))
    vendor = {"Authorization": f"Bearer {issue_token('vendor-1', RoleV1.VENDOR)}"}

    url = "/v1/admin/payments/sessions/cs_missed/reconcile"
    assert client.post(url, headers=vendor).status_code == 403
    assert client.post(url).status_code == 401


def test_reconcile_unknown_session_is_404(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_gateway(monkeypatch, MockPaymentGateway())
    resp = client.post("/v1/admin/payments/sessions/cs_nope/reconcile", headers=_admin())
    assert resp.status_code == 404


class _DownGateway:
    name = "DOWN"

    def retrieve_session(self, session_id: str) -> object:
        del session_id
        raise PaymentGatewayError("Stripe unreachable: timed out")


def test_reconcile_gateway_failure_is_502(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    _use_gateway(monkeypatch, _DownGateway())
    resp = client.post("/v1/admin/payments/sessions/cs_any/reconcile", headers=_admin())
    assert resp.status_code == 502
