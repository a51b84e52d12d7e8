from __future__ import annotations

import json
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from packages.shared.schemas.order_v1 import RoleV1
from services.api.app.services.identity import issue_token
from services.api.app.services.webhook_signature import sign_payload

SECRET = "whsec_test"


@pytest.fixture()
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    db_path = tmp_path / "orderline_orders.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_path}")
    monkeypatch.setenv("ORDERLINE_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("ORDERLINE_JWT_SECRET", "test-secret")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", SECRET)

    from services.api.app.main import app

    with TestClient(app) as c:
        yield c


def _auth(uid: str, role: RoleV1) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(uid, role)}"}


ADMIN = ("admin-1", RoleV1.ADMIN)
VENDOR = ("vendor-1", RoleV1.VENDOR)
CUSTOMER = ("cust-1", RoleV1.CUSTOMER)
DRIVER = ("drv-1", RoleV1.DRIVER)


def _place_order(
    client: TestClient, fulfillment: str = "delivery", vendor_id: str = "vendor-1"
) -> str:
    metadata = {
        "orderId": f"ORD-{uuid4().hex[:6].upper()}",
        "customerId": "cust-1",
        "vendorId": vendor_id,
        "vendorName": "Colmado La Esquina",
        "itemsJson": json.dumps(
            [{"productId": "p-1", "name": "Cafe", "price": "4.50", "quantity": 1}]
        ),
        "fulfillmentType": fulfillment,
        "subtotal": "4.50",
        "total": "4.50",
        "deliveryStreet": "Calle El Conde 101",
        "deliveryCity": "Santo Domingo",
    }
    event = {
        "id": f"evt_{uuid4().hex}",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": f"cs_test_{uuid4().hex}",
                "payment_status": "paid",
                "metadata": metadata,
            }
        },
    }
    body = json.dumps(event).encode("utf-8")
    resp = client.post(
        "/webhooks/payment", content=body, headers={"Stripe-Signature": sign_payload(body, SECRET)}
    )
    assert resp.status_code == 200
    return resp.json()["order_id"]


def _transition(client: TestClient, order_id: str, status: str, who: tuple[str, RoleV1], **extra):
    return client.post(
        "/v1/orders/transition",
        json={"order_id": order_id, "status": status, **extra},
        headers=_auth(*who),
    )


def test_transition_requires_bearer_token(client: TestClient) -> None:
    order_id = _place_order(client)
    resp = client.post("/v1/orders/transition", json={"order_id": order_id, "status": "confirmed"})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_transition_rejects_garbage_token(client: TestClient) -> None:
    order_id = _place_order(client)
    resp = client.post(
        "/v1/orders/transition",
        json={"order_id": order_id, "status": "confirmed"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert resp.status_code == 401


def test_vendor_confirms_own_order(client: TestClient) -> None:
    order_id = _place_order(client)
    resp = _transition(client, order_id, "confirmed", VENDOR)
    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "order_id": order_id,
        "status": "confirmed",
        "changed": True,
    }

    again = _transition(client, order_id, "confirmed", VENDOR)
    assert again.status_code == 200
    assert again.json()["changed"] is False


def test_customer_is_forbidden(client: TestClient) -> None:
    order_id = _place_order(client)
    assert _transition(client, order_id, "cancelled", CUSTOMER).status_code == 403


def test_other_vendor_is_forbidden(client: TestClient) -> None:
    order_id = _place_order(client, vendor_id="vendor-2")
    assert _transition(client, order_id, "confirmed", VENDOR).status_code == 403


def test_unknown_order_is_404(client: TestClient) -> None:
    assert _transition(client, "missing", "confirmed", ADMIN).status_code == 404


@pytest.mark.parametrize("status", ["delivered", "preparing", "shipped"])
def test_disallowed_transition_is_409(client: TestClient, status: str) -> None:
    order_id = _place_order(client)
    resp = _transition(client, order_id, status, ADMIN)
    assert resp.status_code == 409


def test_customer_with_unknown_status_is_forbidden(client: TestClient) -> None:
    order_id = _place_order(client)
    assert _transition(client, order_id, "shipped", CUSTOMER).status_code == 403


def test_driver_delivery_flow(client: TestClient) -> None:
    order_id = _place_order(client)
    for status in ("confirmed", "preparing", "ready"):
        assert _transition(client, order_id, status, VENDOR).status_code == 200

    assert _transition(client, order_id, "out_for_delivery", DRIVER).status_code == 200
    assert _transition(client, order_id, "delivered", DRIVER).status_code == 200

    detail = client.get(f"/v1/orders/{order_id}", headers=_auth(*DRIVER))
    assert detail.status_code == 200
    body = detail.json()
    assert body["status"] == "delivered"
    assert body["driver_id"] == "drv-1"
    assert body["out_for_delivery_at"] is not None
    assert body["delivered_at"] is not None


def test_order_detail_visibility(client: TestClient) -> None:
    order_id = _place_order(client)

    for who in (ADMIN, VENDOR, CUSTOMER):
        resp = client.get(f"/v1/orders/{order_id}", headers=_auth(*who))
        assert resp.status_code == 200
        assert resp.json()["id"] == order_id

    stranger = _auth("cust-2", RoleV1.CUSTOMER)
    assert client.get(f"/v1/orders/{order_id}", headers=stranger).status_code == 403
    assert client.get(f"/v1/orders/{order_id}", headers=_auth(*DRIVER)).status_code == 403
    assert client.get("/v1/orders/missing", headers=_auth(*ADMIN)).status_code == 404


def test_vendor_listing_filters_by_status(client: TestClient) -> None:
    first = _place_order(client)
    second = _place_order(client)
    _place_order(client, vendor_id="vendor-2")
    _transition(client, first, "confirmed", VENDOR)

    resp = client.get("/v1/vendors/vendor-1/orders", headers=_auth(*VENDOR))
    assert resp.status_code == 200
    assert {row["id"] for row in resp.json()} == {first, second}

    pending = client.get(
        "/v1/vendors/vendor-1/orders", params={"status": "pending"}, headers=_auth(*VENDOR)
    )
    assert [row["id"] for row in pending.json()] == [second]
    assert pending.json()[0]["item_count"] == 1

    assert client.get("/v1/vendors/vendor-2/orders", headers=_auth(*VENDOR)).status_code == 403
    assert client.get("/v1/vendors/vendor-2/orders", headers=_auth(*ADMIN)).status_code == 200


def test_customer_listing_is_own_only(client: TestClient) -> None:
    order_id = _place_order(client)

    resp = client.get("/v1/customers/cust-1/orders", headers=_auth(*CUSTOMER))
    assert resp.status_code == 200
    assert [row["id"] for row in resp.json()] == [order_id]

    assert client.get("/v1/customers/cust-2/orders", headers=_auth(*CUSTOMER)).status_code == 403


def test_order_events_for_vendor_and_admin(client: TestClient) -> None:
    order_id = _place_order(client)
    _transition(client, order_id, "confirmed", VENDOR)

    resp = client.get(f"/v1/orders/{order_id}/events", headers=_auth(*VENDOR))
    assert resp.status_code == 200
    events = resp.json()
    assert [e["event_type"] for e in events] == ["ORDER_CREATED", "ORDER_STATUS_CHANGED"]
    assert events[1]["payload"] == {"from": "pending", "to": "confirmed"}
    assert events[1]["actor_uid"] == "vendor-1"

    assert client.get(f"/v1/orders/{order_id}/events", headers=_auth(*ADMIN)).status_code == 200
    assert client.get(f"/v1/orders/{order_id}/events", headers=_auth(*CUSTOMER)).status_code == 403


def test_notifications_are_scoped_to_caller(client: TestClient) -> None:
    order_id = _place_order(client)
    _transition(client, order_id, "confirmed", VENDOR)

    resp = client.get("/v1/notifications", headers=_auth(*CUSTOMER))
    assert resp.status_code == 200
    rows = resp.json()
    assert {n["user_id"] for n in rows} == {"cust-1"}
    assert len(rows) == 2

    vendor_rows = client.get("/v1/notifications", headers=_auth(*VENDOR)).json()
    assert [n["type"] for n in vendor_rows] == ["order_placed"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}
