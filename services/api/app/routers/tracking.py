from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from packages.shared.schemas.order_v1 import OrderStatusV1, TrackingViewV1
from services.api.app.db.deps import get_order_store
from services.api.app.models.order import CheckoutConfirmation, OrderItemOut
from services.api.app.routers.errors import raise_order_http_error
from services.api.app.services.order_base import NotFound
from services.api.app.services.order_store import OrderStore
from services.api.app.services.tracking import find_order, track_order

router = APIRouter()


@router.get("/track", response_model=TrackingViewV1)
@router.get("/v1/track", response_model=TrackingViewV1)
def track(
    order_id: str | None = Query(default=None, alias="orderId"),
    pin: str | None = Query(default=None),
    store: OrderStore = Depends(get_order_store),
) -> TrackingViewV1:
    if not order_id or not order_id.strip():
        raise HTTPException(status_code=400, detail="Order ID is required")

    try:
        return track_order(store, order_id, pin)
    except Exception as e:
        raise_order_http_error(e)


@router.get("/v1/checkout/confirmation", response_model=CheckoutConfirmation)
def checkout_confirmation(
    session_id: str | None = None,
    order_id: str | None = None,
    store: OrderStore = Depends(get_order_store),
) -> CheckoutConfirmation:
    if not (session_id or "").strip() and not (order_id or "").strip():
        raise HTTPException(status_code=400, detail="Missing order reference")

    try:
        order = store.find_by_session(session_id.strip()) if session_id else None
        # The PIN is only handed to the holder of the checkout session id.
        by_session = order is not None
        if order is None and order_id:
            order = find_order(store, order_id)
        if order is None:
            raise NotFound("Order")
    except Exception as e:
        raise_order_http_error(e)

    return CheckoutConfirmation(
        order_id=order.id,
        order_code=order.order_code,
        status=OrderStatusV1(order.status),
        tracking_pin=order.tracking_pin if by_session else None,
        vendor_name=order.vendor_name,
        fulfillment_type=order.fulfillment_type,
        items=[OrderItemOut.model_validate(it) for it in order.items_json or []],
        subtotal_cents=order.subtotal_cents,
        delivery_fee_cents=order.delivery_fee_cents,
        service_fee_cents=order.service_fee_cents,
        tax_cents=order.tax_cents,
        total_cents=order.total_cents,
    )
