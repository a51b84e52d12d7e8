from __future__ import annotations

from datetime import datetime

from packages.shared.schemas.order_v1 import (
    FulfillmentTypeV1,
    OrderStatusV1,
    TrackingAddressV1,
    TrackingItemV1,
    TrackingViewV1,
)
from services.api.app.db.models import Order
from services.api.app.services.order_base import InvalidPin, NotFound
from services.api.app.services.order_store import OrderStore


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def find_order(store: OrderStore, reference: str) -> Order | None:
    """Resolve a customer-supplied reference: order code first, then internal id."""

    ref = (reference or "").strip()
    if not ref:
        return None
    order = store.find_by_code(ref.upper())
    if order is None:
        order = store.get(ref)
    return order


def track_order(store: OrderStore, order_code: str, pin: str | None = None) -> TrackingViewV1:
    order = find_order(store, order_code)
    if order is None:
        raise NotFound("Order")

    # PIN strengthens the lookup when supplied; it is not required.
    supplied = (pin or "").strip()
    if order.tracking_pin and supplied and supplied != order.tracking_pin:
        raise InvalidPin()

    vendor = store.get_vendor(order.vendor_id)
    return to_tracking_view(order, vendor_phone=vendor.phone if vendor else None)


def to_tracking_view(order: Order, *, vendor_phone: str | None = None) -> TrackingViewV1:
    address = None
    if order.fulfillment_type == FulfillmentTypeV1.DELIVERY.value and order.delivery_address_json:
        raw = order.delivery_address_json
        address = TrackingAddressV1(
            street=raw.get("street") or "",
            city=raw.get("city") or "",
            state=raw.get("state") or None,
            postal_code=raw.get("postal_code") or None,
            country=raw.get("country") or None,
        )

    return TrackingViewV1(
        id=order.id,
        order_code=order.order_code,
        status=OrderStatusV1(order.status),
        vendor_name=order.vendor_name,
        vendor_phone=vendor_phone,
        items=[
            TrackingItemV1(
                name=item.get("name") or "",
                quantity=int(item.get("quantity") or 0),
                unit_price_cents=int(item.get("unit_price_cents") or 0),
                notes=item.get("notes") or None,
            )
            for item in order.items_json or []
        ],
        subtotal_cents=order.subtotal_cents,
        delivery_fee_cents=order.delivery_fee_cents,
        service_fee_cents=order.service_fee_cents,
        tax_cents=order.tax_cents,
        total_cents=order.total_cents,
        fulfillment_type=FulfillmentTypeV1(order.fulfillment_type),
        delivery_address=address,
        created_at=_iso(order.created_at),
        confirmed_at=_iso(order.confirmed_at),
        preparing_at=_iso(order.preparing_at),
        ready_at=_iso(order.ready_at),
        out_for_delivery_at=_iso(order.out_for_delivery_at),
        picked_up_at=_iso(order.picked_up_at),
        delivered_at=_iso(order.delivered_at),
        cancelled_at=_iso(order.cancelled_at),
    )
