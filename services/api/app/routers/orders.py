from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from packages.shared.schemas.order_v1 import OrderStatusV1, RoleV1
from services.api.app.db.deps import get_actor, get_order_store
from services.api.app.db.models import CustomerOrder, Order, VendorOrder
from services.api.app.models.order import (
    OrderItemOut,
    OrderListItem,
    OrderOut,
    OrderTransitionRequest,
    OrderTransitionResponse,
)
from services.api.app.routers.errors import raise_order_http_error
from services.api.app.services.lifecycle import LifecycleEngine, authorize_read
from services.api.app.services.order_base import Actor, NotFound, PermissionDenied
from services.api.app.services.order_store import OrderStore

router = APIRouter()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@router.post("/v1/orders/transition", response_model=OrderTransitionResponse)
def transition_order(
    payload: OrderTransitionRequest,
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> OrderTransitionResponse:
    try:
        result = LifecycleEngine(store).transition(
            payload.order_id,
            payload.status,
            actor,
            driver_id=payload.driver_id,
        )
    except Exception as e:
        raise_order_http_error(e)

    return OrderTransitionResponse(
        success=True,
        order_id=result.order_id,
        status=result.status,
        changed=result.changed,
    )


@router.get("/v1/orders/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> OrderOut:
    try:
        order = store.get(order_id)
        if order is None:
            raise NotFound("Order")
        authorize_read(order, actor)
    except Exception as e:
        raise_order_http_error(e)

    return _order_out(order)


@router.get("/v1/vendors/{vendor_id}/orders", response_model=list[OrderListItem])
def list_vendor_orders(
    vendor_id: str,
    status: OrderStatusV1 | None = None,
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> list[OrderListItem]:
    try:
        if not (actor.is_admin or (actor.role is RoleV1.VENDOR and actor.uid == vendor_id)):
            raise PermissionDenied("Forbidden")
        rows = store.list_vendor_orders(
            vendor_id, status=status.value if status else None, limit=limit
        )
    except Exception as e:
        raise_order_http_error(e)

    return [_list_item(row) for row in rows]


@router.get("/v1/customers/{customer_id}/orders", response_model=list[OrderListItem])
def list_customer_orders(
    customer_id: str,
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> list[OrderListItem]:
    try:
        if not (actor.is_admin or (actor.role is RoleV1.CUSTOMER and actor.uid == customer_id)):
            raise PermissionDenied("Forbidden")
        rows = store.list_customer_orders(customer_id, limit=limit)
    except Exception as e:
        raise_order_http_error(e)

    return [_list_item(row) for row in rows]


def _items_out(items: list[dict] | None) -> list[OrderItemOut]:
    return [OrderItemOut.model_validate(it) for it in items or []]


def _order_out(order: Order) -> OrderOut:
    return OrderOut(
        id=order.id,
        order_code=order.order_code,
        status=OrderStatusV1(order.status),
        customer_id=order.customer_id,
        vendor_id=order.vendor_id,
        vendor_name=order.vendor_name,
        driver_id=order.driver_id,
        fulfillment_type=order.fulfillment_type,
        items=_items_out(order.items_json),
        delivery_address=order.delivery_address_json,
        customer_info=order.customer_info_json or {},
        notes=order.notes,
        subtotal_cents=order.subtotal_cents,
        delivery_fee_cents=order.delivery_fee_cents,
        service_fee_cents=order.service_fee_cents,
        tax_cents=order.tax_cents,
        total_cents=order.total_cents,
        payment_status=order.payment_status,
        tracking_pin=order.tracking_pin,
        created_at=_iso(order.created_at),
        updated_at=_iso(order.updated_at),
        confirmed_at=_iso(order.confirmed_at),
        preparing_at=_iso(order.preparing_at),
        ready_at=_iso(order.ready_at),
        out_for_delivery_at=_iso(order.out_for_delivery_at),
        picked_up_at=_iso(order.picked_up_at),
        delivered_at=_iso(order.delivered_at),
        cancelled_at=_iso(order.cancelled_at),
    )


def _list_item(row: VendorOrder | CustomerOrder) -> OrderListItem:
    return OrderListItem(
        id=row.id,
        order_code=row.order_code,
        status=OrderStatusV1(row.status),
        fulfillment_type=row.fulfillment_type,
        vendor_name=row.vendor_name,
        total_cents=row.total_cents,
        item_count=len(row.items_json or []),
        created_at=_iso(row.created_at),
        updated_at=_iso(row.updated_at),
    )
