from __future__ import annotations

from typing import Any

from packages.shared.schemas.order_v1 import FulfillmentTypeV1, OrderStatusV1
from pydantic import BaseModel, Field


class OrderTransitionRequest(BaseModel):
    order_id: str = Field(..., min_length=1)
    # Kept as a string so unknown statuses surface as InvalidTransition, not 422.
    status: str = Field(..., min_length=1)
    driver_id: str | None = None


class OrderTransitionResponse(BaseModel):
    success: bool = True
    order_id: str
    status: OrderStatusV1
    changed: bool


class OrderItemOut(BaseModel):
    product_id: str
    name: str
    unit_price_cents: int
    quantity: int
    line_total_cents: int
    notes: str = ""


class OrderOut(BaseModel):
    id: str
    order_code: str
    status: OrderStatusV1

    customer_id: str
    vendor_id: str
    vendor_name: str
    driver_id: str | None = None

    fulfillment_type: FulfillmentTypeV1
    items: list[OrderItemOut]
    delivery_address: dict[str, Any] | None = None
    customer_info: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None

    subtotal_cents: int
    delivery_fee_cents: int
    service_fee_cents: int
    tax_cents: int
    total_cents: int

    payment_status: str
    tracking_pin: str | None = None

    created_at: str | None = None
    updated_at: str | None = None
    confirmed_at: str | None = None
    preparing_at: str | None = None
    ready_at: str | None = None
    out_for_delivery_at: str | None = None
    picked_up_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None


class OrderListItem(BaseModel):
    id: str
    order_code: str
    status: OrderStatusV1
    fulfillment_type: FulfillmentTypeV1
    vendor_name: str
    total_cents: int
    item_count: int
    created_at: str | None = None
    updated_at: str | None = None


class CheckoutConfirmation(BaseModel):
    """What the post-payment success page renders for the buyer."""

    order_id: str
    order_code: str
    status: OrderStatusV1
    tracking_pin: str | None = None
    vendor_name: str
    fulfillment_type: FulfillmentTypeV1
    items: list[OrderItemOut]
    subtotal_cents: int
    delivery_fee_cents: int
    service_fee_cents: int
    tax_cents: int
    total_cents: int
