"""Shared order schema (v1).

These models are shared between the backend and the storefront, vendor and driver
clients. They should remain stable and backwards compatible once shipped.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class OrderStatusV1(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FulfillmentTypeV1(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class RoleV1(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    DRIVER = "driver"
    ADMIN = "admin"


class TrackingItemV1(BaseModel):
    name: str
    quantity: int
    unit_price_cents: int
    notes: str | None = None


class TrackingAddressV1(BaseModel):
    street: str
    city: str
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class TrackingViewV1(BaseModel):
    """Public order tracking projection.

    Rendered without login, so it must never carry party ids, customer contact
    details, payment references or the tracking PIN.
    """

    id: str
    order_code: str
    status: OrderStatusV1

    vendor_name: str
    vendor_phone: str | None = None

    items: list[TrackingItemV1] = Field(default_factory=list)
    subtotal_cents: int
    delivery_fee_cents: int
    service_fee_cents: int
    tax_cents: int
    total_cents: int

    fulfillment_type: FulfillmentTypeV1
    delivery_address: TrackingAddressV1 | None = None

    # Progress trail, ISO-8601 or null.
    created_at: str | None = None
    confirmed_at: str | None = None
    preparing_at: str | None = None
    ready_at: str | None = None
    out_for_delivery_at: str | None = None
    picked_up_at: str | None = None
    delivered_at: str | None = None
    cancelled_at: str | None = None
