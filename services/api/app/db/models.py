from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class OrderFields:
    """Document body shared by the canonical order and its per-party mirrors.

    Key columns (id, vendor_id, customer_id) are declared on each table because the
    mirrors are keyed under their owner's namespace.
    """

    order_code: Mapped[str] = mapped_column(String(32), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    driver_id: Mapped[str | None] = mapped_column(String, nullable=True)

    status: Mapped[str] = mapped_column(String(32), nullable=False)
    fulfillment_type: Mapped[str] = mapped_column(String(16), nullable=False)

    items_json: Mapped[list] = mapped_column(JSON, nullable=False)
    delivery_address_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    customer_info_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    service_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    tracking_pin: Mapped[str] = mapped_column(String(6), nullable=False)

    stripe_session_id: Mapped[str | None] = mapped_column(String, nullable=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String, nullable=True)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="paid")
    payment_method: Mapped[str] = mapped_column(String(16), nullable=False, default="stripe")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    preparing_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ready_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    out_for_delivery_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# Every column the mirrors copy from the canonical order.
ORDER_DOCUMENT_FIELDS: tuple[str, ...] = (
    "order_code",
    "vendor_name",
    "driver_id",
    "status",
    "fulfillment_type",
    "items_json",
    "delivery_address_json",
    "customer_info_json",
    "notes",
    "subtotal_cents",
    "delivery_fee_cents",
    "service_fee_cents",
    "tax_cents",
    "total_cents",
    "tracking_pin",
    "stripe_session_id",
    "stripe_payment_intent_id",
    "payment_status",
    "payment_method",
    "created_at",
    "updated_at",
    "confirmed_at",
    "preparing_at",
    "ready_at",
    "out_for_delivery_at",
    "picked_up_at",
    "delivered_at",
    "cancelled_at",
)


class Order(OrderFields, Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("uq_orders_order_code", "order_code", unique=True),
        Index("uq_orders_stripe_session_id", "stripe_session_id", unique=True),
        Index("ix_orders_stripe_payment_intent_id", "stripe_payment_intent_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    vendor_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    customer_id: Mapped[str] = mapped_column(String, nullable=False, index=True)


class VendorOrder(OrderFields, Base):
    __tablename__ = "vendor_orders"

    vendor_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    customer_id: Mapped[str] = mapped_column(String, nullable=False)


class CustomerOrder(OrderFields, Base):
    __tablename__ = "customer_orders"

    customer_id: Mapped[str] = mapped_column(String, primary_key=True)
    id: Mapped[str] = mapped_column(String, primary_key=True)
    vendor_id: Mapped[str] = mapped_column(String, nullable=False)


class VendorProfile(Base):
    __tablename__ = "vendor_profiles"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class OrderEvent(Base):
    __tablename__ = "order_events"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    order_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    actor_uid: Mapped[str | None] = mapped_column(String, nullable=True)
    actor_role: Mapped[str] = mapped_column(String, nullable=False)

    event_type: Mapped[str] = mapped_column(String, nullable=False)
    event_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    order_id: Mapped[str] = mapped_column(String, nullable=False)

    type: Mapped[str] = mapped_column(String, nullable=False)
    title: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(String, nullable=False)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="normal")
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
