from __future__ import annotations

import json
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from packages.shared.schemas.order_v1 import FulfillmentTypeV1
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"

DEFAULT_DELIVERY_COUNTRY = "Dominican Republic"


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentEvent(BaseModel):
    """Envelope of a payment processor webhook event."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def object(self) -> dict[str, Any]:
        obj = self.data.get("object")
        return obj if isinstance(obj, dict) else {}


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    payment_status: str = ""
    payment_intent: str | dict[str, Any] | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def payment_intent_id(self) -> str | None:
        if isinstance(self.payment_intent, dict):
            return self.payment_intent.get("id")
        return self.payment_intent or None


class LineItemMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: str = Field(..., alias="productId", min_length=1)
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    notes: str = ""

    @field_validator("notes", mode="before")
    @classmethod
    def _none_notes(cls, value: Any) -> Any:
        return "" if value is None else value


class CheckoutMetadata(BaseModel):
    """Order contents carried in the checkout session's metadata.

    Checkout writes every value as a string. This is the only source of order data at
    creation time, so anything that does not validate here never becomes an order.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    order_code: str = Field(..., alias="orderId", min_length=1, max_length=32)
    customer_id: str = Field(..., alias="customerId", min_length=1)
    vendor_id: str = Field(..., alias="vendorId", min_length=1)
    vendor_name: str = Field("", alias="vendorName")

    items: list[LineItemMetadata] = Field(..., alias="itemsJson", min_length=1)
    fulfillment_type: FulfillmentTypeV1 = Field(FulfillmentTypeV1.DELIVERY, alias="fulfillmentType")

    subtotal: Decimal = Field(Decimal("0"), ge=0)
    delivery_fee: Decimal = Field(Decimal("0"), alias="deliveryFee", ge=0)
    service_fee: Decimal = Field(Decimal("0"), alias="serviceFee", ge=0)
    tax: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(..., ge=0)

    tracking_pin: str | None = Field(None, alias="trackingPin", pattern=r"^\d{6}$")

    customer_name: str = Field("", alias="customerName")
    customer_email: str = Field("", alias="customerEmail")
    customer_phone: str = Field("", alias="customerPhone")

    delivery_street: str = Field("", alias="deliveryStreet")
    delivery_city: str = Field("", alias="deliveryCity")
    delivery_state: str = Field("", alias="deliveryState")
    delivery_postal_code: str = Field("", alias="deliveryPostalCode")
    delivery_country: str = Field(DEFAULT_DELIVERY_COUNTRY, alias="deliveryCountry")
    delivery_instructions: str = Field("", alias="deliveryInstructions")

    notes: str | None = None

    @field_validator("order_code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        return value.upper()

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError as e:
                raise ValueError(f"itemsJson is not valid JSON: {e.msg}") from e
        return value

    @field_validator("tracking_pin", "notes", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _delivery_needs_address(self) -> CheckoutMetadata:
        if self.fulfillment_type is FulfillmentTypeV1.DELIVERY:
            if not self.delivery_street or not self.delivery_city:
                raise ValueError("delivery orders require deliveryStreet and deliveryCity")
        return self

    def delivery_address(self) -> dict[str, str] | None:
        if self.fulfillment_type is not FulfillmentTypeV1.DELIVERY:
            return None
        return {
            "street": self.delivery_street,
            "city": self.delivery_city,
            "state": self.delivery_state,
            "postal_code": self.delivery_postal_code,
            "country": self.delivery_country or DEFAULT_DELIVERY_COUNTRY,
            "instructions": self.delivery_instructions,
        }

    def customer_info(self) -> dict[str, str]:
        return {
            "name": self.customer_name,
            "email": self.customer_email,
            "phone": self.customer_phone,
        }

    def line_items(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for item in self.items:
            unit_cents = to_cents(item.price)
            out.append(
                {
                    "product_id": item.product_id,
                    "name": item.name,
                    "unit_price_cents": unit_cents,
                    "quantity": item.quantity,
                    "line_total_cents": unit_cents * item.quantity,
                    "notes": item.notes,
                }
            )
        return out
