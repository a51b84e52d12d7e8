"""Payment confirmation listener: the only place orders are created."""

from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from enum import Enum
from uuid import uuid4

from packages.shared.schemas.events import EventTypeV1
from packages.shared.schemas.order_v1 import OrderStatusV1
from pydantic import ValidationError
from services.api.app.db.models import Notification, Order, OrderEvent, utcnow
from services.api.app.models.payment import (
    CHECKOUT_SESSION_COMPLETED,
    CheckoutMetadata,
    CheckoutSession,
    PaymentEvent,
    to_cents,
)
from services.api.app.services.order_base import MaterializationFailure, SignatureVerificationFailed
from services.api.app.services.order_store import OrderStore
from services.api.app.services.webhook_signature import (
    tolerance_seconds,
    verify_signature,
    webhook_secret,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class PaymentOutcome(str, Enum):
    CREATED = "created"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


@dataclass(frozen=True, slots=True)
class PaymentResult:
    outcome: PaymentOutcome
    event_type: str
    session_id: str | None = None
    order_id: str | None = None


def generate_tracking_pin() -> str:
    return str(100000 + secrets.randbelow(900000))


class PaymentListener:
    def __init__(self, store: OrderStore) -> None:
        self._store = store

    def on_payment_completed(self, raw_body: bytes, signature: str | None) -> PaymentResult:
        """Verify, filter and materialize one webhook delivery."""

        try:
            verify_signature(raw_body, signature, webhook_secret(), tolerance=tolerance_seconds())
        except SignatureVerificationFailed as e:
            logger.warning("Rejected payment webhook: %s", e)
            raise

        try:
            event = PaymentEvent.model_validate(json.loads(raw_body.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Signed webhook body is not a payment event: %s", e)
            raise MaterializationFailure("unknown", "event body is not a payment event") from e

        if event.type != CHECKOUT_SESSION_COMPLETED:
            logger.info("Ignoring payment event %s of type %s", event.id, event.type)
            return PaymentResult(outcome=PaymentOutcome.IGNORED, event_type=event.type)

        try:
            session = CheckoutSession.model_validate(event.object)
        except ValidationError as e:
            logger.error("Event %s carries no usable checkout session: %s", event.id, e)
            raise MaterializationFailure("unknown", "checkout session is malformed") from e

        return self.handle_session(session, event_type=event.type)

    def handle_session(
        self, session: CheckoutSession, *, event_type: str = CHECKOUT_SESSION_COMPLETED
    ) -> PaymentResult:
        if session.payment_status != "paid":
            logger.info(
                "Session %s not paid (status=%r); ignoring", session.id, session.payment_status
            )
            return PaymentResult(
                outcome=PaymentOutcome.IGNORED, event_type=event_type, session_id=session.id
            )

        existing = self._store.find_by_session(session.id)
        if existing is not None:
            logger.info("Order %s already exists for session %s", existing.id, session.id)
            return PaymentResult(
                outcome=PaymentOutcome.DUPLICATE,
                event_type=event_type,
                session_id=session.id,
                order_id=existing.id,
            )

        try:
            metadata = CheckoutMetadata.model_validate(session.metadata)
        except ValidationError as e:
            logger.error("Invalid order metadata on session %s: %s", session.id, e)
            raise MaterializationFailure(session.id, "order metadata failed validation") from e

        order, events, notifications = build_order(session, metadata)

        try:
            self._store.create(order, events=events, notifications=notifications)
        except IntegrityError as e:
            # Lost a race against a concurrent delivery of the same session.
            winner = self._store.find_by_session(session.id)
            if winner is not None:
                logger.info(
                    "Concurrent delivery created order %s for session %s", winner.id, session.id
                )
                return PaymentResult(
                    outcome=PaymentOutcome.DUPLICATE,
                    event_type=event_type,
                    session_id=session.id,
                    order_id=winner.id,
                )
            logger.exception("Order write rejected for session %s", session.id)
            raise MaterializationFailure(session.id, "order write violated a constraint") from e
        except SQLAlchemyError as e:
            logger.exception("Order write failed for session %s", session.id)
            raise MaterializationFailure(session.id, "order write failed") from e

        logger.info(
            "Created order %s (%s, %s) for session %s",
            order.id,
            order.order_code,
            order.fulfillment_type,
            session.id,
        )
        return PaymentResult(
            outcome=PaymentOutcome.CREATED,
            event_type=event_type,
            session_id=session.id,
            order_id=order.id,
        )


def build_order(
    session: CheckoutSession, metadata: CheckoutMetadata
) -> tuple[Order, list[OrderEvent], list[Notification]]:
    now = utcnow()
    order_id = uuid4().hex

    order = Order(
        id=order_id,
        order_code=metadata.order_code,
        customer_id=metadata.customer_id,
        vendor_id=metadata.vendor_id,
        vendor_name=metadata.vendor_name,
        driver_id=None,
        status=OrderStatusV1.PENDING.value,
        fulfillment_type=metadata.fulfillment_type.value,
        items_json=metadata.line_items(),
        delivery_address_json=metadata.delivery_address(),
        customer_info_json=metadata.customer_info(),
        notes=metadata.notes,
        subtotal_cents=to_cents(metadata.subtotal),
        delivery_fee_cents=to_cents(metadata.delivery_fee),
        service_fee_cents=to_cents(metadata.service_fee),
        tax_cents=to_cents(metadata.tax),
        total_cents=to_cents(metadata.total),
        tracking_pin=metadata.tracking_pin or generate_tracking_pin(),
        stripe_session_id=session.id,
        stripe_payment_intent_id=session.payment_intent_id,
        payment_status="paid",
        payment_method="stripe",
        created_at=now,
        updated_at=now,
    )

    events = [
        OrderEvent(
            id=uuid4().hex,
            order_id=order_id,
            actor_uid=None,
            actor_role="system",
            event_type=EventTypeV1.ORDER_CREATED.value,
            event_payload_json={
                "session_id": session.id,
                "order_code": order.order_code,
                "total_cents": order.total_cents,
            },
            created_at=now,
        )
    ]

    item_count = len(order.items_json)
    total = f"${order.total_cents / 100:.2f}"
    notifications = [
        Notification(
            id=uuid4().hex,
            user_id=order.vendor_id,
            order_id=order_id,
            type="order_placed",
            title="New Order Received",
            message=(
                f"Order #{order.order_code} - {item_count} item{'s' if item_count != 1 else ''}"
                f" - {total}"
            ),
            priority="high",
            read=False,
            created_at=now,
        ),
        Notification(
            id=uuid4().hex,
            user_id=order.customer_id,
            order_id=order_id,
            type="order_confirmed",
            title="Order Placed",
            message=(
                f"Your order #{order.order_code} from {order.vendor_name or 'the store'}"
                " has been placed"
            ),
            priority="normal",
            read=False,
            created_at=now,
        ),
    ]
    return order, events, notifications
