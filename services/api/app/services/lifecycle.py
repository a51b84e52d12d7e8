"""Order lifecycle state machine.

Status changes only follow ``TRANSITIONS``. Each status owns one timestamp field that
is stamped the first time the order enters that status and never rewritten.
"""

from __future__ import annotations

import logging
from uuid import uuid4

from packages.shared.schemas.events import EventTypeV1
from packages.shared.schemas.order_v1 import FulfillmentTypeV1, OrderStatusV1, RoleV1
from services.api.app.db.models import Notification, Order, OrderEvent, utcnow
from services.api.app.services.order_base import (
    Actor,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    TransitionResult,
)
from services.api.app.services.order_store import OrderStore

logger = logging.getLogger(__name__)

S = OrderStatusV1

TRANSITIONS: dict[OrderStatusV1, frozenset[OrderStatusV1]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.PREPARING, S.CANCELLED}),
    S.PREPARING: frozenset({S.READY, S.CANCELLED}),
    S.READY: frozenset({S.OUT_FOR_DELIVERY, S.PICKED_UP, S.CANCELLED}),
    S.OUT_FOR_DELIVERY: frozenset({S.DELIVERED}),
    S.PICKED_UP: frozenset({S.DELIVERED}),
    S.DELIVERED: frozenset(),
    S.CANCELLED: frozenset(),
}

TIMESTAMP_FIELDS: dict[OrderStatusV1, str] = {
    S.CONFIRMED: "confirmed_at",
    S.PREPARING: "preparing_at",
    S.READY: "ready_at",
    S.OUT_FOR_DELIVERY: "out_for_delivery_at",
    S.PICKED_UP: "picked_up_at",
    S.DELIVERED: "delivered_at",
    S.CANCELLED: "cancelled_at",
}

# Targets a courier may request; everything else is vendor/admin work.
DRIVER_STATUSES = frozenset({S.OUT_FOR_DELIVERY, S.DELIVERED})

# Path-specific targets.
FULFILLMENT_ONLY: dict[OrderStatusV1, FulfillmentTypeV1] = {
    S.OUT_FOR_DELIVERY: FulfillmentTypeV1.DELIVERY,
    S.PICKED_UP: FulfillmentTypeV1.PICKUP,
}

_STATUS_ALIASES = {"ready_for_pickup": S.READY.value}

_CUSTOMER_MESSAGES: dict[OrderStatusV1, tuple[str, str, str]] = {
    S.CONFIRMED: (
        "order_confirmed",
        "Order Confirmed",
        "Your order from {vendor} has been confirmed and will be prepared shortly",
    ),
    S.PREPARING: (
        "order_preparing",
        "Order Being Prepared",
        "{vendor} is now preparing your order",
    ),
    S.READY: ("order_ready", "Order Ready", "Your order from {vendor} is ready"),
    S.OUT_FOR_DELIVERY: (
        "order_delivering",
        "Out for Delivery",
        "Your order from {vendor} is on its way",
    ),
    S.PICKED_UP: (
        "order_delivered",
        "Order Picked Up",
        "You've picked up your order from {vendor}",
    ),
    S.DELIVERED: (
        "order_delivered",
        "Order Delivered",
        "Your order from {vendor} has been delivered",
    ),
    S.CANCELLED: (
        "order_cancelled",
        "Order Cancelled",
        "Your order from {vendor} has been cancelled",
    ),
}


def parse_status(value: str | OrderStatusV1) -> OrderStatusV1:
    if isinstance(value, OrderStatusV1):
        return value
    raw = str(value or "").strip().lower()
    raw = _STATUS_ALIASES.get(raw, raw)
    return OrderStatusV1(raw)


def is_allowed(current: OrderStatusV1, requested: OrderStatusV1) -> bool:
    return requested in TRANSITIONS[current]


def authorize(order: Order, actor: Actor, requested: OrderStatusV1 | None) -> None:
    """Raise PermissionDenied unless ``actor`` may move ``order`` to ``requested``.

    ``requested`` is None for a status that did not parse; only admins and the owning
    vendor get past this point with one.
    """

    if actor.role is RoleV1.ADMIN:
        return

    if actor.role is RoleV1.VENDOR:
        if order.vendor_id != actor.uid:
            raise PermissionDenied("Vendors can only update their own orders")
        return

    if actor.role is RoleV1.DRIVER:
        if order.fulfillment_type != FulfillmentTypeV1.DELIVERY.value:
            raise PermissionDenied("Drivers can only update delivery orders")
        if requested not in DRIVER_STATUSES:
            raise PermissionDenied("Drivers cannot set this status")
        if order.driver_id == actor.uid:
            return
        claiming = order.driver_id is None and requested is S.OUT_FOR_DELIVERY
        if not claiming:
            raise PermissionDenied("Order is not assigned to this driver")
        return

    raise PermissionDenied("Customers cannot change order status")


def authorize_read(order: Order, actor: Actor) -> None:
    if actor.role is RoleV1.ADMIN:
        return
    if actor.role is RoleV1.VENDOR and order.vendor_id == actor.uid:
        return
    if actor.role is RoleV1.CUSTOMER and order.customer_id == actor.uid:
        return
    if actor.role is RoleV1.DRIVER and order.driver_id == actor.uid:
        return
    raise PermissionDenied("Forbidden")


class LifecycleEngine:
    def __init__(self, store: OrderStore) -> None:
        self._store = store

    def transition(
        self,
        order_id: str,
        requested_status: str | OrderStatusV1,
        actor: Actor,
        driver_id: str | None = None,
    ) -> TransitionResult:
        order = self._store.get(order_id)
        if order is None:
            raise NotFound("Order")

        current = OrderStatusV1(order.status)
        try:
            requested: OrderStatusV1 | None = parse_status(requested_status)
        except ValueError:
            requested = None

        authorize(order, actor, requested)

        if requested is None:
            raise InvalidTransition(order.status, str(requested_status), "unknown status")

        if driver_id is not None:
            driver_id = driver_id.strip() or None
        if driver_id is not None:
            if requested is not S.OUT_FOR_DELIVERY:
                raise InvalidTransition(
                    current.value, requested.value, "a driver can only be assigned when dispatching"
                )
            if actor.role is RoleV1.DRIVER and driver_id != actor.uid:
                raise PermissionDenied("Drivers can only assign themselves")

        # An unassigned driver reaching this point is claiming the order.
        if actor.role is RoleV1.DRIVER and order.driver_id is None:
            driver_id = actor.uid

        reassign = driver_id is not None and driver_id != order.driver_id
        now = utcnow()

        if requested is current:
            if not reassign:
                # Retried request for a state the order is already in.
                return TransitionResult(order_id=order.id, status=current, changed=False)
            # Same status with a new courier: only the assignment changes.
            self._store.update(
                order,
                {"driver_id": driver_id, "updated_at": now},
                events=[_driver_event(order, actor, driver_id)],
            )
            logger.info(
                "Order %s reassigned to driver %s by %s %s",
                order.id,
                driver_id,
                actor.role.value,
                actor.uid,
            )
            return TransitionResult(order_id=order.id, status=current, changed=True)

        if not is_allowed(current, requested):
            raise InvalidTransition(current.value, requested.value)

        required_fulfillment = FULFILLMENT_ONLY.get(requested)
        if (
            required_fulfillment is not None
            and order.fulfillment_type != required_fulfillment.value
        ):
            raise InvalidTransition(
                current.value,
                requested.value,
                f"only {required_fulfillment.value} orders can take this step",
            )

        changes: dict[str, object] = {"status": requested.value, "updated_at": now}

        stamp_field = TIMESTAMP_FIELDS.get(requested)
        if stamp_field and getattr(order, stamp_field) is None:
            changes[stamp_field] = now

        events = [
            _event(
                order,
                actor,
                EventTypeV1.ORDER_STATUS_CHANGED,
                {"from": current.value, "to": requested.value},
            )
        ]
        if reassign:
            changes["driver_id"] = driver_id
            events.append(_driver_event(order, actor, driver_id))

        notifications = [_customer_notification(order, requested)]

        self._store.update(order, changes, events=events, notifications=notifications)

        logger.info(
            "Order %s moved %s -> %s by %s %s",
            order.id,
            current.value,
            requested.value,
            actor.role.value,
            actor.uid,
        )
        return TransitionResult(order_id=order.id, status=requested, changed=True)


def _driver_event(order: Order, actor: Actor, driver_id: str) -> OrderEvent:
    return _event(
        order,
        actor,
        EventTypeV1.DRIVER_ASSIGNED,
        {"driver_id": driver_id, "previous_driver_id": order.driver_id},
    )


def _event(order: Order, actor: Actor, event_type: EventTypeV1, payload: dict) -> OrderEvent:
    return OrderEvent(
        id=uuid4().hex,
        order_id=order.id,
        actor_uid=actor.uid,
        actor_role=actor.role.value,
        event_type=event_type.value,
        event_payload_json=payload,
        created_at=utcnow(),
    )


def _customer_notification(order: Order, status: OrderStatusV1) -> Notification:
    kind, title, message = _CUSTOMER_MESSAGES[status]
    return Notification(
        id=uuid4().hex,
        user_id=order.customer_id,
        order_id=order.id,
        type=kind,
        title=title,
        message=message.format(vendor=order.vendor_name or "the store"),
        priority="high" if status is S.CANCELLED else "normal",
        read=False,
        created_at=utcnow(),
    )
