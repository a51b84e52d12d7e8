"""Order record store.

An order lives in three places: the canonical ``orders`` row, a mirror under the
vendor's namespace (``vendor_orders``) and a mirror under the customer's namespace
(``customer_orders``). Callers never write one of them alone: ``create`` and
``update`` are the only mutating entry points and each runs as one transaction.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Sequence
from typing import Any

from services.api.app.db.models import (
    ORDER_DOCUMENT_FIELDS,
    CustomerOrder,
    Notification,
    Order,
    OrderEvent,
    VendorOrder,
    VendorProfile,
    utcnow,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200


def _document(order: Order) -> dict[str, Any]:
    return {field: copy.deepcopy(getattr(order, field)) for field in ORDER_DOCUMENT_FIELDS}


def _vendor_mirror(order: Order) -> VendorOrder:
    return VendorOrder(
        vendor_id=order.vendor_id,
        id=order.id,
        customer_id=order.customer_id,
        **_document(order),
    )


def _customer_mirror(order: Order) -> CustomerOrder:
    return CustomerOrder(
        customer_id=order.customer_id,
        id=order.id,
        vendor_id=order.vendor_id,
        **_document(order),
    )


class OrderStore:
    def __init__(self, db: Session) -> None:
        self._db = db

    # Reads

    def get(self, order_id: str) -> Order | None:
        return self._db.get(Order, order_id)

    def find_by_code(self, order_code: str) -> Order | None:
        return self._db.query(Order).filter(Order.order_code == order_code).first()

    def find_by_session(self, session_id: str) -> Order | None:
        return self._db.query(Order).filter(Order.stripe_session_id == session_id).first()

    def get_vendor(self, vendor_id: str) -> VendorProfile | None:
        return self._db.get(VendorProfile, vendor_id)

    def mirrors(self, order: Order) -> tuple[VendorOrder | None, CustomerOrder | None]:
        vendor_row = self._db.get(VendorOrder, (order.vendor_id, order.id))
        customer_row = self._db.get(CustomerOrder, (order.customer_id, order.id))
        return vendor_row, customer_row

    def list_vendor_orders(
        self,
        vendor_id: str,
        *,
        status: str | None = None,
        limit: int = 50,
    ) -> list[VendorOrder]:
        query = self._db.query(VendorOrder).filter(VendorOrder.vendor_id == vendor_id)
        if status:
            query = query.filter(VendorOrder.status == status)
        return (
            query.order_by(VendorOrder.created_at.desc())
            .limit(max(1, min(limit, MAX_LIST_LIMIT)))
            .all()
        )

    def list_customer_orders(self, customer_id: str, *, limit: int = 50) -> list[CustomerOrder]:
        return (
            self._db.query(CustomerOrder)
            .filter(CustomerOrder.customer_id == customer_id)
            .order_by(CustomerOrder.created_at.desc())
            .limit(max(1, min(limit, MAX_LIST_LIMIT)))
            .all()
        )

    def list_events(self, order_id: str) -> list[OrderEvent]:
        return (
            self._db.query(OrderEvent)
            .filter(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.created_at.asc())
            .all()
        )

    def list_notifications(self, user_id: str, *, limit: int = 50) -> list[Notification]:
        return (
            self._db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(max(1, min(limit, MAX_LIST_LIMIT)))
            .all()
        )

    # Writes

    def create(
        self,
        order: Order,
        *,
        events: Sequence[OrderEvent] = (),
        notifications: Sequence[Notification] = (),
    ) -> Order:
        """Insert the canonical order, both mirrors and side records atomically."""

        now = utcnow()
        if order.created_at is None:
            order.created_at = now
        if order.updated_at is None:
            order.updated_at = now

        self._db.add(order)
        self._db.add(_vendor_mirror(order))
        self._db.add(_customer_mirror(order))
        self._db.add_all(list(events))
        self._db.add_all(list(notifications))
        self._commit()
        return order

    def update(
        self,
        order: Order,
        changes: dict[str, Any],
        *,
        events: Sequence[OrderEvent] = (),
        notifications: Sequence[Notification] = (),
    ) -> Order:
        """Apply the same field changes to the canonical order and both mirrors."""

        unknown = set(changes) - set(ORDER_DOCUMENT_FIELDS)
        if unknown:
            raise ValueError(f"Not order document fields: {sorted(unknown)}")

        vendor_row, customer_row = self.mirrors(order)

        for field, value in changes.items():
            setattr(order, field, value)

        # A missing mirror is rebuilt from the canonical row so the views converge.
        if vendor_row is None:
            logger.warning("Vendor mirror missing for order %s; rebuilding", order.id)
            self._db.add(_vendor_mirror(order))
        else:
            for field, value in changes.items():
                setattr(vendor_row, field, copy.deepcopy(value))

        if customer_row is None:
            logger.warning("Customer mirror missing for order %s; rebuilding", order.id)
            self._db.add(_customer_mirror(order))
        else:
            for field, value in changes.items():
                setattr(customer_row, field, copy.deepcopy(value))

        self._db.add_all(list(events))
        self._db.add_all(list(notifications))
        self._commit()
        return order

    def _commit(self) -> None:
        try:
            self._db.commit()
        except SQLAlchemyError:
            self._db.rollback()
            raise
