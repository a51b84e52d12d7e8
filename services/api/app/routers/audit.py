from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from packages.shared.schemas.events import EventTypeV1, EventV1
from packages.shared.schemas.order_v1 import RoleV1
from services.api.app.db.deps import get_actor, get_order_store
from services.api.app.models.audit import NotificationOut
from services.api.app.routers.errors import raise_order_http_error
from services.api.app.services.order_base import Actor, NotFound, PermissionDenied
from services.api.app.services.order_store import OrderStore

router = APIRouter()


@router.get("/v1/orders/{order_id}/events", response_model=list[EventV1])
def list_order_events(
    order_id: str,
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> list[EventV1]:
    try:
        order = store.get(order_id)
        if order is None:
            raise NotFound("Order")
        if not (actor.is_admin or (actor.role is RoleV1.VENDOR and order.vendor_id == actor.uid)):
            raise PermissionDenied("Forbidden")
        events = store.list_events(order_id)
    except Exception as e:
        raise_order_http_error(e)

    return [
        EventV1(
            id=ev.id,
            order_id=ev.order_id,
            actor_uid=ev.actor_uid,
            actor_role=ev.actor_role,
            event_type=EventTypeV1(ev.event_type),
            payload=ev.event_payload_json or {},
            created_at=ev.created_at.isoformat(),
        )
        for ev in events
    ]


@router.get("/v1/notifications", response_model=list[NotificationOut])
def list_notifications(
    limit: int = Query(50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> list[NotificationOut]:
    rows = store.list_notifications(actor.uid, limit=limit)
    return [
        NotificationOut(
            id=n.id,
            user_id=n.user_id,
            order_id=n.order_id,
            type=n.type,
            title=n.title,
            message=n.message,
            priority=n.priority,
            read=n.read,
            created_at=n.created_at.isoformat(),
        )
        for n in rows
    ]
