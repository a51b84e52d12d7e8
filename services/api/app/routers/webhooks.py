from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from services.api.app.db.deps import get_actor, get_order_store
from services.api.app.models.audit import ReconcileResponse, WebhookAck
from services.api.app.payments.factory import get_payment_gateway
from services.api.app.routers.errors import raise_order_http_error
from services.api.app.services.order_base import Actor, PermissionDenied
from services.api.app.services.order_store import OrderStore
from services.api.app.services.payment_listener import (
    PaymentListener,
    PaymentOutcome,
    PaymentResult,
)
from starlette.concurrency import run_in_threadpool

router = APIRouter()


@router.post("/webhooks/payment", response_model=WebhookAck)
@router.post("/v1/webhooks/stripe", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    store: OrderStore = Depends(get_order_store),
) -> WebhookAck:
    # Signature covers the exact bytes received, so read the raw body.
    raw = await request.body()
    listener = PaymentListener(store)

    try:
        result = await run_in_threadpool(listener.on_payment_completed, raw, stripe_signature)
    except Exception as e:
        raise_order_http_error(e)

    return _ack(result)


@router.post(
    "/v1/admin/payments/sessions/{session_id}/reconcile",
    response_model=ReconcileResponse,
)
def reconcile_session(
    session_id: str,
    actor: Actor = Depends(get_actor),
    store: OrderStore = Depends(get_order_store),
) -> ReconcileResponse:
    try:
        if not actor.is_admin:
            raise PermissionDenied("Only admins can reconcile payments")
        gateway = get_payment_gateway()
        session = gateway.retrieve_session(session_id)
        result = PaymentListener(store).handle_session(session)
    except Exception as e:
        raise_order_http_error(e)

    return ReconcileResponse(
        session_id=session_id,
        outcome=result.outcome.value,
        order_id=result.order_id,
    )


def _ack(result: PaymentResult) -> WebhookAck:
    return WebhookAck(
        received=True,
        outcome=result.outcome.value,
        event_type=result.event_type,
        ignored=result.outcome is PaymentOutcome.IGNORED,
        duplicate=result.outcome is PaymentOutcome.DUPLICATE,
        order_id=result.order_id,
    )
