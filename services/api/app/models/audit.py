from __future__ import annotations

from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
    event_type: str
    ignored: bool = False
    duplicate: bool = False
    order_id: str | None = None


class ReconcileResponse(BaseModel):
    session_id: str
    outcome: str
    order_id: str | None = None


class NotificationOut(BaseModel):
    id: str
    user_id: str
    order_id: str
    type: str
    title: str
    message: str
    priority: str
    read: bool
    created_at: str

