"""Shared event schema (v1).

The backend stores an append-only order event log. Vendor and admin clients consume
these events to render an order's audit trail.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventTypeV1(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"


class EventV1(BaseModel):
    id: str
    order_id: str

    actor_uid: str | None = None
    actor_role: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
