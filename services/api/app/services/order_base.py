from __future__ import annotations

from dataclasses import dataclass

from packages.shared.schemas.order_v1 import OrderStatusV1, RoleV1


class OrderError(Exception):
    """Base class for order lifecycle errors."""


class Unauthenticated(OrderError):
    def __init__(self, reason: str = "Missing or invalid bearer token") -> None:
        super().__init__(reason)


class PermissionDenied(OrderError):
    pass


class NotFound(OrderError):
    def __init__(self, what: str = "Order") -> None:
        super().__init__(f"{what} not found")
        self.what = what


class InvalidTransition(OrderError):
    def __init__(self, current: str, requested: str, reason: str | None = None) -> None:
        message = f"Cannot move order from {current!r} to {requested!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.requested = requested


class InvalidPin(OrderError):
    def __init__(self) -> None:
        super().__init__("Invalid tracking PIN")


class SignatureVerificationFailed(OrderError):
    pass


class MaterializationFailure(OrderError):
    def __init__(self, session_id: str, reason: str) -> None:
        super().__init__(f"Could not create order for session {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class PaymentGatewayError(OrderError):
    pass


@dataclass(frozen=True, slots=True)
class Actor:
    """Authenticated caller, passed explicitly into every operation."""

    uid: str
    role: RoleV1

    @property
    def is_admin(self) -> bool:
        return self.role is RoleV1.ADMIN


@dataclass(frozen=True, slots=True)
class TransitionResult:
    order_id: str
    status: OrderStatusV1
    changed: bool
