from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from packages.shared.schemas.order_v1 import RoleV1
from services.api.app.services.order_base import Actor, Unauthenticated


def _jwt_secret() -> str:
    return os.getenv("ORDERLINE_JWT_SECRET", "").strip()


def _jwt_algorithm() -> str:
    return os.getenv("ORDERLINE_JWT_ALGORITHM", "HS256").strip() or "HS256"


def resolve_actor(token: str | None) -> Actor:
    """Resolve a bearer token to the caller's uid and role claim.

    The role is trusted as issued; a token without one is a customer.
    """

    if not token:
        raise Unauthenticated()

    secret = _jwt_secret()
    if not secret:
        # Fail closed when the deployment has no verification key.
        raise Unauthenticated("Token verification is not configured")

    try:
        claims = jwt.decode(token, secret, algorithms=[_jwt_algorithm()])
    except JWTError as e:
        raise Unauthenticated("Invalid token") from e

    uid = str(claims.get("uid") or claims.get("sub") or "").strip()
    if not uid:
        raise Unauthenticated("Token has no subject")

    raw_role = str(claims.get("role") or RoleV1.CUSTOMER.value).strip().lower()
    try:
        role = RoleV1(raw_role)
    except ValueError as e:
        raise Unauthenticated(f"Unknown role claim {raw_role!r}") from e

    return Actor(uid=uid, role=role)


def issue_token(uid: str, role: RoleV1 | str, *, expires_in: timedelta | None = None) -> str:
    """Mint a token in the identity provider's format (local dev and tests)."""

    secret = _jwt_secret()
    if not secret:
        raise ValueError("ORDERLINE_JWT_SECRET is required to issue tokens")

    role_value = role.value if isinstance(role, RoleV1) else str(role)
    expire = datetime.now(timezone.utc) + (expires_in or timedelta(hours=1))
    claims = {"sub": uid, "uid": uid, "role": role_value, "exp": expire}
    return jwt.encode(claims, secret, algorithm=_jwt_algorithm())
