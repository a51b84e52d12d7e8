from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Header, HTTPException
from services.api.app.db.database import db_session
from services.api.app.services.identity import resolve_actor
from services.api.app.services.order_base import Actor, Unauthenticated
from services.api.app.services.order_store import OrderStore
from sqlalchemy.orm import Session


def get_db() -> Generator[Session, None, None]:
    db = db_session()
    try:
        yield db
    finally:
        db.close()


def get_order_store(db: Session = Depends(get_db)) -> OrderStore:
    return OrderStore(db)


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def get_actor(authorization: str | None = Header(default=None)) -> Actor:
    try:
        return resolve_actor(_bearer_token(authorization))
    except Unauthenticated as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
