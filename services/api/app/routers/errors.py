from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException
from services.api.app.services.order_base import (
    InvalidPin,
    InvalidTransition,
    MaterializationFailure,
    NotFound,
    PaymentGatewayError,
    PermissionDenied,
    SignatureVerificationFailed,
    Unauthenticated,
)


def raise_order_http_error(e: Exception) -> NoReturn:
    if isinstance(e, Unauthenticated):
        raise HTTPException(status_code=401, detail=str(e)) from e

    if isinstance(e, (PermissionDenied, InvalidPin)):
        raise HTTPException(status_code=403, detail=str(e)) from e

    if isinstance(e, NotFound):
        raise HTTPException(status_code=404, detail=str(e)) from e

    if isinstance(e, InvalidTransition):
        raise HTTPException(status_code=409, detail=str(e)) from e

    if isinstance(e, SignatureVerificationFailed):
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from e

    if isinstance(e, MaterializationFailure):
        raise HTTPException(status_code=500, detail="Webhook handler failed") from e

    if isinstance(e, PaymentGatewayError):
        raise HTTPException(status_code=502, detail=str(e)) from e

    raise HTTPException(status_code=500, detail="Internal Server Error") from e
