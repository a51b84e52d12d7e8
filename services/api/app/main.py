"""Orderline API service entrypoint."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.api.app.db.init_db import init_db
from services.api.app.logging_config import setup_logging
from services.api.app.routers.audit import router as audit_router
from services.api.app.routers.orders import router as orders_router
from services.api.app.routers.tracking import router as tracking_router
from services.api.app.routers.webhooks import router as webhooks_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    init_db()
    yield


app = FastAPI(title="Orderline API", lifespan=lifespan)

app.include_router(webhooks_router)
app.include_router(orders_router)
app.include_router(tracking_router)
app.include_router(audit_router)


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
