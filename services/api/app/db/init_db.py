from __future__ import annotations

import logging
import os

from services.api.app.db.database import get_engine
from services.api.app.db.models import Base

logger = logging.getLogger(__name__)


def init_db() -> None:
    enabled = os.getenv("ORDERLINE_DB_AUTO_CREATE", "true").strip().lower()
    if enabled not in {"1", "true", "yes", "y"}:
        logger.info("Skipping table creation (ORDERLINE_DB_AUTO_CREATE is off)")
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
