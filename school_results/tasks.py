from __future__ import annotations

import logging
from typing import Any

from school_results.core.db import SessionLocal
from school_results.schemas.activity import ActivityEvent
from school_results.services.activity_service import ActivityService

logger = logging.getLogger(__name__)


def record_activity_job(payload: dict[str, Any]) -> None:
    event = ActivityEvent.model_validate(payload)
    db = SessionLocal()
    try:
        ActivityService.create_activity(db, event)
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.exception("Failed to record activity %s", event.type.value)
        raise
    finally:
        db.close()
