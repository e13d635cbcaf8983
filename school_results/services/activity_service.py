from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from school_results.core.db import SessionLocal
from school_results.core.queue import enqueue_activity, is_async_queue_enabled
from school_results.models.activity import Activity
from school_results.schemas.activity import ActivityEvent

logger = logging.getLogger(__name__)


class ActivityRecorder(Protocol):
    def record(self, event: ActivityEvent) -> None: ...


class ActivityService:
    @staticmethod
    def create_activity(db: Session, event: ActivityEvent) -> Activity:
        activity = Activity(
            type=event.type.value,
            title=event.title,
            description=event.description,
            user_id=event.user_id,
            user_role=event.user_role,
            details=event.details,
        )
        db.add(activity)
        db.commit()
        db.refresh(activity)
        return activity


class DatabaseActivityRecorder:
    """
    Writes audit events for the activity feed.

    Recording is advisory: it uses its own session (or an RQ job when the async
    queue is enabled) so a failure here never touches the score write that
    triggered it.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory

    def record(self, event: ActivityEvent) -> None:
        if is_async_queue_enabled():
            try:
                enqueue_activity(payload=event.model_dump(mode="json"))
            except RedisError:
                logger.exception("Failed to enqueue activity %s", event.type.value)
            return

        db = self.session_factory()
        try:
            ActivityService.create_activity(db, event)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to record activity %s", event.type.value)
        finally:
            db.close()


class NullActivityRecorder:
    def record(self, event: ActivityEvent) -> None:
        logger.debug("Activity not recorded: %s", event.type.value)
