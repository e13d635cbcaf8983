"""
School Results API: score entry, grading, ranking and result approval.
"""

import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from school_results.core.config import settings
from school_results.core.db import get_db
from school_results.core.queue import _get_redis_connection
from school_results.routers import results

API_VERSION = "0.1.0"

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="School Results API",
    description="Score entry, grading, ranking and result approval for school terms",
    version=API_VERSION,
)

app.include_router(results.router, prefix="/api/v1")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unavailable(component: str, exc: Exception) -> HTTPException:
    logger.warning("Health check failed for %s: %s", component, exc)
    return HTTPException(
        status_code=503,
        detail={"status": "error", component: "unavailable", "error": str(exc)},
    )


@app.get("/")
def root():
    return {"message": "School Results API", "version": API_VERSION, "status": "running"}


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/health/db")
def health_db(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise _unavailable("database", exc) from exc
    return {"status": "ok", "db": "ok"}


@app.get("/health/redis")
def health_redis():
    """Only meaningful when activity logging goes through the RQ queue."""
    if not settings.ASYNC_QUEUE_ENABLED:
        return {"status": "skipped", "async_enabled": False}

    try:
        _get_redis_connection().ping()
    except RedisError as exc:
        raise _unavailable("redis", exc) from exc
    return {"status": "ok", "redis": "ok"}
