from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from school_results.core.config import settings


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        # one connection may be shared across FastAPI's worker threads
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Request-scoped session; every store call commits or rolls back on its own."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


from school_results.models import (  # noqa: E402, F401, I001
    activity,
    assessment,
    result,
    result_lock,
    school_class,
    session,
    student,
    subject,
    teacher,
)
