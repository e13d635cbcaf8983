import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from school_results.core.db import Base


class ActivityType(str, enum.Enum):
    RESULT_ENTERED = "result_entered"
    RESULT_UPDATED = "result_updated"
    RESULT_DELETED = "result_deleted"
    RESULT_PUBLISHED = "result_published"
    RESULT_LOCKED = "result_locked"
    RESULT_UNLOCKED = "result_unlocked"


class Activity(Base):
    __tablename__ = "activities"
    __table_args__ = (Index("idx_activities_type_created", "type", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), nullable=False
    )
