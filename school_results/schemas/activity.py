from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from school_results.models.activity import ActivityType


class ActivityEvent(BaseModel):
    type: ActivityType
    title: str
    description: str
    user_id: str | None = None
    user_role: str | None = None
    details: dict[str, Any] | None = None


class ActivityResponse(ActivityEvent):
    id: UUID
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
