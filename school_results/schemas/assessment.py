import uuid
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class AssessmentInfo(BaseModel):
    id: uuid.UUID
    name: str
    max_score: Decimal
    description: str | None = None

    model_config = ConfigDict(from_attributes=True)
