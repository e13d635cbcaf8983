import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Decimals in memory, plain numbers on the wire
ScoreValue = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ResultKey(BaseModel):
    """Natural key of a result row: at most one score per key."""

    student_id: uuid.UUID
    subject_id: uuid.UUID
    assessment_id: uuid.UUID
    term_id: uuid.UUID

    model_config = ConfigDict(frozen=True)


class ResultScope(BaseModel):
    """The ``(class, subject, term)`` unit that approval and locking act on."""

    class_id: uuid.UUID
    subject_id: uuid.UUID
    term_id: uuid.UUID

    model_config = ConfigDict(frozen=True)


class ResultFilter(BaseModel):
    student_id: uuid.UUID | None = None
    subject_id: uuid.UUID | None = None
    class_id: uuid.UUID | None = None
    teacher_id: uuid.UUID | None = None
    session_id: uuid.UUID | None = None
    term_id: uuid.UUID | None = None
    assessment_id: uuid.UUID | None = None
    is_approved: bool | None = None
    is_locked: bool | None = None

    def matches(self, entry: "ScoreEntry") -> bool:
        for field, expected in self.model_dump(exclude_none=True).items():
            if getattr(entry, field) != expected:
                return False
        return True


class ScoreEntry(BaseModel):
    id: uuid.UUID | None = None
    student_id: uuid.UUID
    subject_id: uuid.UUID
    class_id: uuid.UUID
    teacher_id: uuid.UUID
    session_id: uuid.UUID
    term_id: uuid.UUID
    assessment_id: uuid.UUID
    score: ScoreValue = Field(..., ge=0)
    is_approved: bool = False
    is_locked: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def key(self) -> ResultKey:
        return ResultKey(
            student_id=self.student_id,
            subject_id=self.subject_id,
            assessment_id=self.assessment_id,
            term_id=self.term_id,
        )

    @property
    def scope(self) -> ResultScope:
        return ResultScope(class_id=self.class_id, subject_id=self.subject_id, term_id=self.term_id)


class ResultCreate(BaseModel):
    student_id: uuid.UUID
    subject_id: uuid.UUID
    class_id: uuid.UUID
    teacher_id: uuid.UUID
    session_id: uuid.UUID
    term_id: uuid.UUID
    assessment_id: uuid.UUID
    score: Decimal = Field(..., ge=0, decimal_places=2)


class BulkScore(BaseModel):
    student_id: uuid.UUID
    score: Decimal = Field(..., ge=0, decimal_places=2)


class BulkResultCreate(BaseModel):
    subject_id: uuid.UUID
    class_id: uuid.UUID
    teacher_id: uuid.UUID
    session_id: uuid.UUID
    term_id: uuid.UUID
    assessment_id: uuid.UUID
    scores: list[BulkScore] = Field(..., min_length=1)


class ResultUpdate(BaseModel):
    score: Decimal = Field(..., ge=0, decimal_places=2)


class ApproveRequest(BaseModel):
    class_id: uuid.UUID
    subject_id: uuid.UUID
    term_id: uuid.UUID


class LockRequest(BaseModel):
    class_id: uuid.UUID
    term_id: uuid.UUID
    subject_id: uuid.UUID | None = None


class LifecycleResponse(BaseModel):
    message: str
    affected: int
    state: str | None = None
