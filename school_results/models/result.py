import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_results.core.db import Base


class Result(Base):
    """One raw mark: one student, one subject, one assessment, one term."""

    __tablename__ = "results"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "subject_id",
            "assessment_id",
            "term_id",
            name="results_natural_key",
        ),
        Index("idx_results_class_subject_term", "class_id", "subject_id", "term_id"),
        Index("idx_results_student_term", "student_id", "term_id", "session_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("students.id", name="results_student_id_fkey", ondelete="CASCADE"),
        nullable=False,
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", name="results_subject_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    class_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("classes.id", name="results_class_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    teacher_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("teachers.id", name="results_teacher_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("academic_sessions.id", name="results_session_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    term_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("terms.id", name="results_term_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("assessments.id", name="results_assessment_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    score: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    is_approved: Mapped[bool] = mapped_column(
        Boolean, server_default=text("false"), default=False, nullable=False
    )
    is_locked: Mapped[bool] = mapped_column(
        Boolean, server_default=text("false"), default=False, nullable=False
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), nullable=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), onupdate=func.now(), nullable=True
    )
