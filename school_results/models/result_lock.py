import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from school_results.core.db import Base


class ResultLock(Base):
    """
    A lock placed on a ``(class, term)``.

    ``subject_id`` is NULL for a class-wide lock, which also covers subjects
    that have no results yet.
    """

    __tablename__ = "result_locks"
    __table_args__ = (Index("idx_result_locks_class_term", "class_id", "term_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("classes.id", name="result_locks_class_id_fkey", ondelete="CASCADE"),
        nullable=False,
    )
    term_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("terms.id", name="result_locks_term_id_fkey", ondelete="CASCADE"),
        nullable=False,
    )
    subject_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", name="result_locks_subject_id_fkey", ondelete="CASCADE"),
        nullable=True,
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), nullable=True
    )
