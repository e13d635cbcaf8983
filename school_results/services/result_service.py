from __future__ import annotations

import logging
import uuid
from collections import Counter
from decimal import Decimal
from typing import Any

from school_results.core.errors import ConflictError, NotFoundError, ScoreValidationError
from school_results.models.activity import ActivityType
from school_results.schemas.activity import ActivityEvent
from school_results.schemas.assessment import AssessmentInfo
from school_results.schemas.result import (
    BulkResultCreate,
    ResultCreate,
    ResultFilter,
    ScoreEntry,
)
from school_results.services.activity_service import ActivityRecorder, NullActivityRecorder
from school_results.services.entity_lookup import EntityLookup
from school_results.services.lifecycle_service import LifecycleService
from school_results.services.result_store import ResultStore

logger = logging.getLogger(__name__)


def _score_failure(assessment: AssessmentInfo, score: Decimal) -> str | None:
    if score < 0:
        return "Score cannot be negative"
    if score > assessment.max_score:
        return f"Score {score} exceeds the maximum of {assessment.max_score} for {assessment.name}"
    return None


ATTRIBUTION_FIELDS = ("class_id", "teacher_id", "session_id")


def _attribution_mismatch(existing: ScoreEntry, entry: ScoreEntry) -> list[str]:
    return [field for field in ATTRIBUTION_FIELDS if getattr(existing, field) != getattr(entry, field)]


class ResultService:
    """Score entry: every write is range-checked and gated by the lifecycle."""

    def __init__(
        self,
        store: ResultStore,
        lookup: EntityLookup,
        activity: ActivityRecorder | None = None,
        lifecycle: LifecycleService | None = None,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.activity = activity or NullActivityRecorder()
        self.lifecycle = lifecycle or LifecycleService(store, lookup, self.activity)

    def _emit(self, event: ActivityEvent) -> None:
        try:
            self.activity.record(event)
        except Exception:  # noqa: BLE001
            logger.exception("Activity recorder failed for %s", event.type.value)

    def _require_references(
        self,
        *,
        subject_id: uuid.UUID,
        class_id: uuid.UUID,
        teacher_id: uuid.UUID,
        session_id: uuid.UUID,
        term_id: uuid.UUID,
        assessment_id: uuid.UUID,
    ) -> AssessmentInfo:
        self.lookup.require_subject(subject_id)
        self.lookup.require_class(class_id)
        self.lookup.require_teacher(teacher_id)
        self.lookup.require_session(session_id)
        self.lookup.require_term(term_id)
        return self.lookup.require_assessment(assessment_id)

    def get(self, result_id: uuid.UUID) -> ScoreEntry:
        entry = self.store.get(result_id)
        if entry is None:
            raise NotFoundError("Result", result_id)
        return entry

    def list_results(self, filter: ResultFilter, limit: int | None = None) -> list[ScoreEntry]:
        return self.store.find_by(filter, limit=limit)

    def submit_score(
        self,
        payload: ResultCreate,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> ScoreEntry:
        """
        Record one score, overwriting any score already stored under the same key.

        The stored row keeps its class, teacher and session; a re-submission that
        names different ones is a ``ConflictError``. Use ``update_score`` to
        correct a score entered by someone else.
        """
        self.lookup.require_student(payload.student_id)
        assessment = self._require_references(
            subject_id=payload.subject_id,
            class_id=payload.class_id,
            teacher_id=payload.teacher_id,
            session_id=payload.session_id,
            term_id=payload.term_id,
            assessment_id=payload.assessment_id,
        )
        failure = _score_failure(assessment, payload.score)
        if failure:
            raise ScoreValidationError(
                failure,
                failures=[{"student_id": str(payload.student_id), "error": failure}],
            )

        entry = ScoreEntry(**payload.model_dump())
        existing = self.store.find_one(entry.key)
        if existing is not None:
            mismatched = _attribution_mismatch(existing, entry)
            if mismatched:
                raise ConflictError(
                    "Result is already recorded under a different class, teacher or session",
                    result_id=str(existing.id),
                    fields=mismatched,
                )
        self.lifecycle.ensure_writable([entry.scope])

        saved = self.store.upsert(entry)
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_UPDATED if existing else ActivityType.RESULT_ENTERED,
                title="Result updated" if existing else "Result entered",
                description=f"{assessment.name} score recorded",
                user_id=actor_id,
                user_role=actor_role,
                details={"result_id": str(saved.id), "score": str(saved.score)},
            )
        )
        return saved

    def submit_bulk(
        self,
        payload: BulkResultCreate,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> list[ScoreEntry]:
        """
        Record one assessment's scores for many students, all or nothing.

        Every row is validated and the lock state of every touched scope is
        checked before the first write. A single bad row rejects the batch and
        the error lists every failing student.
        """
        assessment = self._require_references(
            subject_id=payload.subject_id,
            class_id=payload.class_id,
            teacher_id=payload.teacher_id,
            session_id=payload.session_id,
            term_id=payload.term_id,
            assessment_id=payload.assessment_id,
        )

        duplicates = [sid for sid, n in Counter(s.student_id for s in payload.scores).items() if n > 1]
        if duplicates:
            raise ConflictError(
                "A student appears more than once in the batch",
                student_ids=[str(sid) for sid in duplicates],
            )

        failures: list[dict[str, Any]] = []
        entries: list[ScoreEntry] = []
        for item in payload.scores:
            try:
                self.lookup.require_student(item.student_id)
            except NotFoundError:
                failures.append({"student_id": str(item.student_id), "error": "Student not found"})
                continue
            failure = _score_failure(assessment, item.score)
            if failure:
                failures.append({"student_id": str(item.student_id), "error": failure})
                continue
            entries.append(
                ScoreEntry(
                    student_id=item.student_id,
                    subject_id=payload.subject_id,
                    class_id=payload.class_id,
                    teacher_id=payload.teacher_id,
                    session_id=payload.session_id,
                    term_id=payload.term_id,
                    assessment_id=payload.assessment_id,
                    score=item.score,
                )
            )

        if failures:
            logger.warning(
                "Rejected bulk submission: %d of %d row(s) invalid", len(failures), len(payload.scores)
            )
            raise ScoreValidationError(
                f"{len(failures)} score(s) failed validation; nothing was saved",
                failures=failures,
            )

        conflicts = []
        for entry in entries:
            existing = self.store.find_one(entry.key)
            if existing is not None and _attribution_mismatch(existing, entry):
                conflicts.append(str(entry.student_id))
        if conflicts:
            raise ConflictError(
                "Results are already recorded under a different class, teacher or session",
                student_ids=conflicts,
            )
        self.lifecycle.ensure_writable([entry.scope for entry in entries])

        saved = self.store.bulk_upsert(entries)
        logger.info("Recorded %d score(s) for assessment %s", len(saved), assessment.name)
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_ENTERED,
                title="Bulk results entered",
                description=f"{len(saved)} {assessment.name} score(s) recorded",
                user_id=actor_id,
                user_role=actor_role,
                details={
                    "class_id": str(payload.class_id),
                    "subject_id": str(payload.subject_id),
                    "term_id": str(payload.term_id),
                    "assessment_id": str(payload.assessment_id),
                    "count": len(saved),
                },
            )
        )
        return saved

    def update_score(
        self,
        result_id: uuid.UUID,
        score: Decimal,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> ScoreEntry:
        entry = self.get(result_id)
        self.lifecycle.ensure_writable([entry.scope])
        assessment = self.lookup.require_assessment(entry.assessment_id)
        failure = _score_failure(assessment, score)
        if failure:
            raise ScoreValidationError(
                failure,
                failures=[{"student_id": str(entry.student_id), "error": failure}],
            )

        saved = self.store.upsert(entry.model_copy(update={"score": score}))
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_UPDATED,
                title="Result updated",
                description=f"{assessment.name} score changed from {entry.score} to {saved.score}",
                user_id=actor_id,
                user_role=actor_role,
                details={"result_id": str(saved.id)},
            )
        )
        return saved

    def remove_score(
        self,
        result_id: uuid.UUID,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> None:
        entry = self.get(result_id)
        self.lifecycle.ensure_writable([entry.scope])
        if not self.store.delete(result_id):
            raise NotFoundError("Result", result_id)
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_DELETED,
                title="Result deleted",
                description="A result was removed",
                user_id=actor_id,
                user_role=actor_role,
                details={"result_id": str(result_id), "student_id": str(entry.student_id)},
            )
        )
