"""
Approval and locking of result scopes.

Approval and locking are independent flags stored on every result row and
always changed in bulk. Approval marks sign-off and does not block writes.
Locking blocks every create, update and delete in its scope until unlocked.
A lock is also kept as a record on the ``(class, term)``, so a class-wide
lock covers subjects that have no results yet.
"""

from __future__ import annotations

import enum
import logging
import uuid
from collections.abc import Iterable, Sequence

from school_results.core.errors import ResultsLockedError
from school_results.models.activity import ActivityType
from school_results.schemas.activity import ActivityEvent
from school_results.schemas.result import ResultFilter, ResultScope, ScoreEntry
from school_results.services.activity_service import ActivityRecorder, NullActivityRecorder
from school_results.services.entity_lookup import EntityLookup
from school_results.services.result_store import ResultStore

logger = logging.getLogger(__name__)


class ResultState(str, enum.Enum):
    OPEN = "open"
    APPROVED = "approved"
    LOCKED = "locked"


def derive_state(is_approved: bool, is_locked: bool) -> ResultState:
    if is_locked:
        return ResultState.LOCKED
    if is_approved:
        return ResultState.APPROVED
    return ResultState.OPEN


def derive_scope_state(entries: Iterable[ScoreEntry]) -> ResultState:
    """
    Fold the row flags of one scope into a single state.

    Any locked row locks the scope. The scope counts as approved only when it
    has rows and all of them are approved.
    """
    rows = list(entries)
    if any(row.is_locked for row in rows):
        return ResultState.LOCKED
    if rows and all(row.is_approved for row in rows):
        return ResultState.APPROVED
    return ResultState.OPEN


class LifecycleService:
    def __init__(
        self,
        store: ResultStore,
        lookup: EntityLookup,
        activity: ActivityRecorder | None = None,
    ) -> None:
        self.store = store
        self.lookup = lookup
        self.activity = activity or NullActivityRecorder()

    def _emit(self, event: ActivityEvent) -> None:
        try:
            self.activity.record(event)
        except Exception:  # noqa: BLE001
            logger.exception("Activity recorder failed for %s", event.type.value)

    def _require_scope(
        self,
        class_id: uuid.UUID,
        term_id: uuid.UUID,
        subject_id: uuid.UUID | None,
    ) -> None:
        self.lookup.require_class(class_id)
        if subject_id is not None:
            self.lookup.require_subject(subject_id)
        self.lookup.require_term(term_id)

    def scope_state(
        self,
        class_id: uuid.UUID,
        subject_id: uuid.UUID,
        term_id: uuid.UUID,
    ) -> ResultState:
        records = self.store.lock_records(class_id, term_id)
        if None in records or subject_id in records:
            return ResultState.LOCKED
        return derive_scope_state(
            self.store.find_by(ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id))
        )

    def locked_scopes(self, scopes: Iterable[ResultScope]) -> list[ResultScope]:
        locked: list[ResultScope] = []
        records: dict[tuple[uuid.UUID, uuid.UUID], set[uuid.UUID | None]] = {}
        for scope in dict.fromkeys(scopes):
            class_term = (scope.class_id, scope.term_id)
            if class_term not in records:
                records[class_term] = self.store.lock_records(scope.class_id, scope.term_id)
            held = records[class_term]
            if None in held or scope.subject_id in held:
                locked.append(scope)
                continue
            # rows locked through set_flags alone still count
            rows = self.store.find_by(ResultFilter(**scope.model_dump()))
            if derive_scope_state(rows) == ResultState.LOCKED:
                locked.append(scope)
        return locked

    def ensure_writable(self, scopes: Sequence[ResultScope]) -> None:
        """Raise ``ResultsLockedError`` if any scope is locked; checks all before any write."""
        locked = self.locked_scopes(scopes)
        if locked:
            logger.warning("Rejected write into %d locked scope(s)", len(locked))
            raise ResultsLockedError(
                "Results are locked and cannot be modified",
                scopes=[scope.model_dump(mode="json") for scope in locked],
            )

    def approve(
        self,
        class_id: uuid.UUID,
        subject_id: uuid.UUID,
        term_id: uuid.UUID,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> int:
        self._require_scope(class_id, term_id, subject_id)
        count = self.store.set_flags(
            ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id),
            is_approved=True,
        )
        logger.info(
            "Approved %d result(s) for class=%s subject=%s term=%s", count, class_id, subject_id, term_id
        )
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_PUBLISHED,
                title="Results approved",
                description=f"{count} result(s) approved",
                user_id=actor_id,
                user_role=actor_role,
                details={
                    "class_id": str(class_id),
                    "subject_id": str(subject_id),
                    "term_id": str(term_id),
                    "count": count,
                },
            )
        )
        return count

    def _set_lock(
        self,
        locked: bool,
        class_id: uuid.UUID,
        term_id: uuid.UUID,
        subject_id: uuid.UUID | None,
        actor_id: str | None,
        actor_role: str | None,
    ) -> int:
        self._require_scope(class_id, term_id, subject_id)
        if locked:
            count = self.store.lock_scope(class_id, term_id, subject_id)
        else:
            count = self.store.unlock_scope(class_id, term_id, subject_id)
        verb = "Locked" if locked else "Unlocked"
        logger.info(
            "%s %d result(s) for class=%s subject=%s term=%s", verb, count, class_id, subject_id, term_id
        )
        details = {"class_id": str(class_id), "term_id": str(term_id), "count": count}
        if subject_id is not None:
            details["subject_id"] = str(subject_id)
        self._emit(
            ActivityEvent(
                type=ActivityType.RESULT_LOCKED if locked else ActivityType.RESULT_UNLOCKED,
                title=f"Results {verb.lower()}",
                description=f"{count} result(s) {verb.lower()}",
                user_id=actor_id,
                user_role=actor_role,
                details=details,
            )
        )
        return count

    def lock(
        self,
        class_id: uuid.UUID,
        term_id: uuid.UUID,
        subject_id: uuid.UUID | None = None,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> int:
        """Lock one subject, or the whole class for the term when ``subject_id`` is None."""
        return self._set_lock(True, class_id, term_id, subject_id, actor_id, actor_role)

    def unlock(
        self,
        class_id: uuid.UUID,
        term_id: uuid.UUID,
        subject_id: uuid.UUID | None = None,
        *,
        actor_id: str | None = None,
        actor_role: str | None = None,
    ) -> int:
        """
        Lift a lock. Without ``subject_id`` every lock on the class and term goes.

        Unlocking one subject leaves a class-wide lock in place.
        """
        return self._set_lock(False, class_id, term_id, subject_id, actor_id, actor_role)
