"""
Persistence gateway for result rows.

The services only talk to a ``ResultStore``. ``SqlAlchemyResultStore`` backs
the API; ``InMemoryResultStore`` backs tooling and tests. Both serialize
writes per natural key and write a bulk batch all-or-nothing. Lock records
live beside the rows so a class-wide lock also covers subjects with no
results yet.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from school_results.core.errors import ConflictError
from school_results.models.result import Result
from school_results.models.result_lock import ResultLock
from school_results.schemas.result import ResultFilter, ResultKey, ScoreEntry

logger = logging.getLogger(__name__)


class ResultStore(Protocol):
    def find_one(self, key: ResultKey) -> ScoreEntry | None: ...

    def get(self, result_id: uuid.UUID) -> ScoreEntry | None: ...

    def upsert(self, entry: ScoreEntry) -> ScoreEntry: ...

    def bulk_upsert(self, entries: Sequence[ScoreEntry]) -> list[ScoreEntry]: ...

    def find_by(self, filter: ResultFilter, limit: int | None = None) -> list[ScoreEntry]: ...

    def set_flags(
        self,
        filter: ResultFilter,
        *,
        is_approved: bool | None = None,
        is_locked: bool | None = None,
    ) -> int: ...

    def delete(self, result_id: uuid.UUID) -> bool: ...

    def lock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int: ...

    def unlock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int: ...

    def lock_records(self, class_id: uuid.UUID, term_id: uuid.UUID) -> set[uuid.UUID | None]: ...


def _flag_values(is_approved: bool | None, is_locked: bool | None) -> dict[str, bool]:
    values: dict[str, bool] = {}
    if is_approved is not None:
        values["is_approved"] = is_approved
    if is_locked is not None:
        values["is_locked"] = is_locked
    return values


class SqlAlchemyResultStore:
    """``ResultStore`` over the ``results`` table. Each call is its own transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self, filter: ResultFilter) -> Query:
        query = self.db.query(Result)
        for field, value in filter.model_dump(exclude_none=True).items():
            query = query.filter(getattr(Result, field) == value)
        return query

    def _row_for_key(self, key: ResultKey) -> Result | None:
        return (
            self.db.query(Result)
            .filter(
                Result.student_id == key.student_id,
                Result.subject_id == key.subject_id,
                Result.assessment_id == key.assessment_id,
                Result.term_id == key.term_id,
            )
            .first()
        )

    def _write(self, entry: ScoreEntry) -> Result:
        row = self._row_for_key(entry.key)
        if row:
            # Re-submission overwrites the score only; flags belong to the lifecycle.
            row.score = entry.score
        else:
            row = Result(
                student_id=entry.student_id,
                subject_id=entry.subject_id,
                class_id=entry.class_id,
                teacher_id=entry.teacher_id,
                session_id=entry.session_id,
                term_id=entry.term_id,
                assessment_id=entry.assessment_id,
                score=entry.score,
                is_approved=False,
                is_locked=False,
            )
        self.db.add(row)
        self.db.flush()
        return row

    def _write_all(self, entries: Sequence[ScoreEntry]) -> list[Result]:
        try:
            rows = [self._write(entry) for entry in entries]
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to write %d result row(s)", len(entries))
            raise
        return rows

    def _commit_rows(self, entries: Sequence[ScoreEntry]) -> list[ScoreEntry]:
        try:
            rows = self._write_all(entries)
        except IntegrityError:
            # Another writer inserted one of these keys first; replay so the later write wins.
            logger.warning("Natural key collision on a %d row batch; retrying as overwrite", len(entries))
            try:
                rows = self._write_all(entries)
            except IntegrityError as exc:
                raise ConflictError("Result already recorded by a concurrent write") from exc

        for row in rows:
            self.db.refresh(row)
        return [ScoreEntry.model_validate(row) for row in rows]

    def find_one(self, key: ResultKey) -> ScoreEntry | None:
        row = self._row_for_key(key)
        return ScoreEntry.model_validate(row) if row else None

    def get(self, result_id: uuid.UUID) -> ScoreEntry | None:
        row = self.db.get(Result, result_id)
        return ScoreEntry.model_validate(row) if row else None

    def upsert(self, entry: ScoreEntry) -> ScoreEntry:
        return self._commit_rows([entry])[0]

    def bulk_upsert(self, entries: Sequence[ScoreEntry]) -> list[ScoreEntry]:
        if not entries:
            return []
        return self._commit_rows(entries)

    def find_by(self, filter: ResultFilter, limit: int | None = None) -> list[ScoreEntry]:
        query = self._query(filter).order_by(Result.created_at, Result.id)
        if limit is not None:
            query = query.limit(limit)
        return [ScoreEntry.model_validate(row) for row in query.all()]

    def set_flags(
        self,
        filter: ResultFilter,
        *,
        is_approved: bool | None = None,
        is_locked: bool | None = None,
    ) -> int:
        values = _flag_values(is_approved, is_locked)
        if not values:
            return 0
        try:
            count = self._query(filter).update(values, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.expire_all()
        return count

    def delete(self, result_id: uuid.UUID) -> bool:
        row = self.db.get(Result, result_id)
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def _lock_query(self, class_id: uuid.UUID, term_id: uuid.UUID) -> Query:
        return self.db.query(ResultLock).filter(
            ResultLock.class_id == class_id,
            ResultLock.term_id == term_id,
        )

    def _set_locked(self, filter: ResultFilter, locked: bool, change_record: Callable[[], None]) -> int:
        try:
            change_record()
            count = self._query(filter).update({"is_locked": locked}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Failed to change lock for %s", filter.model_dump(exclude_none=True))
            raise
        self.db.expire_all()
        return count

    def lock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int:
        def _record() -> None:
            same_subject = (
                ResultLock.subject_id.is_(None) if subject_id is None else ResultLock.subject_id == subject_id
            )
            if self._lock_query(class_id, term_id).filter(same_subject).first() is None:
                self.db.add(ResultLock(class_id=class_id, term_id=term_id, subject_id=subject_id))
                self.db.flush()

        filter = ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id)
        return self._set_locked(filter, True, _record)

    def unlock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int:
        def _record() -> None:
            query = self._lock_query(class_id, term_id)
            if subject_id is not None:
                query = query.filter(ResultLock.subject_id == subject_id)
            query.delete(synchronize_session=False)

        filter = ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id)
        return self._set_locked(filter, False, _record)

    def lock_records(self, class_id: uuid.UUID, term_id: uuid.UUID) -> set[uuid.UUID | None]:
        return {lock.subject_id for lock in self._lock_query(class_id, term_id).all()}


class InMemoryResultStore:
    """Dictionary-backed ``ResultStore`` with the same upsert and batch semantics."""

    def __init__(self, entries: Sequence[ScoreEntry] = ()) -> None:
        self._lock = threading.Lock()
        self._rows: dict[uuid.UUID, ScoreEntry] = {}
        self._keys: dict[ResultKey, uuid.UUID] = {}
        self._locks: set[tuple[uuid.UUID, uuid.UUID, uuid.UUID | None]] = set()
        if entries:
            self.bulk_upsert(entries)

    def _write(
        self,
        rows: dict[uuid.UUID, ScoreEntry],
        keys: dict[ResultKey, uuid.UUID],
        entry: ScoreEntry,
    ) -> ScoreEntry:
        now = datetime.now(timezone.utc)
        existing_id = keys.get(entry.key)
        if existing_id is not None:
            stored = rows[existing_id].model_copy(update={"score": entry.score, "updated_at": now})
        else:
            stored = entry.model_copy(
                update={
                    "id": uuid.uuid4(),
                    "is_approved": False,
                    "is_locked": False,
                    "created_at": now,
                    "updated_at": now,
                }
            )
            keys[entry.key] = stored.id
        rows[stored.id] = stored
        return stored

    def find_one(self, key: ResultKey) -> ScoreEntry | None:
        with self._lock:
            result_id = self._keys.get(key)
            return self._rows[result_id] if result_id is not None else None

    def get(self, result_id: uuid.UUID) -> ScoreEntry | None:
        with self._lock:
            return self._rows.get(result_id)

    def upsert(self, entry: ScoreEntry) -> ScoreEntry:
        return self.bulk_upsert([entry])[0]

    def bulk_upsert(self, entries: Sequence[ScoreEntry]) -> list[ScoreEntry]:
        with self._lock:
            # Stage on copies so a failure leaves the store untouched.
            rows = dict(self._rows)
            keys = dict(self._keys)
            written = [self._write(rows, keys, entry) for entry in entries]
            self._rows, self._keys = rows, keys
            return written

    def find_by(self, filter: ResultFilter, limit: int | None = None) -> list[ScoreEntry]:
        with self._lock:
            rows = [row for row in self._rows.values() if filter.matches(row)]
        return rows if limit is None else rows[:limit]

    def set_flags(
        self,
        filter: ResultFilter,
        *,
        is_approved: bool | None = None,
        is_locked: bool | None = None,
    ) -> int:
        values = _flag_values(is_approved, is_locked)
        if not values:
            return 0
        with self._lock:
            matched = [row for row in self._rows.values() if filter.matches(row)]
            for row in matched:
                self._rows[row.id] = row.model_copy(update=values)
            return len(matched)

    def delete(self, result_id: uuid.UUID) -> bool:
        with self._lock:
            row = self._rows.pop(result_id, None)
            if row is None:
                return False
            self._keys.pop(row.key, None)
            return True

    def lock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int:
        with self._lock:
            self._locks.add((class_id, term_id, subject_id))
        filter = ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id)
        return self.set_flags(filter, is_locked=True)

    def unlock_scope(
        self, class_id: uuid.UUID, term_id: uuid.UUID, subject_id: uuid.UUID | None = None
    ) -> int:
        with self._lock:
            self._locks = {
                lock
                for lock in self._locks
                if lock[:2] != (class_id, term_id) or (subject_id is not None and lock[2] != subject_id)
            }
        filter = ResultFilter(class_id=class_id, subject_id=subject_id, term_id=term_id)
        return self.set_flags(filter, is_locked=False)

    def lock_records(self, class_id: uuid.UUID, term_id: uuid.UUID) -> set[uuid.UUID | None]:
        with self._lock:
            return {subject_id for c, t, subject_id in self._locks if (c, t) == (class_id, term_id)}
