"""
Existence checks and display data for the records results point at.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy.orm import Session

from school_results.core.errors import NotFoundError
from school_results.models.assessment import Assessment
from school_results.models.school_class import SchoolClass
from school_results.models.session import AcademicSession, Term
from school_results.models.student import Student
from school_results.models.subject import Subject
from school_results.models.teacher import Teacher
from school_results.schemas.assessment import AssessmentInfo


class EntityLookup(Protocol):
    def require_student(self, student_id: uuid.UUID) -> Any: ...

    def require_subject(self, subject_id: uuid.UUID) -> Any: ...

    def require_class(self, class_id: uuid.UUID) -> Any: ...

    def require_teacher(self, teacher_id: uuid.UUID) -> Any: ...

    def require_term(self, term_id: uuid.UUID) -> Any: ...

    def require_session(self, session_id: uuid.UUID) -> Any: ...

    def require_assessment(self, assessment_id: uuid.UUID) -> AssessmentInfo: ...

    def assessments(self, assessment_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, AssessmentInfo]: ...

    def subject_names(self, subject_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]: ...


class SqlAlchemyEntityLookup:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _require(self, model: type, entity: str, entity_id: uuid.UUID) -> Any:
        row = self.db.get(model, entity_id)
        if not row:
            raise NotFoundError(entity, entity_id)
        return row

    def require_student(self, student_id: uuid.UUID) -> Student:
        return self._require(Student, "Student", student_id)

    def require_subject(self, subject_id: uuid.UUID) -> Subject:
        return self._require(Subject, "Subject", subject_id)

    def require_class(self, class_id: uuid.UUID) -> SchoolClass:
        return self._require(SchoolClass, "Class", class_id)

    def require_teacher(self, teacher_id: uuid.UUID) -> Teacher:
        return self._require(Teacher, "Teacher", teacher_id)

    def require_term(self, term_id: uuid.UUID) -> Term:
        return self._require(Term, "Term", term_id)

    def require_session(self, session_id: uuid.UUID) -> AcademicSession:
        return self._require(AcademicSession, "Session", session_id)

    def require_assessment(self, assessment_id: uuid.UUID) -> AssessmentInfo:
        return AssessmentInfo.model_validate(self._require(Assessment, "Assessment", assessment_id))

    def assessments(self, assessment_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, AssessmentInfo]:
        ids = set(assessment_ids)
        if not ids:
            return {}
        rows = self.db.query(Assessment).filter(Assessment.id.in_(ids)).all()
        return {row.id: AssessmentInfo.model_validate(row) for row in rows}

    def subject_names(self, subject_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
        ids = set(subject_ids)
        if not ids:
            return {}
        rows = self.db.query(Subject.id, Subject.name).filter(Subject.id.in_(ids)).all()
        return {row.id: row.name for row in rows}


class InMemoryEntityLookup:
    """Lookup over plain id sets, for tooling and tests."""

    def __init__(
        self,
        *,
        students: Iterable[uuid.UUID] = (),
        subjects: dict[uuid.UUID, str] | None = None,
        classes: Iterable[uuid.UUID] = (),
        teachers: Iterable[uuid.UUID] = (),
        terms: Iterable[uuid.UUID] = (),
        sessions: Iterable[uuid.UUID] = (),
        assessments: Iterable[AssessmentInfo] = (),
    ) -> None:
        self.students = set(students)
        self.subjects = dict(subjects or {})
        self.classes = set(classes)
        self.teachers = set(teachers)
        self.terms = set(terms)
        self.sessions = set(sessions)
        self._assessments = {a.id: a for a in assessments}

    @staticmethod
    def _require(ids: Iterable[uuid.UUID], entity: str, entity_id: uuid.UUID) -> uuid.UUID:
        if entity_id not in ids:
            raise NotFoundError(entity, entity_id)
        return entity_id

    def add_assessment(self, name: str, max_score: Decimal | int) -> AssessmentInfo:
        info = AssessmentInfo(id=uuid.uuid4(), name=name, max_score=Decimal(max_score))
        self._assessments[info.id] = info
        return info

    def require_student(self, student_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.students, "Student", student_id)

    def require_subject(self, subject_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.subjects, "Subject", subject_id)

    def require_class(self, class_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.classes, "Class", class_id)

    def require_teacher(self, teacher_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.teachers, "Teacher", teacher_id)

    def require_term(self, term_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.terms, "Term", term_id)

    def require_session(self, session_id: uuid.UUID) -> uuid.UUID:
        return self._require(self.sessions, "Session", session_id)

    def require_assessment(self, assessment_id: uuid.UUID) -> AssessmentInfo:
        info = self._assessments.get(assessment_id)
        if info is None:
            raise NotFoundError("Assessment", assessment_id)
        return info

    def assessments(self, assessment_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, AssessmentInfo]:
        return {i: self._assessments[i] for i in set(assessment_ids) if i in self._assessments}

    def subject_names(self, subject_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
        return {i: self.subjects[i] for i in set(subject_ids) if i in self.subjects}
