import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from school_results.core.db import Base, get_db
from school_results.core.deps import get_activity_recorder
from school_results.core.security import create_access_token
from school_results.main import app
from school_results.models.assessment import Assessment
from school_results.models.school_class import SchoolClass
from school_results.models.session import AcademicSession, Term
from school_results.models.student import Student
from school_results.models.subject import Subject
from school_results.models.teacher import Teacher
from school_results.schemas.activity import ActivityEvent
from school_results.schemas.assessment import AssessmentInfo
from school_results.schemas.result import ScoreEntry
from school_results.services.entity_lookup import InMemoryEntityLookup
from school_results.services.result_store import InMemoryResultStore


class RecordingActivity:
    def __init__(self) -> None:
        self.events: list[ActivityEvent] = []

    def record(self, event: ActivityEvent) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [e.type.value for e in self.events]


@dataclass
class School:
    """One class, one term, a few students and the usual assessments."""

    class_id: uuid.UUID = field(default_factory=uuid.uuid4)
    teacher_id: uuid.UUID = field(default_factory=uuid.uuid4)
    session_id: uuid.UUID = field(default_factory=uuid.uuid4)
    term_id: uuid.UUID = field(default_factory=uuid.uuid4)
    math_id: uuid.UUID = field(default_factory=uuid.uuid4)
    english_id: uuid.UUID = field(default_factory=uuid.uuid4)
    students: list[uuid.UUID] = field(default_factory=lambda: [uuid.uuid4() for _ in range(3)])
    test1: AssessmentInfo = field(
        default_factory=lambda: AssessmentInfo(id=uuid.uuid4(), name="Test 1", max_score=Decimal("10"))
    )
    test2: AssessmentInfo = field(
        default_factory=lambda: AssessmentInfo(id=uuid.uuid4(), name="Test 2", max_score=Decimal("10"))
    )
    exam: AssessmentInfo = field(
        default_factory=lambda: AssessmentInfo(id=uuid.uuid4(), name="Exam", max_score=Decimal("60"))
    )
    final: AssessmentInfo = field(
        default_factory=lambda: AssessmentInfo(id=uuid.uuid4(), name="Final", max_score=Decimal("100"))
    )

    def lookup(self) -> InMemoryEntityLookup:
        return InMemoryEntityLookup(
            students=self.students,
            subjects={self.math_id: "Mathematics", self.english_id: "English"},
            classes=[self.class_id],
            teachers=[self.teacher_id],
            terms=[self.term_id],
            sessions=[self.session_id],
            assessments=[self.test1, self.test2, self.exam, self.final],
        )

    def entry(
        self,
        student_id: uuid.UUID,
        assessment: AssessmentInfo,
        score: str | int,
        subject_id: uuid.UUID | None = None,
    ) -> ScoreEntry:
        return ScoreEntry(
            student_id=student_id,
            subject_id=subject_id or self.math_id,
            class_id=self.class_id,
            teacher_id=self.teacher_id,
            session_id=self.session_id,
            term_id=self.term_id,
            assessment_id=assessment.id,
            score=Decimal(str(score)),
        )


@pytest.fixture
def school() -> School:
    return School()


@pytest.fixture
def store() -> InMemoryResultStore:
    return InMemoryResultStore()


@pytest.fixture
def activity() -> RecordingActivity:
    return RecordingActivity()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Iterator[Session]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def seeded(db_session: Session, school: School) -> School:
    """Persist the ``school`` fixture's reference rows."""
    session = AcademicSession(id=school.session_id, name="2025/2026")
    db_session.add(session)
    db_session.flush()
    db_session.add_all(
        [
            Term(id=school.term_id, session_id=school.session_id, name="First Term"),
            SchoolClass(id=school.class_id, name="JSS 1A", level="JSS1", arm="A"),
            Teacher(id=school.teacher_id, display_name="Mrs. Adeyemi"),
            Subject(id=school.math_id, name="Mathematics", code="MTH"),
            Subject(id=school.english_id, name="English", code="ENG"),
        ]
    )
    db_session.flush()
    db_session.add_all(
        [
            Student(
                id=student_id,
                admission_no=f"ADM{i:03d}",
                first_name=f"Student{i}",
                last_name="Test",
                current_class_id=school.class_id,
            )
            for i, student_id in enumerate(school.students, start=1)
        ]
    )
    db_session.add_all(
        [
            Assessment(id=a.id, name=a.name, max_score=a.max_score)
            for a in (school.test1, school.test2, school.exam, school.final)
        ]
    )
    db_session.commit()
    return school


@pytest.fixture
def client(session_factory, activity: RecordingActivity) -> Iterator[TestClient]:
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_activity_recorder] = lambda: activity
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(role: str) -> dict[str, str]:
        token = create_access_token(uuid.uuid4(), role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
