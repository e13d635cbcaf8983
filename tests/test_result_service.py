import uuid
from decimal import Decimal

import pytest

from school_results.core.errors import ConflictError, NotFoundError, ScoreValidationError
from school_results.schemas.result import BulkResultCreate, ResultCreate, ResultFilter
from school_results.services.result_service import ResultService


class ExplodingActivity:
    def record(self, event):
        raise RuntimeError("activity feed is down")


@pytest.fixture
def service(store, school, activity):
    return ResultService(store, school.lookup(), activity)


def _create(school, student_id, assessment, score, /, **overrides) -> ResultCreate:
    fields = {
        "student_id": student_id,
        "subject_id": school.math_id,
        "class_id": school.class_id,
        "teacher_id": school.teacher_id,
        "session_id": school.session_id,
        "term_id": school.term_id,
        "assessment_id": assessment.id,
        "score": Decimal(str(score)),
    }
    fields.update(overrides)
    return ResultCreate(**fields)


def _bulk(school, assessment, scores) -> BulkResultCreate:
    return BulkResultCreate(
        subject_id=school.math_id,
        class_id=school.class_id,
        teacher_id=school.teacher_id,
        session_id=school.session_id,
        term_id=school.term_id,
        assessment_id=assessment.id,
        scores=[{"student_id": sid, "score": str(score)} for sid, score in scores],
    )


def test_submit_score_creates_open_row(service, school, activity):
    saved = service.submit_score(_create(school, school.students[0], school.test1, 7), actor_id="t-1")

    assert saved.id is not None
    assert saved.score == Decimal("7")
    assert not saved.is_approved
    assert not saved.is_locked
    assert activity.types == ["result_entered"]
    assert activity.events[0].user_id == "t-1"


def test_resubmission_overwrites_score(service, store, school, activity):
    first = service.submit_score(_create(school, school.students[0], school.test1, 7))
    second = service.submit_score(_create(school, school.students[0], school.test1, 4))

    assert second.id == first.id
    assert second.score == Decimal("4")
    assert len(store.find_by(ResultFilter())) == 1
    assert activity.types == ["result_entered", "result_updated"]


def test_score_above_max_is_rejected(service, store, school):
    with pytest.raises(ScoreValidationError) as excinfo:
        service.submit_score(_create(school, school.students[0], school.test1, "10.5"))

    assert "exceeds the maximum" in excinfo.value.message
    assert excinfo.value.failures[0]["student_id"] == str(school.students[0])
    assert store.find_by(ResultFilter()) == []


def test_score_at_max_is_accepted(service, school):
    saved = service.submit_score(_create(school, school.students[0], school.exam, 60))
    assert saved.score == Decimal("60")


@pytest.mark.parametrize(
    ("field", "entity"),
    [
        ("student_id", "Student"),
        ("subject_id", "Subject"),
        ("class_id", "Class"),
        ("teacher_id", "Teacher"),
        ("term_id", "Term"),
        ("session_id", "Session"),
        ("assessment_id", "Assessment"),
    ],
)
def test_unknown_reference_is_not_found(service, school, field, entity):
    payload = _create(school, school.students[0], school.test1, 5, **{field: uuid.uuid4()})
    with pytest.raises(NotFoundError) as excinfo:
        service.submit_score(payload)
    assert excinfo.value.entity == entity


def test_bulk_submission_writes_every_row(service, store, school, activity):
    saved = service.submit_bulk(
        _bulk(school, school.exam, [(sid, 40 + i) for i, sid in enumerate(school.students)])
    )

    assert [row.score for row in saved] == [Decimal("40"), Decimal("41"), Decimal("42")]
    assert len(store.find_by(ResultFilter(assessment_id=school.exam.id))) == 3
    assert activity.types == ["result_entered"]
    assert activity.events[0].details["count"] == 3


def test_bulk_with_one_invalid_row_writes_nothing(service, store, school, activity):
    first, second, third = school.students
    stranger = uuid.uuid4()

    with pytest.raises(ScoreValidationError) as excinfo:
        service.submit_bulk(_bulk(school, school.test1, [(first, 8), (second, 11), (third, 9), (stranger, 3)]))

    failures = {f["student_id"]: f["error"] for f in excinfo.value.failures}
    assert set(failures) == {str(second), str(stranger)}
    assert failures[str(stranger)] == "Student not found"
    assert store.find_by(ResultFilter()) == []
    assert activity.events == []


def test_bulk_with_duplicate_student_is_a_conflict(service, store, school):
    student = school.students[0]
    with pytest.raises(ConflictError) as excinfo:
        service.submit_bulk(_bulk(school, school.test1, [(student, 5), (student, 6)]))

    assert excinfo.value.context["student_ids"] == [str(student)]
    assert store.find_by(ResultFilter()) == []


def test_bulk_resubmission_overwrites(service, store, school):
    service.submit_bulk(_bulk(school, school.test2, [(sid, 5) for sid in school.students]))
    service.submit_bulk(_bulk(school, school.test2, [(sid, 9) for sid in school.students]))

    rows = store.find_by(ResultFilter(assessment_id=school.test2.id))
    assert len(rows) == 3
    assert {row.score for row in rows} == {Decimal("9")}


@pytest.mark.parametrize("field", ["class_id", "teacher_id", "session_id"])
def test_resubmission_under_other_attribution_is_a_conflict(store, school, activity, field):
    lookup = school.lookup()
    other = uuid.uuid4()
    lookup.classes.add(other)
    lookup.teachers.add(other)
    lookup.sessions.add(other)
    service = ResultService(store, lookup, activity)
    first = service.submit_score(_create(school, school.students[0], school.test1, 7))

    with pytest.raises(ConflictError) as excinfo:
        service.submit_score(_create(school, school.students[0], school.test1, 3, **{field: other}))

    assert excinfo.value.context["fields"] == [field]
    assert store.get(first.id).score == Decimal("7")
    assert getattr(store.get(first.id), field) == getattr(school, field)
    assert activity.types == ["result_entered"]


def test_bulk_resubmission_under_other_teacher_writes_nothing(store, school):
    lookup = school.lookup()
    other_teacher = uuid.uuid4()
    lookup.teachers.add(other_teacher)
    service = ResultService(store, lookup)
    first = school.students[0]
    service.submit_score(_create(school, first, school.test2, 4))

    payload = _bulk(school, school.test2, [(sid, 8) for sid in school.students])
    with pytest.raises(ConflictError) as excinfo:
        service.submit_bulk(payload.model_copy(update={"teacher_id": other_teacher}))

    assert excinfo.value.context["student_ids"] == [str(first)]
    rows = store.find_by(ResultFilter(assessment_id=school.test2.id))
    assert [(row.student_id, row.score) for row in rows] == [(first, Decimal("4"))]


def test_update_score(service, school, activity):
    saved = service.submit_score(_create(school, school.students[0], school.exam, 30))

    updated = service.update_score(saved.id, Decimal("45.5"))

    assert updated.id == saved.id
    assert updated.score == Decimal("45.5")
    assert activity.types[-1] == "result_updated"

    with pytest.raises(ScoreValidationError):
        service.update_score(saved.id, Decimal("61"))


def test_remove_score(service, store, school, activity):
    saved = service.submit_score(_create(school, school.students[0], school.exam, 30))

    service.remove_score(saved.id, actor_id="admin-1", actor_role="admin")

    assert store.get(saved.id) is None
    assert activity.types[-1] == "result_deleted"
    with pytest.raises(NotFoundError):
        service.remove_score(saved.id)


def test_get_unknown_result_is_not_found(service):
    with pytest.raises(NotFoundError) as excinfo:
        service.get(uuid.uuid4())
    assert excinfo.value.message == "Result not found"


def test_failing_activity_recorder_keeps_the_write(store, school):
    service = ResultService(store, school.lookup(), ExplodingActivity())

    saved = service.submit_score(_create(school, school.students[0], school.test1, 6))

    assert store.get(saved.id).score == Decimal("6")
