import uuid
from decimal import Decimal

import pytest

from school_results.core.errors import NotFoundError, ResultsLockedError
from school_results.schemas.result import BulkResultCreate, ResultCreate, ResultFilter
from school_results.services.lifecycle_service import (
    LifecycleService,
    ResultState,
    derive_scope_state,
    derive_state,
)
from school_results.services.result_service import ResultService


@pytest.fixture
def lifecycle(store, school, activity):
    return LifecycleService(store, school.lookup(), activity)


@pytest.fixture
def service(store, school, activity, lifecycle):
    return ResultService(store, school.lookup(), activity, lifecycle)


def _create(school, student_id, assessment, score, subject_id=None) -> ResultCreate:
    return ResultCreate(
        student_id=student_id,
        subject_id=subject_id or school.math_id,
        class_id=school.class_id,
        teacher_id=school.teacher_id,
        session_id=school.session_id,
        term_id=school.term_id,
        assessment_id=assessment.id,
        score=Decimal(str(score)),
    )


def test_derive_state():
    assert derive_state(False, False) == ResultState.OPEN
    assert derive_state(True, False) == ResultState.APPROVED
    assert derive_state(False, True) == ResultState.LOCKED
    assert derive_state(True, True) == ResultState.LOCKED


def test_scope_state_of_empty_scope_is_open(lifecycle, school):
    assert derive_scope_state([]) == ResultState.OPEN
    assert lifecycle.scope_state(school.class_id, school.math_id, school.term_id) == ResultState.OPEN


def test_lock_rejects_writes_and_leaves_store_unchanged(service, lifecycle, store, school):
    student = school.students[0]
    original = service.submit_score(_create(school, student, school.test1, 7))

    locked = lifecycle.lock(school.class_id, school.term_id, school.math_id)
    assert locked == 1
    assert lifecycle.scope_state(school.class_id, school.math_id, school.term_id) == ResultState.LOCKED

    with pytest.raises(ResultsLockedError):
        service.submit_score(_create(school, student, school.test1, 9))
    with pytest.raises(ResultsLockedError):
        service.update_score(original.id, Decimal("9"))
    with pytest.raises(ResultsLockedError):
        service.remove_score(original.id)

    assert store.get(original.id).score == Decimal("7")


def test_unlock_then_write_succeeds(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 7))
    lifecycle.lock(school.class_id, school.term_id, school.math_id)

    unlocked = lifecycle.unlock(school.class_id, school.term_id, school.math_id)
    assert unlocked == 1

    saved = service.submit_score(_create(school, student, school.test1, 9))
    assert saved.score == Decimal("9")
    assert not saved.is_locked


def test_approve_is_idempotent_and_survives_lock_cycle(service, lifecycle, store, school):
    for student in school.students:
        service.submit_score(_create(school, student, school.exam, 40))

    assert lifecycle.approve(school.class_id, school.math_id, school.term_id) == 3
    assert lifecycle.approve(school.class_id, school.math_id, school.term_id) == 3
    assert lifecycle.scope_state(school.class_id, school.math_id, school.term_id) == ResultState.APPROVED

    lifecycle.lock(school.class_id, school.term_id, school.math_id)
    lifecycle.unlock(school.class_id, school.term_id, school.math_id)

    rows = store.find_by(ResultFilter(class_id=school.class_id, subject_id=school.math_id))
    assert all(row.is_approved for row in rows)
    assert not any(row.is_locked for row in rows)


def test_approval_does_not_block_writes(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 5))
    lifecycle.approve(school.class_id, school.math_id, school.term_id)

    saved = service.submit_score(_create(school, student, school.test1, 6))
    assert saved.score == Decimal("6")
    assert saved.is_approved


def test_approve_on_empty_scope_affects_nothing(lifecycle, school):
    assert lifecycle.approve(school.class_id, school.math_id, school.term_id) == 0


def test_class_wide_lock_covers_every_subject(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 5))
    service.submit_score(_create(school, student, school.test1, 5, subject_id=school.english_id))

    assert lifecycle.lock(school.class_id, school.term_id) == 2
    assert lifecycle.scope_state(school.class_id, school.english_id, school.term_id) == ResultState.LOCKED

    with pytest.raises(ResultsLockedError):
        service.submit_score(_create(school, student, school.test2, 5, subject_id=school.english_id))


def test_subject_lock_on_only_subject_leaves_new_subjects_open(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 5))

    lifecycle.lock(school.class_id, school.term_id, school.math_id)

    assert lifecycle.scope_state(school.class_id, school.english_id, school.term_id) == ResultState.OPEN
    saved = service.submit_score(_create(school, student, school.test1, 6, subject_id=school.english_id))
    assert saved.score == Decimal("6")


def test_class_wide_lock_covers_subjects_without_rows(service, lifecycle, school):
    service.submit_score(_create(school, school.students[0], school.test1, 5))

    lifecycle.lock(school.class_id, school.term_id)

    assert lifecycle.scope_state(school.class_id, school.english_id, school.term_id) == ResultState.LOCKED
    with pytest.raises(ResultsLockedError):
        service.submit_score(_create(school, school.students[1], school.test1, 5, subject_id=school.english_id))


def test_subject_unlock_keeps_class_wide_lock(service, lifecycle, school):
    service.submit_score(_create(school, school.students[0], school.test1, 5))
    lifecycle.lock(school.class_id, school.term_id)

    lifecycle.unlock(school.class_id, school.term_id, school.math_id)
    assert lifecycle.scope_state(school.class_id, school.math_id, school.term_id) == ResultState.LOCKED

    lifecycle.unlock(school.class_id, school.term_id)
    assert lifecycle.scope_state(school.class_id, school.math_id, school.term_id) == ResultState.OPEN
    assert service.submit_score(_create(school, school.students[0], school.test1, 7)).score == Decimal("7")


def test_subject_lock_leaves_other_subjects_open(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 5))
    service.submit_score(_create(school, student, school.test1, 5, subject_id=school.english_id))

    lifecycle.lock(school.class_id, school.term_id, school.math_id)

    saved = service.submit_score(_create(school, student, school.test2, 8, subject_id=school.english_id))
    assert saved.score == Decimal("8")


def test_partially_locked_batch_writes_nothing(service, lifecycle, store, school):
    first, second = school.students[0], school.students[1]
    service.submit_score(_create(school, first, school.test1, 5))
    service.submit_score(_create(school, first, school.test1, 5, subject_id=school.english_id))
    lifecycle.lock(school.class_id, school.term_id, school.math_id)

    # second student has no rows yet and must not get any
    store_before = store.find_by(ResultFilter())
    with pytest.raises(ResultsLockedError) as excinfo:
        service.submit_bulk(
            BulkResultCreate(
                subject_id=school.math_id,
                class_id=school.class_id,
                teacher_id=school.teacher_id,
                session_id=school.session_id,
                term_id=school.term_id,
                assessment_id=school.test2.id,
                scores=[
                    {"student_id": first, "score": "6"},
                    {"student_id": second, "score": "7"},
                ],
            )
        )
    assert excinfo.value.context["scopes"][0]["subject_id"] == str(school.math_id)
    assert store.find_by(ResultFilter()) == store_before


def test_ensure_writable_reports_every_locked_scope(service, lifecycle, school):
    student = school.students[0]
    service.submit_score(_create(school, student, school.test1, 5))
    service.submit_score(_create(school, student, school.test1, 5, subject_id=school.english_id))
    lifecycle.lock(school.class_id, school.term_id, school.math_id)

    scopes = [
        entry.scope
        for entry in service.list_results(ResultFilter(student_id=student))
    ]
    locked = lifecycle.locked_scopes(scopes)
    assert [scope.subject_id for scope in locked] == [school.math_id]


def test_lifecycle_events_are_recorded(service, lifecycle, activity, school):
    service.submit_score(_create(school, school.students[0], school.test1, 5))
    lifecycle.approve(school.class_id, school.math_id, school.term_id, actor_id="admin-1", actor_role="admin")
    lifecycle.lock(school.class_id, school.term_id, actor_id="admin-1", actor_role="admin")
    lifecycle.unlock(school.class_id, school.term_id, actor_id="admin-1", actor_role="admin")

    assert activity.types == ["result_entered", "result_published", "result_locked", "result_unlocked"]
    locked_event = activity.events[2]
    assert locked_event.user_id == "admin-1"
    assert "subject_id" not in locked_event.details


@pytest.mark.parametrize(
    ("field", "entity"),
    [("class_id", "Class"), ("subject_id", "Subject"), ("term_id", "Term")],
)
def test_lifecycle_rejects_unknown_scope(lifecycle, activity, school, field, entity):
    scope = {"class_id": school.class_id, "subject_id": school.math_id, "term_id": school.term_id}
    scope[field] = uuid.uuid4()

    for action in (
        lambda: lifecycle.approve(scope["class_id"], scope["subject_id"], scope["term_id"]),
        lambda: lifecycle.lock(scope["class_id"], scope["term_id"], scope["subject_id"]),
        lambda: lifecycle.unlock(scope["class_id"], scope["term_id"], scope["subject_id"]),
    ):
        with pytest.raises(NotFoundError) as excinfo:
            action()
        assert excinfo.value.entity == entity

    assert activity.events == []
