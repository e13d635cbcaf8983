import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status

from school_results.core.deps import (
    get_compilation_service,
    get_current_admin,
    get_current_form_teacher,
    get_current_staff,
    get_lifecycle_service,
    get_result_service,
)
from school_results.core.errors import (
    ConflictError,
    NotFoundError,
    ResultsError,
    ResultsLockedError,
    ScoreValidationError,
)
from school_results.schemas.auth import Actor
from school_results.schemas.report import (
    ClassCompilation,
    ResultStatistics,
    StudentSubjectReport,
    SubjectLeaderboard,
)
from school_results.schemas.result import (
    ApproveRequest,
    BulkResultCreate,
    LifecycleResponse,
    LockRequest,
    ResultCreate,
    ResultFilter,
    ResultUpdate,
    ScoreEntry,
)
from school_results.services.compilation_service import CompilationService
from school_results.services.lifecycle_service import LifecycleService
from school_results.services.result_service import ResultService

router = APIRouter(prefix="/results", tags=["results"])


def _http_error(exc: ResultsError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, ResultsLockedError):
        return HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={"message": exc.message, **exc.context},
        )
    if isinstance(exc, ScoreValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": exc.message, "failures": exc.failures},
        )
    if isinstance(exc, ConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.message, **exc.context},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)


@router.post("", response_model=ScoreEntry, status_code=status.HTTP_201_CREATED)
def create_result(
    payload: ResultCreate,
    actor: Actor = Depends(get_current_staff),
    service: ResultService = Depends(get_result_service),
):
    try:
        return service.submit_score(payload, actor_id=actor.id, actor_role=actor.role)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.post("/bulk", response_model=list[ScoreEntry], status_code=status.HTTP_201_CREATED)
def bulk_create_results(
    payload: BulkResultCreate,
    actor: Actor = Depends(get_current_staff),
    service: ResultService = Depends(get_result_service),
):
    try:
        return service.submit_bulk(payload, actor_id=actor.id, actor_role=actor.role)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.get("", response_model=list[ScoreEntry])
def list_results(
    student_id: uuid.UUID | None = None,
    subject_id: uuid.UUID | None = None,
    class_id: uuid.UUID | None = None,
    teacher_id: uuid.UUID | None = None,
    session_id: uuid.UUID | None = None,
    term_id: uuid.UUID | None = None,
    assessment_id: uuid.UUID | None = None,
    is_approved: bool | None = None,
    is_locked: bool | None = None,
    limit: int = Query(50, ge=1, le=500),
    _: Actor = Depends(get_current_staff),
    service: ResultService = Depends(get_result_service),
):
    query = ResultFilter(
        student_id=student_id,
        subject_id=subject_id,
        class_id=class_id,
        teacher_id=teacher_id,
        session_id=session_id,
        term_id=term_id,
        assessment_id=assessment_id,
        is_approved=is_approved,
        is_locked=is_locked,
    )
    return service.list_results(query, limit=limit)


@router.get("/statistics", response_model=ResultStatistics)
def get_statistics(
    session_id: uuid.UUID | None = None,
    term_id: uuid.UUID | None = None,
    _: Actor = Depends(get_current_admin),
    service: CompilationService = Depends(get_compilation_service),
):
    return service.result_statistics(session_id=session_id, term_id=term_id)


@router.get("/student/{student_id}", response_model=StudentSubjectReport)
def get_student_results(
    student_id: uuid.UUID,
    term_id: uuid.UUID,
    session_id: uuid.UUID,
    _: Actor = Depends(get_current_staff),
    service: CompilationService = Depends(get_compilation_service),
):
    try:
        return service.student_subject_report(student_id, term_id, session_id)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.get("/class/{class_id}/subject/{subject_id}", response_model=SubjectLeaderboard)
def get_class_subject_results(
    class_id: uuid.UUID,
    subject_id: uuid.UUID,
    term_id: uuid.UUID,
    session_id: uuid.UUID,
    _: Actor = Depends(get_current_staff),
    service: CompilationService = Depends(get_compilation_service),
):
    try:
        return service.class_subject_leaderboard(class_id, subject_id, term_id, session_id)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.get("/form-teacher/{class_id}", response_model=ClassCompilation)
def get_form_teacher_compilation(
    class_id: uuid.UUID,
    term_id: uuid.UUID,
    session_id: uuid.UUID,
    _: Actor = Depends(get_current_form_teacher),
    service: CompilationService = Depends(get_compilation_service),
):
    try:
        return service.class_compilation(class_id, term_id, session_id)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.post("/approve", response_model=LifecycleResponse)
def approve_results(
    payload: ApproveRequest,
    actor: Actor = Depends(get_current_admin),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    try:
        count = lifecycle.approve(
            payload.class_id,
            payload.subject_id,
            payload.term_id,
            actor_id=actor.id,
            actor_role=actor.role,
        )
    except ResultsError as exc:
        raise _http_error(exc) from exc
    state = lifecycle.scope_state(payload.class_id, payload.subject_id, payload.term_id)
    return LifecycleResponse(message="Results approved successfully", affected=count, state=state.value)


@router.post("/lock", response_model=LifecycleResponse)
def lock_results(
    payload: LockRequest,
    actor: Actor = Depends(get_current_admin),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    try:
        count = lifecycle.lock(
            payload.class_id,
            payload.term_id,
            payload.subject_id,
            actor_id=actor.id,
            actor_role=actor.role,
        )
    except ResultsError as exc:
        raise _http_error(exc) from exc
    return LifecycleResponse(message="Results locked successfully", affected=count)


@router.post("/unlock", response_model=LifecycleResponse)
def unlock_results(
    payload: LockRequest,
    actor: Actor = Depends(get_current_admin),
    lifecycle: LifecycleService = Depends(get_lifecycle_service),
):
    try:
        count = lifecycle.unlock(
            payload.class_id,
            payload.term_id,
            payload.subject_id,
            actor_id=actor.id,
            actor_role=actor.role,
        )
    except ResultsError as exc:
        raise _http_error(exc) from exc
    return LifecycleResponse(message="Results unlocked successfully", affected=count)


@router.get("/{result_id}", response_model=ScoreEntry)
def get_result(
    result_id: uuid.UUID,
    _: Actor = Depends(get_current_staff),
    service: ResultService = Depends(get_result_service),
):
    try:
        return service.get(result_id)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.patch("/{result_id}", response_model=ScoreEntry)
def update_result(
    result_id: uuid.UUID,
    payload: ResultUpdate,
    actor: Actor = Depends(get_current_staff),
    service: ResultService = Depends(get_result_service),
):
    try:
        return service.update_score(result_id, payload.score, actor_id=actor.id, actor_role=actor.role)
    except ResultsError as exc:
        raise _http_error(exc) from exc


@router.delete("/{result_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_result(
    result_id: uuid.UUID,
    actor: Actor = Depends(get_current_admin),
    service: ResultService = Depends(get_result_service),
):
    try:
        service.remove_score(result_id, actor_id=actor.id, actor_role=actor.role)
    except ResultsError as exc:
        raise _http_error(exc) from exc
    return None
