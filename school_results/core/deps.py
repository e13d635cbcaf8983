from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from school_results.core import security
from school_results.core.config import settings
from school_results.core.db import get_db
from school_results.schemas.auth import Actor, TokenPayload
from school_results.services.activity_service import ActivityRecorder, DatabaseActivityRecorder
from school_results.services.compilation_service import CompilationService
from school_results.services.entity_lookup import SqlAlchemyEntityLookup
from school_results.services.lifecycle_service import LifecycleService
from school_results.services.result_service import ResultService
from school_results.services.result_store import SqlAlchemyResultStore

ROLE_ADMIN = "admin"
ROLE_FORM_TEACHER = "form teacher"
ROLE_SUBJECT_TEACHER = "subject teacher"

STAFF_ROLES = {ROLE_ADMIN, ROLE_FORM_TEACHER, ROLE_SUBJECT_TEACHER}

reusable_oauth2 = OAuth2PasswordBearer(tokenUrl="/api/v1/login/access-token")


def get_current_actor(token: str = Depends(reusable_oauth2)) -> Actor:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[security.ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    if not token_data.sub or not token_data.role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    return Actor(id=token_data.sub, role=token_data.role.casefold())


def require_roles(actor: Actor, allowed: set[str]) -> str:
    if actor.role not in {r.casefold() for r in allowed}:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return actor.role


def get_current_staff(actor: Actor = Depends(get_current_actor)) -> Actor:
    require_roles(actor, STAFF_ROLES)
    return actor


def get_current_form_teacher(actor: Actor = Depends(get_current_actor)) -> Actor:
    require_roles(actor, {ROLE_ADMIN, ROLE_FORM_TEACHER})
    return actor


def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    require_roles(actor, {ROLE_ADMIN})
    return actor


def get_activity_recorder() -> ActivityRecorder:
    return DatabaseActivityRecorder()


def get_lifecycle_service(
    db: Session = Depends(get_db),
    activity: ActivityRecorder = Depends(get_activity_recorder),
) -> LifecycleService:
    return LifecycleService(SqlAlchemyResultStore(db), SqlAlchemyEntityLookup(db), activity)


def get_result_service(
    db: Session = Depends(get_db),
    activity: ActivityRecorder = Depends(get_activity_recorder),
) -> ResultService:
    store = SqlAlchemyResultStore(db)
    lookup = SqlAlchemyEntityLookup(db)
    return ResultService(store, lookup, activity, LifecycleService(store, lookup, activity))


def get_compilation_service(db: Session = Depends(get_db)) -> CompilationService:
    return CompilationService(SqlAlchemyResultStore(db), SqlAlchemyEntityLookup(db))
