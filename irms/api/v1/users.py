# irms/api/v1/users.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db, get_settings
from irms.core.config import Settings
from irms.core.errors import conflict, not_found, validation_failed
from irms.core.permissions import allowed_scope, ensure_access, strip_user_update
from irms.crud import department as department_crud
from irms.crud import user as crud
from irms.models.user import User
from irms.schemas.common import MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE, Message, Role
from irms.schemas.user import UserCreate, UserOut, UserPage, UserUpdate
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> User:
    u = crud.get_user(db, user_id)
    if not u:
        raise not_found("User")
    return u


def _check_department(db: Session, department_id: Optional[int]) -> None:
    if department_id is not None and not department_crud.get_department(db, department_id):
        raise validation_failed("department_id", "Department does not exist")


def _check_email_free(db: Session, email: str, exclude_id: Optional[int] = None) -> None:
    existing = crud.get_user_by_email(db, email)
    if existing and existing.id != exclude_id:
        raise conflict("A user with this email already exists")


@router.get("", response_model=UserPage)
def list_users(
    role: Optional[Role] = Query(None),
    department_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows, pagination = crud.list_users(
        db,
        allowed_scope(current_user, User),
        role=role,
        department_id=department_id,
        search=search,
        page=page,
        limit=limit,
    )
    return {"data": [UserOut.model_validate(u) for u in rows], "pagination": pagination}


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "user", "create", {"department_id": payload.department_id})
    _check_email_free(db, payload.email)
    _check_department(db, payload.department_id)

    obj = crud.create_user(db, payload, rounds=settings.bcrypt_rounds)

    audit_log(
        db,
        entity_type="USER",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={"email": obj.email, "role": obj.role, "department_id": obj.department_id},
        ip=ip_from_request(request),
    )
    return UserOut.model_validate(obj)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = _get_user_or_404(db, user_id)
    ensure_access(current_user, "user", "read", u)
    return UserOut.model_validate(u)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    current_user: User = Depends(get_current_user),
):
    """
    Admins may change any field. Everyone else may only edit their own
    name, email and password; role and department_id are silently dropped.
    """
    u = _get_user_or_404(db, user_id)
    ensure_access(current_user, "user", "write", u)

    data = strip_user_update(current_user, u, payload.model_dump(exclude_unset=True))
    # null is not a valid value for these columns
    for key in ("name", "email", "password", "role"):
        if key in data and data[key] is None:
            data.pop(key)

    if "email" in data:
        _check_email_free(db, data["email"], exclude_id=u.id)
    if "department_id" in data:
        _check_department(db, data["department_id"])

    changed = crud.update_user(db, u, data, rounds=settings.bcrypt_rounds)

    audit_update(
        db,
        entity_type="USER",
        entity_id=u.id,
        actor_id=current_user.id,
        changes=changed,
        ip=ip_from_request(request),
    )
    return UserOut.model_validate(u)


@router.delete("/{user_id}", response_model=Message)
def delete_user(
    user_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    u = _get_user_or_404(db, user_id)
    ensure_access(current_user, "user", "delete", u)
    if u.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    blocking = {k: v for k, v in crud.dependents(db, u.id).items() if v}
    if blocking:
        raise conflict("User still owns records and cannot be deleted", blocking)

    email = u.email
    crud.delete_user(db, u)

    audit_log(
        db,
        entity_type="USER",
        entity_id=user_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"email": email},
        ip=ip_from_request(request),
    )
    return Message(message="User deleted", id=user_id)
