# irms/api/v1/departments.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import conflict, not_found
from irms.core.permissions import ensure_access
from irms.crud import department as crud
from irms.models.department import Department
from irms.models.user import User
from irms.schemas.common import Message
from irms.schemas.department import (
    DepartmentCreate,
    DepartmentOut,
    DepartmentUpdate,
    DepartmentWithCounts,
)
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/departments", tags=["departments"])


def _get_or_404(db: Session, department_id: int) -> Department:
    obj = crud.get_department(db, department_id)
    if not obj:
        raise not_found("Department")
    return obj


@router.get("", response_model=List[DepartmentWithCounts])
def list_departments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """All departments ordered by name, with dependent counts. Not paginated."""
    ensure_access(current_user, "department", "read")
    return crud.list_departments_with_counts(db)


@router.post("", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "department", "create")
    if crud.get_department_by_name(db, payload.name):
        raise conflict("A department with this name already exists")

    obj = crud.create_department(db, payload)
    audit_log(
        db,
        entity_type="DEPARTMENT",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={"name": obj.name},
        ip=ip_from_request(request),
    )
    return obj


@router.get("/{department_id}", response_model=DepartmentOut)
def get_department(
    department_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "department", "read")
    return _get_or_404(db, department_id)


@router.patch("/{department_id}", response_model=DepartmentOut)
def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "department", "write")
    obj = _get_or_404(db, department_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is None:
        data.pop("name", None)
    if "name" in data and data["name"] != obj.name:
        if crud.get_department_by_name(db, data["name"]):
            raise conflict("A department with this name already exists")

    changed = [k for k, v in data.items() if getattr(obj, k) != v]
    obj = crud.update_department(db, obj, data)
    audit_update(
        db,
        entity_type="DEPARTMENT",
        entity_id=obj.id,
        actor_id=current_user.id,
        changes=changed,
        ip=ip_from_request(request),
    )
    return obj


@router.delete("/{department_id}", response_model=Message)
def delete_department(
    department_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Refused with 409 while users, incidents or risks still reference it."""
    ensure_access(current_user, "department", "delete")
    obj = _get_or_404(db, department_id)

    blocking = {k: v for k, v in crud.dependents(db, obj.id).items() if v}
    if blocking:
        raise conflict("Department has dependent records and cannot be deleted", blocking)

    name = obj.name
    crud.delete_department(db, obj)
    audit_log(
        db,
        entity_type="DEPARTMENT",
        entity_id=department_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"name": name},
        ip=ip_from_request(request),
    )
    return Message(message="Department deleted", id=department_id)
