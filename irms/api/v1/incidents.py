# irms/api/v1/incidents.py
from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import not_found, validation_failed
from irms.core.permissions import (
    allowed_scope,
    ensure_access,
    resolve_access,
    strip_incident_update,
)
from irms.crud import category as category_crud
from irms.crud import department as department_crud
from irms.crud import incident as crud
from irms.crud import user as user_crud
from irms.models.incident import Incident
from irms.models.user import User
from irms.schemas.common import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    IncidentStatus,
    Message,
    Severity,
)
from irms.schemas.incident import (
    IncidentCreate,
    IncidentDetail,
    IncidentOut,
    IncidentPage,
    IncidentUpdate,
)
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/incidents", tags=["incidents"])

# columns that cannot be cleared through PATCH
_NOT_NULLABLE = ("title", "description", "status", "severity", "occurred_at")


def _to_out(i: Incident) -> IncidentOut:
    return IncidentOut.model_validate(i)


def _get_or_404(db: Session, incident_id: int, detail: bool = False) -> Incident:
    obj = crud.get_incident(db, incident_id, detail=detail)
    if not obj:
        raise not_found("Incident")
    return obj


def _check_references(
    db: Session, actor: User, data: Dict[str, Any], current_assignee: Optional[int] = None
) -> None:
    """Referenced rows must exist and a new assignee must be assignable by `actor`."""
    if data.get("department_id") is not None and not department_crud.get_department(
        db, data["department_id"]
    ):
        raise validation_failed("department_id", "Department does not exist")
    if data.get("category_id") is not None and not category_crud.get_category(
        db, data["category_id"]
    ):
        raise validation_failed("category_id", "Category does not exist")
    assignee_id = data.get("assigned_to_id")
    if assignee_id is None or assignee_id == current_assignee:
        return
    assignee = user_crud.get_user(db, assignee_id)
    if not assignee:
        raise validation_failed("assigned_to_id", "Assignee does not exist")
    ensure_access(
        actor,
        "incident",
        "assign",
        {"department_id": assignee.department_id},
        detail="You can only assign incidents within your department",
    )


# ---------------------------
# LIST
# ---------------------------
@router.get("", response_model=IncidentPage)
def list_incidents(
    status_: Optional[IncidentStatus] = Query(None, alias="status"),
    severity: Optional[Severity] = Query(None),
    department_id: Optional[int] = Query(None, ge=1),
    category_id: Optional[int] = Query(None, ge=1),
    reported_by_id: Optional[int] = Query(None, ge=1),
    assigned_to_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Incidents visible to the caller: all for admins, own department (plus
    anything they reported or are assigned) for managers, own for employees.
    """
    rows, pagination = crud.list_incidents(
        db,
        allowed_scope(current_user, Incident),
        status=status_,
        severity=severity,
        department_id=department_id,
        category_id=category_id,
        reported_by_id=reported_by_id,
        assigned_to_id=assigned_to_id,
        search=search,
        page=page,
        limit=limit,
    )
    return {"data": [_to_out(i) for i in rows], "pagination": pagination}


# ---------------------------
# CREATE
# ---------------------------
@router.post("", response_model=IncidentOut, status_code=status.HTTP_201_CREATED)
def create_incident(
    payload: IncidentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Report an incident. The reporter is the caller. Managers and employees
    can only report into their own department. An assignee is only kept
    when the caller may assign incidents in that department. Managers can only
    pick an assignee from their own department.
    """
    target = {"department_id": payload.department_id}
    ensure_access(
        current_user,
        "incident",
        "create",
        target,
        detail="You can only report incidents for your own department",
    )

    assigned_to_id = payload.assigned_to_id
    if assigned_to_id is not None and not resolve_access(
        current_user, "incident", "assign", target
    ):
        assigned_to_id = None

    _check_references(
        db,
        current_user,
        {
            "department_id": payload.department_id,
            "category_id": payload.category_id,
            "assigned_to_id": assigned_to_id,
        },
    )

    obj = crud.create_incident(db, payload, current_user.id, assigned_to_id)

    audit_log(
        db,
        entity_type="INCIDENT",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={
            "title": obj.title,
            "severity": obj.severity,
            "department_id": obj.department_id,
        },
        ip=ip_from_request(request),
    )
    if obj.assigned_to_id is not None:
        audit_log(
            db,
            entity_type="INCIDENT",
            entity_id=obj.id,
            action="ASSIGNED",
            actor_id=current_user.id,
            meta={"from": None, "to": obj.assigned_to_id},
            ip=ip_from_request(request),
        )
    return _to_out(obj)


# ---------------------------
# READ (by id)
# ---------------------------
@router.get("/{incident_id}", response_model=IncidentDetail)
def get_incident(
    incident_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = _get_or_404(db, incident_id, detail=True)
    ensure_access(current_user, "incident", "read", obj)
    return IncidentDetail.model_validate(obj)


# ---------------------------
# UPDATE (partial)
# ---------------------------
@router.patch("/{incident_id}", response_model=IncidentOut)
def update_incident(
    incident_id: int,
    payload: IncidentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    status / assigned_to_id are silently dropped when the caller lacks the
    right to change them. A manager may only hand the incident to someone
    in their own department. Entering RESOLVED or CLOSED stamps resolved_at
    once.
    """
    obj = _get_or_404(db, incident_id)
    ensure_access(current_user, "incident", "write", obj)

    data = payload.model_dump(exclude_unset=True)
    for key in _NOT_NULLABLE:
        if key in data and data[key] is None:
            data.pop(key)
    data = strip_incident_update(current_user, obj, data)
    _check_references(db, current_user, data, current_assignee=obj.assigned_to_id)

    old_status, old_assignee = obj.status, obj.assigned_to_id
    changed = crud.update_incident(db, obj, data)

    audit_update(
        db,
        entity_type="INCIDENT",
        entity_id=obj.id,
        actor_id=current_user.id,
        changes=changed,
        old_status=old_status,
        new_status=obj.status,
        old_assignee=old_assignee,
        new_assignee=obj.assigned_to_id,
        ip=ip_from_request(request),
    )
    return _to_out(obj)


# ---------------------------
# DELETE
# ---------------------------
@router.delete("/{incident_id}", response_model=Message)
def delete_incident(
    incident_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Admin only. Comments go with the incident; linked tasks are kept and unlinked."""
    obj = _get_or_404(db, incident_id)
    ensure_access(current_user, "incident", "delete", obj)

    title = obj.title
    crud.delete_incident(db, obj)

    audit_log(
        db,
        entity_type="INCIDENT",
        entity_id=incident_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"title": title},
        ip=ip_from_request(request),
    )
    return Message(message="Incident deleted", id=incident_id)
