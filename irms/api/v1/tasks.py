# irms/api/v1/tasks.py
from typing import Optional, Set

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import not_found, validation_failed
from irms.core.permissions import allowed_scope, ensure_access, strip_task_update
from irms.crud import incident as incident_crud
from irms.crud import risk as risk_crud
from irms.crud import task as crud
from irms.crud import user as user_crud
from irms.models.task import Task
from irms.models.user import User
from irms.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Message, TaskStatus
from irms.schemas.task import TaskCreate, TaskOut, TaskPage, TaskUpdate
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/tasks", tags=["tasks"])

_NOT_NULLABLE = ("title", "status", "assigned_to_id")


def _get_or_404(db: Session, task_id: int) -> Task:
    obj = crud.get_task(db, task_id)
    if not obj:
        raise not_found("Task")
    return obj


def _load_assignee(db: Session, user_id: int) -> User:
    u = user_crud.get_user(db, user_id)
    if not u:
        raise validation_failed("assigned_to_id", "Assignee does not exist")
    return u


@router.get("", response_model=TaskPage)
def list_tasks(
    status_: Optional[TaskStatus] = Query(None, alias="status"),
    assigned_to_id: Optional[int] = Query(None, ge=1),
    related_incident_id: Optional[int] = Query(None, ge=1),
    related_risk_id: Optional[int] = Query(None, ge=1),
    mine: bool = Query(False, description="Only tasks assigned to the caller"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if mine:
        assigned_to_id = current_user.id
    rows, pagination = crud.list_tasks(
        db,
        allowed_scope(current_user, Task),
        status=status_,
        assigned_to_id=assigned_to_id,
        related_incident_id=related_incident_id,
        related_risk_id=related_risk_id,
        page=page,
        limit=limit,
    )
    return {"data": [TaskOut.model_validate(t) for t in rows], "pagination": pagination}


@router.post("", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Create a task, optionally linked to one incident or one risk.
    Managers can only create tasks whose assignee and linked record sit in
    their own department.
    """
    assignee = _load_assignee(db, payload.assigned_to_id)
    departments: Set[Optional[int]] = {assignee.department_id}

    if payload.related_incident_id is not None:
        incident = incident_crud.get_incident(db, payload.related_incident_id)
        if not incident:
            raise validation_failed("related_incident_id", "Incident does not exist")
        departments.add(incident.department_id)
    if payload.related_risk_id is not None:
        risk = risk_crud.get_risk(db, payload.related_risk_id)
        if not risk:
            raise validation_failed("related_risk_id", "Risk does not exist")
        departments.add(risk.department_id)

    for dept in departments:
        ensure_access(
            current_user,
            "task",
            "create",
            {"department_id": dept},
            detail="You can only create tasks within your department",
        )

    obj = crud.create_task(db, payload, created_by_id=current_user.id)
    audit_log(
        db,
        entity_type="TASK",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={
            "title": obj.title,
            "assigned_to_id": obj.assigned_to_id,
            "related_incident_id": obj.related_incident_id,
            "related_risk_id": obj.related_risk_id,
        },
        ip=ip_from_request(request),
    )
    return TaskOut.model_validate(obj)


@router.get("/{task_id}", response_model=TaskOut)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = _get_or_404(db, task_id)
    ensure_access(current_user, "task", "read", obj)
    return TaskOut.model_validate(obj)


@router.patch("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    payload: TaskUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Assignees without assign rights can move the status and nothing else."""
    obj = _get_or_404(db, task_id)
    ensure_access(current_user, "task", "write", obj)

    data = payload.model_dump(exclude_unset=True)
    for key in _NOT_NULLABLE:
        if key in data and data[key] is None:
            data.pop(key)
    data = strip_task_update(current_user, obj, data)

    if "assigned_to_id" in data and data["assigned_to_id"] != obj.assigned_to_id:
        assignee = _load_assignee(db, data["assigned_to_id"])
        ensure_access(
            current_user,
            "task",
            "assign",
            {"department_id": assignee.department_id},
            detail="You can only assign tasks within your department",
        )

    old_status, old_assignee = obj.status, obj.assigned_to_id
    changed = crud.update_task(db, obj, data)

    audit_update(
        db,
        entity_type="TASK",
        entity_id=obj.id,
        actor_id=current_user.id,
        changes=changed,
        old_status=old_status,
        new_status=obj.status,
        old_assignee=old_assignee,
        new_assignee=obj.assigned_to_id,
        ip=ip_from_request(request),
    )
    return TaskOut.model_validate(obj)


@router.delete("/{task_id}", response_model=Message)
def delete_task(
    task_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = _get_or_404(db, task_id)
    ensure_access(current_user, "task", "delete", obj)

    title = obj.title
    crud.delete_task(db, obj)
    audit_log(
        db,
        entity_type="TASK",
        entity_id=task_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"title": title},
        ip=ip_from_request(request),
    )
    return Message(message="Task deleted", id=task_id)
