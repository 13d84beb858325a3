# irms/crud/task.py
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from irms.crud.common import apply_changes, paginate
from irms.models.task import Task
from irms.schemas.task import TaskCreate

_OPTIONS = (
    joinedload(Task.assigned_to),
    joinedload(Task.related_incident),
    joinedload(Task.related_risk),
)


def get_task(db: Session, task_id: int) -> Optional[Task]:
    return db.query(Task).options(*_OPTIONS).filter(Task.id == task_id).first()


def list_tasks(
    db: Session,
    scope,
    status: Optional[str] = None,
    assigned_to_id: Optional[int] = None,
    related_incident_id: Optional[int] = None,
    related_risk_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Task], Dict[str, int]]:
    q = db.query(Task).options(joinedload(Task.assigned_to)).filter(scope)

    if status:
        q = q.filter(Task.status == status)
    if assigned_to_id:
        q = q.filter(Task.assigned_to_id == assigned_to_id)
    if related_incident_id:
        q = q.filter(Task.related_incident_id == related_incident_id)
    if related_risk_id:
        q = q.filter(Task.related_risk_id == related_risk_id)

    # due soonest first, undated last; tie-breaker on id
    q = q.order_by(
        Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.desc(), Task.id.asc()
    )
    return paginate(q, page, limit)


def create_task(db: Session, payload: TaskCreate, created_by_id: int) -> Task:
    obj = Task(
        title=payload.title,
        description=payload.description,
        status="TODO",
        assigned_to_id=payload.assigned_to_id,
        created_by_id=created_by_id,
        related_incident_id=payload.related_incident_id,
        related_risk_id=payload.related_risk_id,
        due_date=payload.due_date,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_task(db: Session, obj: Task, data: Dict[str, Any]) -> List[str]:
    # task status has no side effects
    changed = apply_changes(obj, data)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return changed


def delete_task(db: Session, obj: Task) -> None:
    db.delete(obj)
    db.commit()
