# irms/crud/incident.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from irms.crud.common import apply_changes, ilike_any, paginate, stamp_resolved
from irms.models.comment import Comment
from irms.models.incident import INCIDENT_TERMINAL_STATUS, Incident
from irms.schemas.incident import IncidentCreate

_LIST_OPTIONS = (
    joinedload(Incident.category),
    joinedload(Incident.department),
    joinedload(Incident.reported_by),
    joinedload(Incident.assigned_to),
)


def get_incident(db: Session, incident_id: int, detail: bool = False) -> Optional[Incident]:
    q = db.query(Incident).options(*_LIST_OPTIONS)
    if detail:
        q = q.options(
            selectinload(Incident.tasks),
            selectinload(Incident.comments).joinedload(Comment.author),
        )
    return q.filter(Incident.id == incident_id).first()


def list_incidents(
    db: Session,
    scope,
    status: Optional[str] = None,
    severity: Optional[str] = None,
    department_id: Optional[int] = None,
    category_id: Optional[int] = None,
    reported_by_id: Optional[int] = None,
    assigned_to_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Incident], Dict[str, int]]:
    # filters narrow `scope`, never widen it
    q = db.query(Incident).options(*_LIST_OPTIONS).filter(scope)

    if status:
        q = q.filter(Incident.status == status)
    if severity:
        q = q.filter(Incident.severity == severity)
    if department_id:
        q = q.filter(Incident.department_id == department_id)
    if category_id:
        q = q.filter(Incident.category_id == category_id)
    if reported_by_id:
        q = q.filter(Incident.reported_by_id == reported_by_id)
    if assigned_to_id:
        q = q.filter(Incident.assigned_to_id == assigned_to_id)
    if search:
        q = q.filter(ilike_any(search, Incident.title, Incident.description))

    q = q.order_by(Incident.created_at.desc(), Incident.id.desc())
    return paginate(q, page, limit)


def create_incident(
    db: Session,
    payload: IncidentCreate,
    reported_by_id: int,
    assigned_to_id: Optional[int] = None,
) -> Incident:
    obj = Incident(
        title=payload.title,
        description=payload.description,
        severity=payload.severity,
        category_id=payload.category_id,
        department_id=payload.department_id,
        reported_by_id=reported_by_id,
        assigned_to_id=assigned_to_id,
        occurred_at=payload.occurred_at or datetime.utcnow(),
        status="NEW",
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_incident(db: Session, obj: Incident, data: Dict[str, Any]) -> List[str]:
    """Apply permitted fields and stamp resolved_at on entering a terminal status."""
    old_status = obj.status
    changed = apply_changes(obj, data)
    stamp_resolved(obj, old_status, INCIDENT_TERMINAL_STATUS)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return changed


def delete_incident(db: Session, obj: Incident) -> None:
    # comments cascade; linked tasks are unlinked by the relationship
    for task in list(obj.tasks):
        task.related_incident_id = None
    db.delete(obj)
    db.commit()
