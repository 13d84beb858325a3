# irms/crud/risk.py
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload, selectinload

from irms.crud.common import apply_changes, ilike_any, paginate, stamp_resolved
from irms.models.comment import Comment
from irms.models.risk import RISK_TERMINAL_STATUS, Risk
from irms.schemas.risk import RiskCreate


def get_risk(db: Session, risk_id: int, detail: bool = False) -> Optional[Risk]:
    q = db.query(Risk).options(joinedload(Risk.department), joinedload(Risk.owner))
    if detail:
        q = q.options(
            selectinload(Risk.tasks),
            selectinload(Risk.comments).joinedload(Comment.author),
        )
    return q.filter(Risk.id == risk_id).first()


def list_risks(
    db: Session,
    scope,
    status: Optional[str] = None,
    likelihood: Optional[str] = None,
    impact: Optional[str] = None,
    department_id: Optional[int] = None,
    owner_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[Risk], Dict[str, int]]:
    q = (
        db.query(Risk)
        .options(joinedload(Risk.department), joinedload(Risk.owner))
        .filter(scope)
    )
    if status:
        q = q.filter(Risk.status == status)
    if likelihood:
        q = q.filter(Risk.likelihood == likelihood)
    if impact:
        q = q.filter(Risk.impact == impact)
    if department_id:
        q = q.filter(Risk.department_id == department_id)
    if owner_id:
        q = q.filter(Risk.owner_id == owner_id)
    if search:
        q = q.filter(ilike_any(search, Risk.title, Risk.description, Risk.category))

    q = q.order_by(Risk.created_at.desc(), Risk.id.desc())
    return paginate(q, page, limit)


def create_risk(db: Session, payload: RiskCreate, owner_id: int) -> Risk:
    obj = Risk(
        title=payload.title,
        description=payload.description,
        category=payload.category,
        likelihood=payload.likelihood,
        impact=payload.impact,
        department_id=payload.department_id,
        owner_id=owner_id,
        mitigation_plan=payload.mitigation_plan,
        status="OPEN",
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_risk(db: Session, obj: Risk, data: Dict[str, Any]) -> List[str]:
    old_status = obj.status
    changed = apply_changes(obj, data)
    stamp_resolved(obj, old_status, RISK_TERMINAL_STATUS)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return changed


def delete_risk(db: Session, obj: Risk) -> None:
    for task in list(obj.tasks):
        task.related_risk_id = None
    db.delete(obj)
    db.commit()
