# irms/crud/audit_log.py
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from irms.crud.common import paginate
from irms.models.audit_log import AuditLog


def list_audit_logs(
    db: Session,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    actor_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[AuditLog], Dict[str, int]]:
    q = db.query(AuditLog)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditLog.entity_id == entity_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if actor_id is not None:
        q = q.filter(AuditLog.actor_id == actor_id)
    q = q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return paginate(q, page, limit)
