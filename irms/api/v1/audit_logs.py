# irms/api/v1/audit_logs.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.permissions import ensure_access
from irms.crud.audit_log import list_audit_logs
from irms.models.user import User
from irms.schemas.audit_log import AuditLogOut, AuditLogPage
from irms.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/audit", tags=["audit"])

EntityType = Literal["INCIDENT", "RISK", "TASK", "USER", "DEPARTMENT", "CATEGORY", "COMMENT", "AUTH"]
Action = Literal[
    "CREATED",
    "UPDATED",
    "DELETED",
    "STATUS_CHANGED",
    "ASSIGNED",
    "AI_ANALYZED",
    "LOGIN",
    "LOGOUT",
]


@router.get("/logs", response_model=AuditLogPage)
def get_audit_logs(
    entity_type: Optional[EntityType] = Query(None),
    entity_id: Optional[int] = Query(None, ge=1),
    action: Optional[Action] = Query(None),
    actor_id: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Read-only, newest first. Admins only."""
    ensure_access(current_user, "audit", "read", detail="Admin privileges required")
    rows, pagination = list_audit_logs(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        page=page,
        limit=limit,
    )
    return {"data": [AuditLogOut.model_validate(r) for r in rows], "pagination": pagination}
