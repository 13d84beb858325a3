# irms/api/v1/comments.py
from typing import List, Optional, Tuple, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import not_found, validation_failed
from irms.core.permissions import ensure_access
from irms.crud import comment as crud
from irms.crud import incident as incident_crud
from irms.crud import risk as risk_crud
from irms.models.incident import Incident
from irms.models.risk import Risk
from irms.models.user import User
from irms.schemas.comment import CommentCreate, CommentOut
from irms.schemas.common import Message
from irms.services.audit import audit_log, ip_from_request

router = APIRouter(prefix="/comments", tags=["comments"])


def _load_parent(
    db: Session, incident_id: Optional[int], risk_id: Optional[int]
) -> Tuple[str, Union[Incident, Risk]]:
    """Comments live on exactly one incident or risk and inherit its access."""
    if incident_id is not None:
        parent = incident_crud.get_incident(db, incident_id)
        if not parent:
            raise validation_failed("incident_id", "Incident does not exist")
        return "incident", parent
    parent = risk_crud.get_risk(db, risk_id)
    if not parent:
        raise validation_failed("risk_id", "Risk does not exist")
    return "risk", parent


@router.get("", response_model=List[CommentOut])
def list_comments(
    incident_id: Optional[int] = Query(None, ge=1),
    risk_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if (incident_id is None) == (risk_id is None):
        raise HTTPException(
            status_code=400, detail="Provide exactly one of incident_id or risk_id"
        )
    kind, parent = _load_parent(db, incident_id, risk_id)
    ensure_access(current_user, kind, "read", parent)
    return [CommentOut.model_validate(c) for c in crud.list_comments(db, incident_id, risk_id)]


@router.post("", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    payload: CommentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    kind, parent = _load_parent(db, payload.incident_id, payload.risk_id)
    ensure_access(current_user, kind, "read", parent)

    obj = crud.create_comment(db, payload, author_id=current_user.id)
    audit_log(
        db,
        entity_type="COMMENT",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={"incident_id": obj.incident_id, "risk_id": obj.risk_id},
        ip=ip_from_request(request),
    )
    return CommentOut.model_validate(obj)


@router.delete("/{comment_id}", response_model=Message)
def delete_comment(
    comment_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = crud.get_comment(db, comment_id)
    if not obj:
        raise not_found("Comment")
    ensure_access(current_user, "comment", "delete", obj)

    meta = {"incident_id": obj.incident_id, "risk_id": obj.risk_id}
    crud.delete_comment(db, obj)
    audit_log(
        db,
        entity_type="COMMENT",
        entity_id=comment_id,
        action="DELETED",
        actor_id=current_user.id,
        meta=meta,
        ip=ip_from_request(request),
    )
    return Message(message="Comment deleted", id=comment_id)
