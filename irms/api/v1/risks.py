# irms/api/v1/risks.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import not_found, validation_failed
from irms.core.permissions import allowed_scope, ensure_access
from irms.crud import department as department_crud
from irms.crud import risk as crud
from irms.models.risk import Risk
from irms.models.user import User
from irms.schemas.common import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    Message,
    RiskLevel,
    RiskStatus,
)
from irms.schemas.risk import RiskCreate, RiskDetail, RiskOut, RiskPage, RiskUpdate
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/risks", tags=["risks"])

_NOT_NULLABLE = ("title", "description", "category", "likelihood", "impact", "status")


def _get_or_404(db: Session, risk_id: int, detail: bool = False) -> Risk:
    obj = crud.get_risk(db, risk_id, detail=detail)
    if not obj:
        raise not_found("Risk")
    return obj


@router.get("", response_model=RiskPage)
def list_risks(
    status_: Optional[RiskStatus] = Query(None, alias="status"),
    likelihood: Optional[RiskLevel] = Query(None),
    impact: Optional[RiskLevel] = Query(None),
    department_id: Optional[int] = Query(None, ge=1),
    owner_id: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows, pagination = crud.list_risks(
        db,
        allowed_scope(current_user, Risk),
        status=status_,
        likelihood=likelihood,
        impact=impact,
        department_id=department_id,
        owner_id=owner_id,
        search=search,
        page=page,
        limit=limit,
    )
    return {"data": [RiskOut.model_validate(r) for r in rows], "pagination": pagination}


@router.post("", response_model=RiskOut, status_code=status.HTTP_201_CREATED)
def create_risk(
    payload: RiskCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Register a risk; the caller becomes its owner. Managers only in their own department."""
    ensure_access(
        current_user,
        "risk",
        "create",
        {"department_id": payload.department_id},
        detail="You cannot create risks for this department",
    )
    if not department_crud.get_department(db, payload.department_id):
        raise validation_failed("department_id", "Department does not exist")

    obj = crud.create_risk(db, payload, owner_id=current_user.id)
    audit_log(
        db,
        entity_type="RISK",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={
            "title": obj.title,
            "likelihood": obj.likelihood,
            "impact": obj.impact,
            "department_id": obj.department_id,
        },
        ip=ip_from_request(request),
    )
    return RiskOut.model_validate(obj)


@router.get("/{risk_id}", response_model=RiskDetail)
def get_risk(
    risk_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = _get_or_404(db, risk_id, detail=True)
    ensure_access(current_user, "risk", "read", obj)
    return RiskDetail.model_validate(obj)


@router.patch("/{risk_id}", response_model=RiskOut)
def update_risk(
    risk_id: int,
    payload: RiskUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Entering MITIGATED or CLOSED stamps resolved_at once."""
    obj = _get_or_404(db, risk_id)
    ensure_access(current_user, "risk", "write", obj)

    data = payload.model_dump(exclude_unset=True)
    for key in _NOT_NULLABLE:
        if key in data and data[key] is None:
            data.pop(key)

    old_status = obj.status
    changed = crud.update_risk(db, obj, data)

    audit_update(
        db,
        entity_type="RISK",
        entity_id=obj.id,
        actor_id=current_user.id,
        changes=changed,
        old_status=old_status,
        new_status=obj.status,
        ip=ip_from_request(request),
    )
    return RiskOut.model_validate(obj)


@router.delete("/{risk_id}", response_model=Message)
def delete_risk(
    risk_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    obj = _get_or_404(db, risk_id)
    ensure_access(current_user, "risk", "delete", obj)

    title = obj.title
    crud.delete_risk(db, obj)
    audit_log(
        db,
        entity_type="RISK",
        entity_id=risk_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"title": title},
        ip=ip_from_request(request),
    )
    return Message(message="Risk deleted", id=risk_id)
