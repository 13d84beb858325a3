# irms/api/v1/categories.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from irms.core.auth import get_current_user, get_db
from irms.core.errors import conflict, not_found
from irms.core.permissions import ensure_access
from irms.crud import category as crud
from irms.models.category import IncidentCategory
from irms.models.user import User
from irms.schemas.category import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    CategoryWithCounts,
)
from irms.schemas.common import Message
from irms.services.audit import audit_log, audit_update, ip_from_request

router = APIRouter(prefix="/categories", tags=["categories"])


def _get_or_404(db: Session, category_id: int) -> IncidentCategory:
    obj = crud.get_category(db, category_id)
    if not obj:
        raise not_found("Category")
    return obj


@router.get("", response_model=List[CategoryWithCounts])
def list_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "category", "read")
    return crud.list_categories_with_counts(db)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "category", "create")
    if crud.get_category_by_name(db, payload.name):
        raise conflict("A category with this name already exists")

    obj = crud.create_category(db, payload)
    audit_log(
        db,
        entity_type="CATEGORY",
        entity_id=obj.id,
        action="CREATED",
        actor_id=current_user.id,
        meta={"name": obj.name},
        ip=ip_from_request(request),
    )
    return obj


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "category", "read")
    return _get_or_404(db, category_id)


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "category", "write")
    obj = _get_or_404(db, category_id)

    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is None:
        data.pop("name", None)
    if "name" in data and data["name"] != obj.name:
        if crud.get_category_by_name(db, data["name"]):
            raise conflict("A category with this name already exists")

    changed = [k for k, v in data.items() if getattr(obj, k) != v]
    obj = crud.update_category(db, obj, data)
    audit_update(
        db,
        entity_type="CATEGORY",
        entity_id=obj.id,
        actor_id=current_user.id,
        changes=changed,
        ip=ip_from_request(request),
    )
    return obj


@router.delete("/{category_id}", response_model=Message)
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_access(current_user, "category", "delete")
    obj = _get_or_404(db, category_id)

    in_use = crud.incidents_using(db, obj.id)
    if in_use:
        raise conflict("Category is used by incidents and cannot be deleted", {"incidents": in_use})

    name = obj.name
    crud.delete_category(db, obj)
    audit_log(
        db,
        entity_type="CATEGORY",
        entity_id=category_id,
        action="DELETED",
        actor_id=current_user.id,
        meta={"name": name},
        ip=ip_from_request(request),
    )
    return Message(message="Category deleted", id=category_id)
