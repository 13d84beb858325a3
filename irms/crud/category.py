# irms/crud/category.py
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from irms.models.category import IncidentCategory
from irms.models.incident import Incident
from irms.schemas.category import CategoryCreate


def get_category(db: Session, category_id: int) -> Optional[IncidentCategory]:
    return db.get(IncidentCategory, category_id)


def get_category_by_name(db: Session, name: str) -> Optional[IncidentCategory]:
    return db.query(IncidentCategory).filter(IncidentCategory.name == name).first()


def list_categories_with_counts(db: Session) -> List[Dict]:
    incidents_count = (
        select(func.count(Incident.id))
        .where(Incident.category_id == IncidentCategory.id)
        .correlate(IncidentCategory)
        .scalar_subquery()
    )
    rows = (
        db.query(IncidentCategory, incidents_count.label("incidents_count"))
        .order_by(IncidentCategory.name.asc())
        .all()
    )
    return [
        {
            "id": c.id,
            "name": c.name,
            "description": c.description,
            "created_at": c.created_at,
            "updated_at": c.updated_at,
            "incidents_count": n,
        }
        for c, n in rows
    ]


def incidents_using(db: Session, category_id: int) -> int:
    return db.query(Incident).filter(Incident.category_id == category_id).count()


def create_category(db: Session, payload: CategoryCreate) -> IncidentCategory:
    obj = IncidentCategory(name=payload.name, description=payload.description)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_category(db: Session, obj: IncidentCategory, data: Dict) -> IncidentCategory:
    for k, v in data.items():
        setattr(obj, k, v)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_category(db: Session, obj: IncidentCategory) -> None:
    db.delete(obj)
    db.commit()
