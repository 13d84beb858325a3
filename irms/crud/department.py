# irms/crud/department.py
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from irms.models.department import Department
from irms.models.incident import Incident
from irms.models.risk import Risk
from irms.models.user import User
from irms.schemas.department import DepartmentCreate


def get_department(db: Session, department_id: int) -> Optional[Department]:
    return db.get(Department, department_id)


def get_department_by_name(db: Session, name: str) -> Optional[Department]:
    # exact, case-sensitive match
    return db.query(Department).filter(Department.name == name).first()


def _count(model, column):
    return (
        select(func.count(model.id))
        .where(column == Department.id)
        .correlate(Department)
        .scalar_subquery()
    )


def list_departments_with_counts(db: Session) -> List[Dict]:
    rows = (
        db.query(
            Department,
            _count(User, User.department_id).label("users_count"),
            _count(Incident, Incident.department_id).label("incidents_count"),
            _count(Risk, Risk.department_id).label("risks_count"),
        )
        .order_by(Department.name.asc())
        .all()
    )
    out = []
    for dept, users_count, incidents_count, risks_count in rows:
        out.append(
            {
                "id": dept.id,
                "name": dept.name,
                "description": dept.description,
                "created_at": dept.created_at,
                "updated_at": dept.updated_at,
                "users_count": users_count,
                "incidents_count": incidents_count,
                "risks_count": risks_count,
            }
        )
    return out


def dependents(db: Session, department_id: int) -> Dict[str, int]:
    """Rows that still reference the department; any non-zero blocks deletion."""
    return {
        "users": db.query(User).filter(User.department_id == department_id).count(),
        "incidents": db.query(Incident)
        .filter(Incident.department_id == department_id)
        .count(),
        "risks": db.query(Risk).filter(Risk.department_id == department_id).count(),
    }


def create_department(db: Session, payload: DepartmentCreate) -> Department:
    obj = Department(name=payload.name, description=payload.description)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_department(db: Session, obj: Department, data: Dict) -> Department:
    for k, v in data.items():
        setattr(obj, k, v)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_department(db: Session, obj: Department) -> None:
    db.delete(obj)
    db.commit()
