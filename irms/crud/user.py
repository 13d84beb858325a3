# irms/crud/user.py
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from irms.core.security import get_password_hash
from irms.crud.common import ilike_any, paginate
from irms.models.comment import Comment
from irms.models.incident import Incident
from irms.models.risk import Risk
from irms.models.task import Task
from irms.models.user import User
from irms.schemas.user import UserCreate


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()


def list_users(
    db: Session,
    scope,
    role: Optional[str] = None,
    department_id: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Tuple[List[User], Dict[str, int]]:
    q = db.query(User).options(joinedload(User.department)).filter(scope)
    if role:
        q = q.filter(User.role == role)
    if department_id:
        q = q.filter(User.department_id == department_id)
    if search:
        q = q.filter(ilike_any(search, User.name, User.email))
    q = q.order_by(User.name.asc(), User.id.asc())
    return paginate(q, page, limit)


def create_user(db: Session, payload: UserCreate, rounds: int = 12) -> User:
    obj = User(
        name=payload.name,
        email=payload.email.lower(),
        password_hash=get_password_hash(payload.password, rounds=rounds),
        role=payload.role,
        department_id=payload.department_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_user(db: Session, obj: User, data: Dict[str, Any], rounds: int = 12) -> List[str]:
    """Apply `data`; returns the changed field names (password never echoed)."""
    changed = []
    data = dict(data)
    password = data.pop("password", None)
    if password:
        obj.password_hash = get_password_hash(password, rounds=rounds)
        changed.append("password")
    for k, v in data.items():
        if getattr(obj, k) != v:
            setattr(obj, k, v)
            changed.append(k)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return changed


def touch_last_login(db: Session, obj: User) -> None:
    obj.last_login_at = datetime.utcnow()
    db.add(obj)
    db.commit()


def dependents(db: Session, user_id: int) -> Dict[str, int]:
    """Records that would be orphaned by deleting this user."""
    return {
        "incidents": db.query(Incident)
        .filter(or_(Incident.reported_by_id == user_id, Incident.assigned_to_id == user_id))
        .count(),
        "risks": db.query(Risk).filter(Risk.owner_id == user_id).count(),
        "tasks": db.query(Task)
        .filter(or_(Task.assigned_to_id == user_id, Task.created_by_id == user_id))
        .count(),
        "comments": db.query(Comment).filter(Comment.author_id == user_id).count(),
    }


def delete_user(db: Session, obj: User) -> None:
    db.delete(obj)
    db.commit()
