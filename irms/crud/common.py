# irms/crud/common.py
import math
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Query


def paginate(q: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    """
    Apply offset/limit to an already ordered query.
    Returns (rows, pagination) where pagination matches the API's list shape.
    """
    total = q.order_by(None).count()
    rows = q.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


def ilike_any(term: str, *columns) -> Any:
    """Case-insensitive partial match on any of `columns`, portable across SQLite/Postgres."""
    like_value = f"%{term.strip().lower()}%"
    return or_(*[func.lower(c).like(like_value) for c in columns])


def stamp_resolved(obj: Any, old_status: str, terminal: Sequence[str]) -> None:
    """
    Set resolved_at the first time the record enters a terminal status.
    Never clears or overwrites an existing value.
    """
    if old_status in terminal or obj.status not in terminal:
        return
    if obj.resolved_at is None:
        obj.resolved_at = datetime.utcnow()


def apply_changes(obj: Any, data: Dict[str, Any]) -> List[str]:
    """setattr each key; return the keys whose value actually changed."""
    changed = []
    for k, v in data.items():
        if getattr(obj, k) != v:
            setattr(obj, k, v)
            changed.append(k)
    return changed
