# irms/crud/comment.py
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from irms.models.comment import Comment
from irms.schemas.comment import CommentCreate


def get_comment(db: Session, comment_id: int) -> Optional[Comment]:
    return db.get(Comment, comment_id)


def list_comments(
    db: Session, incident_id: Optional[int] = None, risk_id: Optional[int] = None
) -> List[Comment]:
    q = db.query(Comment).options(joinedload(Comment.author))
    if incident_id is not None:
        q = q.filter(Comment.incident_id == incident_id)
    else:
        q = q.filter(Comment.risk_id == risk_id)
    return q.order_by(Comment.created_at.desc(), Comment.id.desc()).all()


def create_comment(db: Session, payload: CommentCreate, author_id: int) -> Comment:
    obj = Comment(
        body=payload.body,
        author_id=author_id,
        incident_id=payload.incident_id,
        risk_id=payload.risk_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_comment(db: Session, obj: Comment) -> None:
    db.delete(obj)
    db.commit()
