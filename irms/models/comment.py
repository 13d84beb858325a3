# irms/models/comment.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from irms.db.base import Base


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    body = Column(Text, nullable=False)

    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    incident_id = Column(
        Integer, ForeignKey("incidents.id", ondelete="CASCADE"), nullable=True, index=True
    )
    risk_id = Column(
        Integer, ForeignKey("risks.id", ondelete="CASCADE"), nullable=True, index=True
    )

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    author = relationship("User")
    incident = relationship("Incident", back_populates="comments")
    risk = relationship("Risk", back_populates="comments")

    __table_args__ = (
        # exactly one parent
        CheckConstraint(
            "(incident_id IS NULL) <> (risk_id IS NULL)",
            name="ck_comments_single_parent",
        ),
    )

    def __repr__(self) -> str:
        return f"<Comment id={self.id} incident={self.incident_id} risk={self.risk_id}>"
