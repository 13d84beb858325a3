# irms/models/risk.py
from __future__ import annotations
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from irms.db.base import Base

RISK_STATUS = ("OPEN", "MONITORING", "MITIGATED", "CLOSED")
RISK_TERMINAL_STATUS = ("MITIGATED", "CLOSED")
# likelihood and impact share the same scale
RISK_LEVEL = ("LOW", "MEDIUM", "HIGH")


class Risk(Base):
    __tablename__ = "risks"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    # free text, not a foreign key
    category = Column(String(100), nullable=False, index=True)

    likelihood = Column(String(10), nullable=False, default="MEDIUM")
    impact = Column(String(10), nullable=False, default="MEDIUM")
    status = Column(String(20), nullable=False, default="OPEN", index=True)

    department_id = Column(
        Integer, ForeignKey("departments.id"), nullable=False, index=True
    )
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    mitigation_plan = Column(Text, nullable=True)
    ai_mitigation_suggestions = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    department = relationship("Department", back_populates="risks")
    owner = relationship("User", foreign_keys=[owner_id])
    tasks = relationship(
        "Task",
        back_populates="related_risk",
        order_by="Task.created_at.desc()",
    )
    comments = relationship(
        "Comment",
        back_populates="risk",
        cascade="all, delete-orphan",
        order_by="Comment.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(f"status IN {RISK_STATUS}", name="ck_risks_status_allowed"),
        CheckConstraint(
            f"likelihood IN {RISK_LEVEL}", name="ck_risks_likelihood_allowed"
        ),
        CheckConstraint(f"impact IN {RISK_LEVEL}", name="ck_risks_impact_allowed"),
        Index("ix_risks_department_status", "department_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Risk id={self.id} title={self.title!r} status={self.status}>"
