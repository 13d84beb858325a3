# irms/models/incident.py
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

INCIDENT_STATUS = ("NEW", "IN_REVIEW", "IN_PROGRESS", "RESOLVED", "CLOSED")
INCIDENT_TERMINAL_STATUS = ("RESOLVED", "CLOSED")
SEVERITY = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


class Incident(Base):
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)

    # NEW | IN_REVIEW | IN_PROGRESS | RESOLVED | CLOSED
    status = Column(String(20), nullable=False, default="NEW", index=True)
    # LOW | MEDIUM | HIGH | CRITICAL
    severity = Column(String(20), nullable=False, default="MEDIUM", index=True)

    # Scoping
    category_id = Column(
        Integer, ForeignKey("incident_categories.id"), nullable=True, index=True
    )
    department_id = Column(
        Integer, ForeignKey("departments.id"), nullable=False, index=True
    )
    reported_by_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    occurred_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    # stamped once on the first transition into a terminal status
    resolved_at = Column(DateTime, nullable=True)

    # AI advisory output (optional)
    ai_summary = Column(Text, nullable=True)
    ai_severity_suggestion = Column(String(20), nullable=True)
    ai_recommended_actions = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    category = relationship("IncidentCategory", back_populates="incidents")
    department = relationship("Department", back_populates="incidents")
    reported_by = relationship("User", foreign_keys=[reported_by_id])
    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    tasks = relationship(
        "Task",
        back_populates="related_incident",
        order_by="Task.created_at.desc()",
    )
    comments = relationship(
        "Comment",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="Comment.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(
            f"status IN {INCIDENT_STATUS}", name="ck_incidents_status_allowed"
        ),
        CheckConstraint(
            f"severity IN {SEVERITY}", name="ck_incidents_severity_allowed"
        ),
        Index("ix_incidents_department_status", "department_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Incident id={self.id} department={self.department_id} "
            f"severity={self.severity!r} status={self.status!r}>"
        )
