# irms/models/task.py
from datetime import datetime
from typing import Set

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

TASK_STATUS = ("TODO", "IN_PROGRESS", "DONE")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)

    # TODO | IN_PROGRESS | DONE
    status = Column(String(20), nullable=False, default="TODO", index=True)

    assigned_to_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # at most one of these is set
    related_incident_id = Column(
        Integer, ForeignKey("incidents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    related_risk_id = Column(
        Integer, ForeignKey("risks.id", ondelete="SET NULL"), nullable=True, index=True
    )

    due_date = Column(DateTime, nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    assigned_to = relationship("User", foreign_keys=[assigned_to_id])
    created_by = relationship("User", foreign_keys=[created_by_id], viewonly=True)
    related_incident = relationship("Incident", back_populates="tasks")
    related_risk = relationship("Risk", back_populates="tasks")

    __table_args__ = (
        CheckConstraint(f"status IN {TASK_STATUS}", name="ck_tasks_status_allowed"),
        CheckConstraint(
            "related_incident_id IS NULL OR related_risk_id IS NULL",
            name="ck_tasks_single_link",
        ),
        Index("ix_tasks_assignee_status", "assigned_to_id", "status"),
    )

    @property
    def department_ids(self) -> Set[int]:
        """Departments a task belongs to: its assignee's and its linked record's."""
        ids = set()
        if self.assigned_to is not None and self.assigned_to.department_id:
            ids.add(self.assigned_to.department_id)
        if self.related_incident is not None:
            ids.add(self.related_incident.department_id)
        if self.related_risk is not None:
            ids.add(self.related_risk.department_id)
        return ids

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} status={self.status} due={self.due_date}>"
