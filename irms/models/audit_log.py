# irms/models/audit_log.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    JSON,
    Index,
    event,
)

from irms.db.base import Base

AUDIT_ACTIONS = (
    "CREATED",
    "UPDATED",
    "DELETED",
    "STATUS_CHANGED",
    "ASSIGNED",
    "AI_ANALYZED",
    "LOGIN",
    "LOGOUT",
)
AUDIT_ENTITY_TYPES = (
    "INCIDENT",
    "RISK",
    "TASK",
    "USER",
    "DEPARTMENT",
    "CATEGORY",
    "COMMENT",
    "AUTH",
)


class AuditLog(Base):
    """
    Append-only audit record.

    NOTE:
    - entity_id is not a foreign key: the entity may be deleted later and the
      trail has to survive it.
    - actor_id is not a foreign key either: deleting a user must not rewrite
      the rows they produced.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    entity_type = Column(String(20), nullable=False, index=True)
    entity_id = Column(Integer, nullable=True, index=True)
    action = Column(String(30), nullable=False, index=True)
    actor_id = Column(Integer, nullable=True, index=True)

    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=True)
    ip_address = Column(String(64), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self) -> str:
        return (
            f"<AuditLog id={self.id} {self.entity_type}:{self.entity_id} "
            f"action={self.action} actor={self.actor_id}>"
        )


Index("ix_audit_logs_entity", AuditLog.entity_type, AuditLog.entity_id)


@event.listens_for(AuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise ValueError("Audit log entries are immutable")


@event.listens_for(AuditLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise ValueError("Audit log entries cannot be deleted")
