# irms/models/user.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from irms.db.base import Base

USER_ROLES = ("ADMIN", "MANAGER", "EMPLOYEE")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)

    name = Column(String(100), nullable=False)
    # stored lower-cased; uniqueness is case-insensitive in practice
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    # RBAC
    role = Column(String(20), nullable=False, default="EMPLOYEE", index=True)
    department_id = Column(
        Integer,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    department = relationship("Department", back_populates="users")

    __table_args__ = (
        CheckConstraint(f"role IN {USER_ROLES}", name="ck_users_role_allowed"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
