# irms/schemas/user.py
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, conint, constr, field_validator

from irms.schemas.common import DepartmentRef, Pagination, Role

PASSWORD_RULES = (
    (re.compile(r".{8,}"), "Password must be at least 8 characters"),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[0-9]"), "Password must contain at least one number"),
)


def check_password_strength(value: str) -> str:
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(value):
            raise ValueError(message)
    return value


class UserCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., max_length=128)
    role: Role = "EMPLOYEE"
    department_id: Optional[conint(ge=1)] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class UserUpdate(BaseModel):
    """
    Partial update. Non-admin callers may only touch name, email and password;
    anything else is dropped server-side.
    """
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, max_length=128)
    role: Optional[Role] = None
    department_id: Optional[conint(ge=1)] = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password_strength(v) if v is not None else v


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    department_id: Optional[int] = None
    department: Optional[DepartmentRef] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserPage(BaseModel):
    data: List[UserOut]
    pagination: Pagination
