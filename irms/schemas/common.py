# irms/schemas/common.py
from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["ADMIN", "MANAGER", "EMPLOYEE"]
Severity = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
IncidentStatus = Literal["NEW", "IN_REVIEW", "IN_PROGRESS", "RESOLVED", "CLOSED"]
RiskStatus = Literal["OPEN", "MONITORING", "MITIGATED", "CLOSED"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
TaskStatus = Literal["TODO", "IN_PROGRESS", "DONE"]

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class UserRef(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class DepartmentRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class CategoryRef(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class Message(BaseModel):
    message: str = Field(..., description="Human-readable outcome")
    id: Optional[int] = None
