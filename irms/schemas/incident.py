# irms/schemas/incident.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, conint, constr

from irms.schemas.common import (
    CategoryRef,
    DepartmentRef,
    IncidentStatus,
    Pagination,
    Severity,
    UserRef,
)

Title = constr(strip_whitespace=True, min_length=5, max_length=200)
Description = constr(strip_whitespace=True, min_length=20, max_length=5000)


class IncidentCreate(BaseModel):
    """
    Create payload. The reporter is the authenticated user; status starts at NEW.
    """
    title: Title
    description: Description
    severity: Severity = Field("MEDIUM", description="Impact level of the incident")
    category_id: Optional[conint(ge=1)] = None
    department_id: conint(ge=1) = Field(..., description="Owning department")
    assigned_to_id: Optional[conint(ge=1)] = Field(
        None, description="Ignored unless the caller may assign incidents"
    )
    occurred_at: Optional[datetime] = Field(
        None, description="When the incident occurred; defaults to now"
    )


class IncidentUpdate(BaseModel):
    """
    Partial update payload. All fields optional.
    status / assigned_to_id are dropped for callers without the matching right.
    """
    title: Optional[Title] = None
    description: Optional[Description] = None
    status: Optional[IncidentStatus] = None
    severity: Optional[Severity] = None
    category_id: Optional[conint(ge=1)] = None
    assigned_to_id: Optional[conint(ge=1)] = None
    occurred_at: Optional[datetime] = None
    ai_summary: Optional[str] = None
    ai_severity_suggestion: Optional[Severity] = None
    ai_recommended_actions: Optional[str] = None


class IncidentOut(BaseModel):
    id: int
    title: str
    description: str
    status: IncidentStatus
    severity: Severity
    category_id: Optional[int] = None
    department_id: int
    reported_by_id: int
    assigned_to_id: Optional[int] = None
    occurred_at: datetime
    resolved_at: Optional[datetime] = None
    ai_summary: Optional[str] = None
    ai_severity_suggestion: Optional[str] = None
    ai_recommended_actions: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    category: Optional[CategoryRef] = None
    department: Optional[DepartmentRef] = None
    reported_by: Optional[UserRef] = None
    assigned_to: Optional[UserRef] = None

    class Config:
        from_attributes = True


class IncidentTaskOut(BaseModel):
    id: int
    title: str
    status: str
    assigned_to_id: int
    due_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class IncidentCommentOut(BaseModel):
    id: int
    body: str
    author: Optional[UserRef] = None
    created_at: datetime

    class Config:
        from_attributes = True


class IncidentDetail(IncidentOut):
    tasks: List[IncidentTaskOut] = []
    comments: List[IncidentCommentOut] = []


class IncidentPage(BaseModel):
    data: List[IncidentOut]
    pagination: Pagination
