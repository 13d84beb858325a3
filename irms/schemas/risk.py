# irms/schemas/risk.py
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, conint, constr

from irms.schemas.common import DepartmentRef, Pagination, RiskLevel, RiskStatus, UserRef
from irms.schemas.incident import IncidentCommentOut, IncidentTaskOut

Title = constr(strip_whitespace=True, min_length=5, max_length=200)
Description = constr(strip_whitespace=True, min_length=20, max_length=5000)
RiskCategory = constr(strip_whitespace=True, min_length=2, max_length=100)
Plan = constr(strip_whitespace=True, max_length=5000)


class RiskCreate(BaseModel):
    """The owner is the authenticated user; status starts at OPEN."""
    title: Title
    description: Description
    category: RiskCategory = Field(..., description="Free-text risk category")
    likelihood: RiskLevel = "MEDIUM"
    impact: RiskLevel = "MEDIUM"
    department_id: conint(ge=1)
    mitigation_plan: Optional[Plan] = None


class RiskUpdate(BaseModel):
    title: Optional[Title] = None
    description: Optional[Description] = None
    category: Optional[RiskCategory] = None
    likelihood: Optional[RiskLevel] = None
    impact: Optional[RiskLevel] = None
    status: Optional[RiskStatus] = None
    mitigation_plan: Optional[Plan] = None
    ai_mitigation_suggestions: Optional[str] = None


class RiskOut(BaseModel):
    id: int
    title: str
    description: str
    category: str
    likelihood: RiskLevel
    impact: RiskLevel
    status: RiskStatus
    department_id: int
    owner_id: int
    mitigation_plan: Optional[str] = None
    ai_mitigation_suggestions: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    department: Optional[DepartmentRef] = None
    owner: Optional[UserRef] = None

    class Config:
        from_attributes = True


class RiskDetail(RiskOut):
    tasks: List[IncidentTaskOut] = []
    comments: List[IncidentCommentOut] = []


class RiskPage(BaseModel):
    data: List[RiskOut]
    pagination: Pagination
