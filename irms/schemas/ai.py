# irms/schemas/ai.py
from typing import List, Optional

from pydantic import BaseModel, Field, conint, constr

from irms.schemas.common import RiskLevel, Severity


class AnalyzeIncidentRequest(BaseModel):
    title: constr(strip_whitespace=True, min_length=5, max_length=200)
    description: constr(strip_whitespace=True, min_length=20, max_length=5000)
    category: Optional[constr(max_length=100)] = None
    department: Optional[constr(max_length=100)] = None
    incident_id: Optional[conint(ge=1)] = Field(
        None, description="When set, the suggestion is stored on this incident"
    )


class AnalyzeIncidentOut(BaseModel):
    severity: Severity
    summary: str
    actions: List[str]
    saved: bool = False


class MitigationRequest(BaseModel):
    title: constr(strip_whitespace=True, min_length=5, max_length=200)
    description: constr(strip_whitespace=True, min_length=20, max_length=5000)
    category: constr(strip_whitespace=True, min_length=2, max_length=100)
    likelihood: RiskLevel = "MEDIUM"
    impact: RiskLevel = "MEDIUM"
    risk_id: Optional[conint(ge=1)] = None


class MitigationOut(BaseModel):
    suggestions: List[str]
    saved: bool = False
