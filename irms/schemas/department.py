# irms/schemas/department.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, constr


class DepartmentCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=2, max_length=100)
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class DepartmentUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class DepartmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DepartmentWithCounts(DepartmentOut):
    users_count: int = 0
    incidents_count: int = 0
    risks_count: int = 0
