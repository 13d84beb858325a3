# irms/schemas/category.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, constr


class CategoryCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=2, max_length=100)
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class CategoryUpdate(BaseModel):
    name: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = None
    description: Optional[constr(strip_whitespace=True, max_length=500)] = None


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CategoryWithCounts(CategoryOut):
    incidents_count: int = 0
