# irms/schemas/task.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, constr, model_validator

from irms.schemas.common import Pagination, TaskStatus, UserRef

TaskTitle = constr(strip_whitespace=True, min_length=3, max_length=200)
TaskDescription = constr(strip_whitespace=True, max_length=2000)


class TaskCreate(BaseModel):
    title: TaskTitle = Field(..., description="Short task title.")
    description: Optional[TaskDescription] = Field(None, description="Task details.")
    assigned_to_id: conint(ge=1) = Field(..., description="Assignee user ID.")
    related_incident_id: Optional[conint(ge=1)] = None
    related_risk_id: Optional[conint(ge=1)] = None
    due_date: Optional[datetime] = Field(None, description="Due date/time (ISO 8601).")

    @model_validator(mode="after")
    def _single_link(self):
        if self.related_incident_id is not None and self.related_risk_id is not None:
            raise ValueError("A task can be linked to an incident or a risk, not both")
        return self


class TaskUpdate(BaseModel):
    # All optional for PATCH; employees may only change status
    title: Optional[TaskTitle] = None
    description: Optional[TaskDescription] = None
    status: Optional[TaskStatus] = None
    assigned_to_id: Optional[conint(ge=1)] = None
    due_date: Optional[datetime] = None


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus
    assigned_to_id: int
    created_by_id: Optional[int] = None
    related_incident_id: Optional[int] = None
    related_risk_id: Optional[int] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    assigned_to: Optional[UserRef] = None


class TaskPage(BaseModel):
    data: List[TaskOut]
    pagination: Pagination
