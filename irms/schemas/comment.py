# irms/schemas/comment.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, conint, constr, model_validator

from irms.schemas.common import UserRef


class CommentCreate(BaseModel):
    body: constr(strip_whitespace=True, min_length=1, max_length=2000)
    incident_id: Optional[conint(ge=1)] = None
    risk_id: Optional[conint(ge=1)] = None

    @model_validator(mode="after")
    def _exactly_one_parent(self):
        if (self.incident_id is None) == (self.risk_id is None):
            raise ValueError("Exactly one of incident_id or risk_id must be provided")
        return self


class CommentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    body: str
    author_id: int
    incident_id: Optional[int] = None
    risk_id: Optional[int] = None
    created_at: datetime

    author: Optional[UserRef] = None
