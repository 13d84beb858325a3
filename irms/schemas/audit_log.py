# irms/schemas/audit_log.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from irms.schemas.common import Pagination


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    entity_id: Optional[int] = None
    action: str
    actor_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogPage(BaseModel):
    data: List[AuditLogOut]
    pagination: Pagination
