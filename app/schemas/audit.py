from typing import Any, Dict, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel


class AuditLog(BaseModel):
    id: UUID
    action: str
    entity: str
    entity_id: str
    user_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
