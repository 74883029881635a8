from typing import Any, List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.schemas.common import reject_null
from app.schemas.targeting import Condition

KEY_PATTERN = r"^[A-Za-z0-9_.\-]+$"


class SegmentBase(BaseModel):
    name: Optional[str] = None
    key: Optional[str] = Field(default=None, pattern=KEY_PATTERN)
    description: Optional[str] = None
    rules: Optional[List[Condition]] = None


class SegmentCreate(SegmentBase):
    name: str = Field(min_length=1)
    key: str = Field(min_length=1, pattern=KEY_PATTERN)
    rules: List[Condition] = Field(default_factory=list)


class SegmentUpdate(SegmentBase):
    @field_validator("name", "key", "rules")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class Segment(BaseModel):
    id: UUID
    project_id: UUID
    key: str
    name: str
    description: Optional[str] = None
    rules: List[Condition] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
