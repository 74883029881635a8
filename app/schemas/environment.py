from typing import Any, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.schemas.common import reject_null

KEY_PATTERN = r"^[A-Za-z0-9_.\-]+$"


class EnvironmentBase(BaseModel):
    name: Optional[str] = None
    key: Optional[str] = Field(default=None, pattern=KEY_PATTERN)


class EnvironmentCreate(EnvironmentBase):
    name: str = Field(min_length=1)
    key: str = Field(min_length=1, pattern=KEY_PATTERN)
    require_confirmation: bool = False


class EnvironmentUpdate(EnvironmentBase):
    require_confirmation: Optional[bool] = None

    @field_validator("name", "key", "require_confirmation")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class EnvironmentSummary(BaseModel):
    id: UUID
    key: str
    name: str

    class Config:
        from_attributes = True


class Environment(EnvironmentSummary):
    project_id: UUID
    api_key: str
    require_confirmation: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
