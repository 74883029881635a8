from typing import List, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.schemas.common import reject_null
from app.schemas.environment import Environment

KEY_PATTERN = r"^[A-Za-z0-9_.\-]+$"


# Shared properties
class ProjectBase(BaseModel):
    name: Optional[str] = None
    key: Optional[str] = Field(default=None, pattern=KEY_PATTERN)
    description: Optional[str] = None


# Properties to receive via API on creation
class ProjectCreate(ProjectBase):
    name: str = Field(min_length=1)
    key: str = Field(min_length=1, pattern=KEY_PATTERN)


# Properties to receive via API on update
class ProjectUpdate(ProjectBase):
    @field_validator("name", "key")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        return reject_null(v)


class ProjectCounts(BaseModel):
    flags: int = 0
    environments: int = 0
    segments: int = 0


class ProjectMember(BaseModel):
    id: UUID
    email: str
    username: str

    class Config:
        from_attributes = True


class ProjectMemberAdd(BaseModel):
    email: str


class Project(ProjectBase):
    id: UUID
    name: str
    key: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    environments: List[Environment] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ProjectDetail(Project):
    members: List[ProjectMember] = Field(default_factory=list)


class ProjectWithCounts(Project):
    counts: ProjectCounts = Field(default_factory=ProjectCounts)
