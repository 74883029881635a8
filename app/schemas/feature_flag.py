"""Feature Flag schemas."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import reject_null
from app.schemas.environment import EnvironmentSummary
from app.schemas.targeting import FlagRules


class FlagType(str, Enum):
    BOOLEAN = "boolean"
    STRING = "string"
    NUMBER = "number"
    JSON = "json"


class Variation(BaseModel):
    id: Optional[str] = None
    name: str
    value: str
    type: Optional[FlagType] = None


class VariationUpdate(BaseModel):
    name: Optional[str] = None
    value: Optional[str] = None
    type: Optional[FlagType] = None

    @field_validator("name", "value")
    @classmethod
    def not_null(cls, v: Optional[str]) -> str:
        return reject_null(v)


class FeatureFlagCreate(BaseModel):
    name: str = Field(min_length=1)
    key: str = Field(min_length=1, pattern=r"^[A-Za-z0-9_.\-]+$")
    description: Optional[str] = None
    type: FlagType = FlagType.BOOLEAN
    default_value: Optional[str] = None
    variations: List[Variation] = Field(default_factory=list)


class FeatureFlagUpdate(BaseModel):
    name: Optional[str] = None
    key: Optional[str] = Field(default=None, pattern=r"^[A-Za-z0-9_.\-]+$")
    description: Optional[str] = None
    default_value: Optional[str] = None
    variations: Optional[List[Variation]] = None

    @field_validator("name", "key", "variations")
    @classmethod
    def not_null(cls, v: Any) -> Any:
        return reject_null(v)


class FlagState(BaseModel):
    id: UUID
    flag_id: UUID
    environment_id: UUID
    is_enabled: bool
    rules: Dict[str, Any] = Field(default_factory=dict)
    environment: Optional[EnvironmentSummary] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FlagStateUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    rules: Optional[FlagRules] = None


class FeatureFlag(BaseModel):
    id: UUID
    project_id: UUID
    key: str
    name: str
    description: Optional[str] = None
    type: FlagType
    default_value: Optional[str] = None
    variations: List[Variation] = Field(default_factory=list)
    is_archived: bool = False
    flag_states: List[FlagState] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EvaluationRequest(BaseModel):
    context: Dict[str, Any] = Field(default_factory=dict)


class FeatureFlagEvaluation(BaseModel):
    key: str
    value: Any = None
    variation_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None


class SDKEvaluationRequest(BaseModel):
    context: Dict[str, Any] = Field(default_factory=dict)
    flag_keys: Optional[List[str]] = None


class SDKEvaluationResponse(BaseModel):
    environment: str
    flags: Dict[str, FeatureFlagEvaluation]
