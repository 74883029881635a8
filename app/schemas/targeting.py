"""Targeting rule schemas.

Targeting is persisted inside ``FlagState.rules["targeting"]`` in camelCase.
Each entry carries a ``kind`` tag so a stored payload can be validated back
into the matching model; list position is the evaluation order.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

OPERATORS = ("equals", "notEquals", "contains", "notContains", "startsWith", "endsWith")

Operator = Literal["equals", "notEquals", "contains", "notContains", "startsWith", "endsWith"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Condition(_CamelModel):
    """A single ``{attribute, operator, value}`` test against a context."""
    attribute: str = Field(min_length=1)
    # Stored operators are kept as-is; unknown ones never match at evaluation time
    operator: str
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        return v


class AttributeRule(Condition):
    kind: Literal["attribute"] = "attribute"
    id: Optional[str] = None
    variation_id: str


class SegmentRule(_CamelModel):
    kind: Literal["segment"] = "segment"
    segment_id: str
    variation_id: str


class IndividualOverride(_CamelModel):
    kind: Literal["individual"] = "individual"
    user_id: str
    variation_id: str


# Discriminated on ``kind`` wherever it is validated
TargetingRule = Union[AttributeRule, SegmentRule, IndividualOverride]


class Targeting(_CamelModel):
    default_variation_id: Optional[str] = None
    off_variation_id: Optional[str] = None
    segments: List[SegmentRule] = Field(default_factory=list)
    rules: List[AttributeRule] = Field(default_factory=list)
    individual: List[IndividualOverride] = Field(default_factory=list)

    def referenced_variation_ids(self) -> List[str]:
        ids = [self.default_variation_id, self.off_variation_id]
        for entry in [*self.individual, *self.segments, *self.rules]:
            ids.append(entry.variation_id)
        return [i for i in ids if i]


class FlagRules(_CamelModel):
    """Top-level shape of ``FlagState.rules``."""
    targeting: Targeting = Field(default_factory=Targeting)

    @classmethod
    def from_stored(cls, raw: Optional[Dict[str, Any]]) -> "FlagRules":
        return cls.model_validate(raw or {})

    def to_stored(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
