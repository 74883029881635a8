"""Variation value typing and write-side validation.

Variation values are stored as strings and coerced to the variation's type
(or the flag's type when the variation has none) before being served. The
same rules gate what may be persisted.
"""
import json
import math
import uuid
from typing import Any, Iterable, List, Optional

from app.config import settings
from app.schemas.feature_flag import FlagType, Variation


class EvaluationError(Exception):
    """Base class for errors raised while resolving a flag value."""


class InvalidVariationValue(EvaluationError):
    def __init__(self, value: Any, flag_type: str, reason: str = ""):
        self.value = value
        self.flag_type = flag_type
        detail = f"Value {value!r} is not a valid {flag_type}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail)


class CanonicalVariationRequired(ValueError):
    """Raised when a change would remove a boolean flag's canonical variation."""


def _type_name(flag_type: Any) -> str:
    if isinstance(flag_type, FlagType):
        return flag_type.value
    return str(flag_type or FlagType.STRING.value)


def coerce_value(value: Optional[str], flag_type: Any) -> Any:
    """Convert a stored string value to its typed form, or raise InvalidVariationValue."""
    kind = _type_name(flag_type)
    if value is None:
        raise InvalidVariationValue(value, kind, "value is missing")

    if kind == FlagType.BOOLEAN.value:
        if value == "true":
            return True
        if value == "false":
            return False
        raise InvalidVariationValue(value, kind, 'expected "true" or "false"')

    if kind == FlagType.NUMBER.value:
        if "_" in value:
            raise InvalidVariationValue(value, kind, "not numeric")
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidVariationValue(value, kind, "not numeric")
        if math.isnan(number) or math.isinf(number):
            raise InvalidVariationValue(value, kind, "not a finite number")
        if number.is_integer() and "." not in value and "e" not in value.lower():
            return int(number)
        return number

    if kind == FlagType.JSON.value:
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise InvalidVariationValue(value, kind, exc.msg)

    if kind == FlagType.STRING.value:
        return value

    raise InvalidVariationValue(value, kind, "unknown type")


def variation_type(variation: Variation, flag_type: Any) -> str:
    return _type_name(variation.type or flag_type)


def validate_variation(variation: Variation, flag_type: Any) -> None:
    coerce_value(variation.value, variation_type(variation, flag_type))


def normalize_variations(variations: Iterable[Variation], flag_type: Any) -> List[Variation]:
    """Validate values, assign missing ids and reject duplicate ids."""
    result: List[Variation] = []
    seen = set()
    for variation in variations:
        validate_variation(variation, flag_type)
        if not variation.id:
            variation = variation.model_copy(update={"id": str(uuid.uuid4())})
        if variation.id in seen:
            raise ValueError(f"Duplicate variation id '{variation.id}'")
        seen.add(variation.id)
        result.append(variation)
    return result


def default_boolean_variations() -> List[Variation]:
    return [
        Variation(id=str(uuid.uuid4()), name=v["name"], value=v["value"])
        for v in settings.DEFAULT_BOOLEAN_VARIATIONS
    ]


def is_canonical(variation: Variation) -> bool:
    return any(
        variation.name == v["name"] and variation.value == v["value"]
        for v in settings.DEFAULT_BOOLEAN_VARIATIONS
    )


def ensure_canonical_variations(variations: Iterable[Variation], flag_type: Any) -> None:
    """Boolean flags must always keep the configured True/False variations."""
    if _type_name(flag_type) != FlagType.BOOLEAN.value:
        return
    variations = list(variations)
    for default in settings.DEFAULT_BOOLEAN_VARIATIONS:
        if not any(v.name == default["name"] and v.value == default["value"] for v in variations):
            raise CanonicalVariationRequired(
                f'Boolean flags must include the default "{default["name"]}" variation.'
            )
