"""Feature flag evaluation logic.

Resolves the value a flag serves for an evaluation context. Priority:
1. Flag state disabled (or missing) → off variation
2. Individual overrides keyed on ``context["userId"]``
3. Segment targets in order (every segment condition must match)
4. Attribute rules in order (first matching rule wins)
5. Default variation

Evaluation is pure: callers load the flag, its state for one environment
and the project's segments, and record any audit entries themselves.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from app.schemas.feature_flag import Variation
from app.schemas.targeting import Condition, FlagRules, Targeting
from app.services.variations import EvaluationError, coerce_value, variation_type

logger = logging.getLogger("flagpole.evaluation")

REASON_OFF = "OFF"
REASON_INDIVIDUAL = "INDIVIDUAL"
REASON_SEGMENT = "SEGMENT"
REASON_RULE = "RULE"
REASON_DEFAULT = "DEFAULT"

USER_ID_ATTRIBUTE = "userId"


class NoVariationAvailable(EvaluationError):
    """Flag has neither variations nor a default value."""


@dataclass(frozen=True)
class FlagDefinition:
    key: str
    type: str
    default_value: Optional[str] = None
    variations: Tuple[Variation, ...] = ()

    @classmethod
    def from_model(cls, flag) -> "FlagDefinition":
        return cls(
            key=flag.key,
            type=flag.type,
            default_value=flag.default_value,
            variations=tuple(Variation.model_validate(v) for v in (flag.variations or [])),
        )


@dataclass(frozen=True)
class FlagStateDefinition:
    is_enabled: bool = False
    targeting: Targeting = field(default_factory=Targeting)

    @classmethod
    def from_model(cls, state) -> Optional["FlagStateDefinition"]:
        if state is None:
            return None
        return cls(
            is_enabled=bool(state.is_enabled),
            targeting=FlagRules.from_stored(state.rules).targeting,
        )


@dataclass(frozen=True)
class SegmentDefinition:
    id: str
    rules: Tuple[Condition, ...] = ()

    @classmethod
    def from_model(cls, segment) -> "SegmentDefinition":
        return cls(
            id=str(segment.id),
            rules=tuple(Condition.model_validate(r) for r in (segment.rules or [])),
        )


@dataclass(frozen=True)
class EvaluationResult:
    value: Any
    variation_id: Optional[str]
    reason: str


# ═══════════════════════════════════════════
#  Rule matching
# ═══════════════════════════════════════════

def _as_string(actual: Any) -> str:
    if isinstance(actual, bool):
        return "true" if actual else "false"
    if isinstance(actual, (dict, list)):
        return json.dumps(actual, separators=(",", ":"))
    return str(actual)


def matches_condition(condition: Condition, context: Mapping[str, Any]) -> bool:
    """Test one condition. Missing attributes and unknown operators never match."""
    if condition.attribute not in context:
        return False
    actual = context[condition.attribute]
    if actual is None:
        return False

    actual = _as_string(actual)
    expected = condition.value
    op = condition.operator

    if op == "equals":
        return actual == expected
    if op == "notEquals":
        return actual != expected
    if op == "contains":
        return expected in actual
    if op == "notContains":
        return expected not in actual
    if op == "startsWith":
        return actual.startswith(expected)
    if op == "endsWith":
        return actual.endswith(expected)
    return False


def matches_segment(segment: SegmentDefinition, context: Mapping[str, Any]) -> bool:
    """A context is a member only if it satisfies every rule; empty segments match nothing."""
    if not segment.rules:
        return False
    return all(matches_condition(rule, context) for rule in segment.rules)


# ═══════════════════════════════════════════
#  Evaluation
# ═══════════════════════════════════════════

def _find_variation(flag: FlagDefinition, variation_id: Optional[str]) -> Optional[Variation]:
    if not variation_id:
        return None
    for variation in flag.variations:
        if variation.id == variation_id:
            return variation
    return None


def _served(flag: FlagDefinition, variation: Variation, reason: str) -> EvaluationResult:
    value = coerce_value(variation.value, variation_type(variation, flag.type))
    return EvaluationResult(value=value, variation_id=variation.id, reason=reason)


def _fallback(flag: FlagDefinition, variation_id: Optional[str], reason: str) -> EvaluationResult:
    """Referenced variation → variation equal to the default value → first variation → literal default."""
    variation = _find_variation(flag, variation_id)
    if variation is None and variation_id:
        logger.warning("Flag %s references unknown variation %s", flag.key, variation_id)
    if variation is None and flag.default_value is not None:
        variation = next((v for v in flag.variations if v.value == flag.default_value), None)
    if variation is None and flag.variations:
        variation = flag.variations[0]
    if variation is not None:
        return _served(flag, variation, reason)
    if flag.default_value is not None:
        return EvaluationResult(
            value=coerce_value(flag.default_value, flag.type),
            variation_id=None,
            reason=reason,
        )
    raise NoVariationAvailable(f"Flag '{flag.key}' has no variations and no default value")


def _target(flag: FlagDefinition, variation_id: str, reason: str) -> Optional[EvaluationResult]:
    variation = _find_variation(flag, variation_id)
    if variation is None:
        # Unresolved reference: skip this entry and keep evaluating
        logger.warning("Flag %s targeting references unknown variation %s", flag.key, variation_id)
        return None
    return _served(flag, variation, reason)


def evaluate_detail(
    flag: FlagDefinition,
    flag_state: Optional[FlagStateDefinition],
    segments: Iterable[SegmentDefinition],
    context: Optional[Mapping[str, Any]],
) -> EvaluationResult:
    """Resolve the variation served for ``context`` together with the reason."""
    context = context or {}
    targeting = flag_state.targeting if flag_state else Targeting()

    if flag_state is None or not flag_state.is_enabled:
        return _fallback(flag, targeting.off_variation_id, REASON_OFF)

    user_id = context.get(USER_ID_ATTRIBUTE)
    if user_id is not None:
        for override in targeting.individual:
            if override.user_id == _as_string(user_id):
                result = _target(flag, override.variation_id, REASON_INDIVIDUAL)
                if result is not None:
                    return result

    segments_by_id: Dict[str, SegmentDefinition] = {s.id: s for s in segments}
    for target in targeting.segments:
        segment = segments_by_id.get(target.segment_id)
        if segment is None:
            logger.warning("Flag %s targets unknown segment %s", flag.key, target.segment_id)
            continue
        if matches_segment(segment, context):
            result = _target(flag, target.variation_id, REASON_SEGMENT)
            if result is not None:
                return result

    for rule in targeting.rules:
        if matches_condition(rule, context):
            result = _target(flag, rule.variation_id, REASON_RULE)
            if result is not None:
                return result

    return _fallback(flag, targeting.default_variation_id, REASON_DEFAULT)


def evaluate(
    flag: FlagDefinition,
    flag_state: Optional[FlagStateDefinition],
    segments: Iterable[SegmentDefinition],
    context: Optional[Mapping[str, Any]],
) -> Any:
    """Resolve the typed value served for ``context``."""
    return evaluate_detail(flag, flag_state, segments, context).value


def evaluate_models(flag, flag_state, segments, context: Optional[Mapping[str, Any]]) -> EvaluationResult:
    """Evaluate ORM rows, converting them to definitions at the load boundary."""
    return evaluate_detail(
        FlagDefinition.from_model(flag),
        FlagStateDefinition.from_model(flag_state),
        [SegmentDefinition.from_model(s) for s in segments],
        context,
    )
