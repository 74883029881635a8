"""Unit tests for feature flag evaluation logic."""
import logging

import pytest

from app.schemas.feature_flag import Variation
from app.schemas.targeting import AttributeRule, Condition, IndividualOverride, SegmentRule, Targeting
from app.services.feature_flags import (
    REASON_DEFAULT,
    REASON_INDIVIDUAL,
    REASON_OFF,
    REASON_RULE,
    REASON_SEGMENT,
    FlagDefinition,
    FlagStateDefinition,
    NoVariationAvailable,
    SegmentDefinition,
    evaluate,
    evaluate_detail,
    evaluate_models,
    matches_condition,
    matches_segment,
)
from app.services.variations import InvalidVariationValue

ON = Variation(id="1", name="True", value="true")
OFF = Variation(id="2", name="False", value="false")


def _flag(variations=(ON, OFF), type="boolean", default_value=None):
    return FlagDefinition(key="flag", type=type, default_value=default_value, variations=tuple(variations))


def _state(enabled=True, **targeting):
    return FlagStateDefinition(is_enabled=enabled, targeting=Targeting(**targeting))


def _rule(attribute, operator, value, variation_id):
    return AttributeRule(attribute=attribute, operator=operator, value=value, variation_id=variation_id)


# ═══════════════════════════════════════════
#  Conditions
# ═══════════════════════════════════════════

@pytest.mark.parametrize(
    "operator,value,actual,expected",
    [
        ("equals", "beta", "beta", True),
        ("equals", "beta", "Beta", False),
        ("notEquals", "beta", "alpha", True),
        ("contains", "exam", "a@example.com", True),
        ("notContains", "exam", "a@other.com", True),
        ("startsWith", "adm", "admin", True),
        ("endsWith", "@example.com", "a@example.com", True),
        ("endsWith", "@example.com", "a@other.com", False),
    ],
)
def test_condition_operators(operator, value, actual, expected):
    condition = Condition(attribute="x", operator=operator, value=value)
    assert matches_condition(condition, {"x": actual}) is expected


def test_condition_missing_attribute_never_matches():
    # notEquals must not match an absent attribute either
    condition = Condition(attribute="plan", operator="notEquals", value="free")
    assert matches_condition(condition, {}) is False
    assert matches_condition(condition, {"plan": None}) is False


def test_condition_unknown_operator_never_matches():
    condition = Condition(attribute="plan", operator="greaterThan", value="1")
    assert matches_condition(condition, {"plan": "2"}) is False


def test_condition_coerces_non_string_values():
    assert matches_condition(Condition(attribute="beta", operator="equals", value=True), {"beta": True})
    assert matches_condition(Condition(attribute="age", operator="equals", value=42), {"age": 42})
    assert matches_condition(Condition(attribute="tags", operator="contains", value="vip"), {"tags": ["vip"]})


def test_empty_segment_matches_nothing():
    assert matches_segment(SegmentDefinition(id="s"), {"anything": "x"}) is False


def test_segment_requires_every_condition():
    segment = SegmentDefinition(
        id="s",
        rules=(
            Condition(attribute="country", operator="equals", value="TW"),
            Condition(attribute="plan", operator="equals", value="pro"),
        ),
    )
    assert matches_segment(segment, {"country": "TW", "plan": "pro"}) is True
    assert matches_segment(segment, {"country": "TW", "plan": "free"}) is False


# ═══════════════════════════════════════════
#  Evaluation order
# ═══════════════════════════════════════════

def test_rule_match_serves_rule_variation():
    state = _state(default_variation_id="1", rules=[_rule("email", "endsWith", "@example.com", "2")])
    assert evaluate(_flag(), state, [], {"email": "a@example.com"}) is False


def test_no_rule_match_serves_default_variation():
    state = _state(default_variation_id="1", rules=[_rule("email", "endsWith", "@example.com", "2")])
    result = evaluate_detail(_flag(), state, [], {"email": "a@other.com"})
    assert result.value is True
    assert result.variation_id == "1"
    assert result.reason == REASON_DEFAULT


def test_disabled_state_serves_off_variation_regardless_of_rules():
    state = _state(
        enabled=False,
        off_variation_id="2",
        rules=[_rule("email", "endsWith", "@example.com", "1")],
        individual=[IndividualOverride(user_id="u1", variation_id="1")],
    )
    result = evaluate_detail(_flag(), state, [], {"email": "a@example.com", "userId": "u1"})
    assert result.value is False
    assert result.reason == REASON_OFF


def test_missing_state_is_treated_as_disabled():
    result = evaluate_detail(_flag(default_value="false"), None, [], {})
    assert result.variation_id == "2"
    assert result.reason == REASON_OFF


def test_first_matching_rule_wins():
    state = _state(
        rules=[
            _rule("plan", "equals", "pro", "2"),
            _rule("plan", "startsWith", "p", "1"),
        ],
    )
    result = evaluate_detail(_flag(), state, [], {"plan": "pro"})
    assert result.variation_id == "2"
    assert result.reason == REASON_RULE


def test_individual_override_beats_segments_and_rules():
    segment = SegmentDefinition(id="s1", rules=(Condition(attribute="plan", operator="equals", value="pro"),))
    state = _state(
        individual=[IndividualOverride(user_id="42", variation_id="1")],
        segments=[SegmentRule(segment_id="s1", variation_id="2")],
        rules=[_rule("plan", "equals", "pro", "2")],
    )
    # userId given as a number still matches its string form
    result = evaluate_detail(_flag(), state, [segment], {"userId": 42, "plan": "pro"})
    assert result.variation_id == "1"
    assert result.reason == REASON_INDIVIDUAL


def test_segment_beats_attribute_rules():
    segment = SegmentDefinition(id="s1", rules=(Condition(attribute="plan", operator="equals", value="pro"),))
    state = _state(
        segments=[SegmentRule(segment_id="s1", variation_id="2")],
        rules=[_rule("plan", "equals", "pro", "1")],
    )
    result = evaluate_detail(_flag(), state, [segment], {"plan": "pro"})
    assert result.variation_id == "2"
    assert result.reason == REASON_SEGMENT


def test_unknown_segment_is_skipped(caplog):
    state = _state(
        default_variation_id="1",
        segments=[SegmentRule(segment_id="gone", variation_id="2")],
    )
    with caplog.at_level(logging.WARNING, logger="flagpole.evaluation"):
        result = evaluate_detail(_flag(), state, [], {"plan": "pro"})
    assert result.variation_id == "1"
    assert "unknown segment" in caplog.text


def test_rule_pointing_at_unknown_variation_is_skipped():
    state = _state(
        default_variation_id="1",
        rules=[
            _rule("plan", "equals", "pro", "missing"),
            _rule("plan", "equals", "pro", "2"),
        ],
    )
    assert evaluate_detail(_flag(), state, [], {"plan": "pro"}).variation_id == "2"


# ═══════════════════════════════════════════
#  Fallbacks
# ═══════════════════════════════════════════

def test_default_falls_back_to_variation_matching_default_value():
    result = evaluate_detail(_flag(default_value="false"), _state(), [], {})
    assert result.variation_id == "2"


def test_default_falls_back_to_first_variation():
    result = evaluate_detail(_flag(), _state(default_variation_id="missing"), [], {})
    assert result.variation_id == "1"


def test_literal_default_value_without_variations():
    flag = _flag(variations=(), type="number", default_value="3")
    result = evaluate_detail(flag, _state(), [], {})
    assert result.value == 3
    assert result.variation_id is None


def test_no_variations_and_no_default_raises():
    with pytest.raises(NoVariationAvailable):
        evaluate(_flag(variations=()), _state(), [], {})


def test_invalid_stored_value_raises():
    flag = _flag(variations=(Variation(id="1", name="Broken", value="yes"),))
    with pytest.raises(InvalidVariationValue):
        evaluate(flag, _state(), [], {})


def test_variation_type_overrides_flag_type():
    flag = _flag(
        type="string",
        variations=(Variation(id="1", name="Limits", value='{"max": 5}', type="json"),),
    )
    assert evaluate(flag, _state(default_variation_id="1"), [], {}) == {"max": 5}


def test_evaluation_does_not_mutate_inputs():
    context = {"plan": "pro"}
    state = _state(rules=[_rule("plan", "equals", "pro", "2")])
    before = state.targeting.model_dump()
    evaluate(_flag(), state, [], context)
    assert context == {"plan": "pro"}
    assert state.targeting.model_dump() == before


# ═══════════════════════════════════════════
#  ORM boundary
# ═══════════════════════════════════════════

class _Row:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


def test_evaluate_models_reads_stored_rows():
    flag = _Row(
        key="flag",
        type="boolean",
        default_value=None,
        variations=[{"id": "1", "name": "True", "value": "true"}, {"id": "2", "name": "False", "value": "false"}],
    )
    state = _Row(
        is_enabled=True,
        rules={"targeting": {"segments": [{"segmentId": "s1", "variationId": "2"}], "defaultVariationId": "1"}},
    )
    segment = _Row(id="s1", rules=[{"attribute": "country", "operator": "equals", "value": "TW"}])

    assert evaluate_models(flag, state, [segment], {"country": "TW"}).reason == REASON_SEGMENT
    assert evaluate_models(flag, state, [segment], {"country": "JP"}).value is True
