"""Targeting payloads are stored in camelCase and validated back by ``kind``."""
from typing import Annotated

import pytest
from pydantic import Field, TypeAdapter, ValidationError

from app.schemas.targeting import AttributeRule, FlagRules, IndividualOverride, SegmentRule, TargetingRule

_rule_adapter = TypeAdapter(Annotated[TargetingRule, Field(discriminator="kind")])


def test_stored_payload_round_trips_in_camel_case():
    raw = {
        "targeting": {
            "defaultVariationId": "1",
            "offVariationId": "2",
            "segments": [{"segmentId": "s1", "variationId": "2"}],
            "rules": [{"attribute": "email", "operator": "endsWith", "value": "@example.com", "variationId": "2"}],
            "individual": [{"userId": "u1", "variationId": "1"}],
        }
    }
    rules = FlagRules.from_stored(raw)
    assert rules.targeting.rules[0].variation_id == "2"

    stored = rules.to_stored()["targeting"]
    assert stored["defaultVariationId"] == "1"
    assert stored["rules"][0]["kind"] == "attribute"
    assert stored["segments"][0]["segmentId"] == "s1"
    assert stored["individual"][0]["userId"] == "u1"


def test_empty_rules_give_empty_targeting():
    targeting = FlagRules.from_stored(None).targeting
    assert targeting.rules == []
    assert targeting.referenced_variation_ids() == []


def test_referenced_variation_ids_cover_every_list():
    targeting = FlagRules.from_stored(
        {
            "targeting": {
                "offVariationId": "off",
                "segments": [{"segmentId": "s", "variationId": "seg"}],
                "rules": [{"attribute": "a", "operator": "equals", "value": "b", "variationId": "rule"}],
                "individual": [{"userId": "u", "variationId": "ind"}],
            }
        }
    ).targeting
    assert sorted(targeting.referenced_variation_ids()) == ["ind", "off", "rule", "seg"]


@pytest.mark.parametrize(
    "payload,model",
    [
        ({"kind": "attribute", "attribute": "a", "operator": "equals", "value": "b", "variationId": "v"}, AttributeRule),
        ({"kind": "segment", "segmentId": "s", "variationId": "v"}, SegmentRule),
        ({"kind": "individual", "userId": "u", "variationId": "v"}, IndividualOverride),
    ],
)
def test_kind_selects_rule_model(payload, model):
    assert isinstance(_rule_adapter.validate_python(payload), model)


def test_unknown_kind_is_rejected():
    with pytest.raises(ValidationError):
        _rule_adapter.validate_python({"kind": "percentage", "variationId": "v"})
