"""
Evaluation API Tests
Per-flag evaluation for members and bulk evaluation for SDKs.
"""
import pytest
from httpx import AsyncClient
from tests.conftest import API, create_flag, create_segment, environment_id, variation_id


async def _enable(client, headers, flag, environment, targeting):
    resp = await client.patch(
        f"{API}/flags/{flag['id']}/environments/{environment}",
        json={"is_enabled": True, "rules": {"targeting": targeting}},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text


@pytest.mark.asyncio
async def test_rule_and_default_resolution(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "F", "key": "f"})
    env = environment_id(project, "production")
    on, off = variation_id(flag, "True"), variation_id(flag, "False")
    await _enable(client, superuser_headers, flag, env, {
        "defaultVariationId": on,
        "rules": [{"attribute": "email", "operator": "endsWith", "value": "@example.com", "variationId": off}],
    })
    url = f"{API}/flags/{flag['id']}/environments/{env}/evaluate"

    matched = await client.post(url, json={"context": {"email": "a@example.com"}}, headers=superuser_headers)
    assert matched.status_code == 200
    assert matched.json()["value"] is False
    assert matched.json()["variation_id"] == off
    assert matched.json()["reason"] == "RULE"

    fallback = await client.post(url, json={"context": {"email": "a@other.com"}}, headers=superuser_headers)
    assert fallback.json()["value"] is True
    assert fallback.json()["reason"] == "DEFAULT"


@pytest.mark.asyncio
async def test_disabled_flag_serves_off_variation(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "F", "key": "f"})
    env = environment_id(project, "production")
    off = variation_id(flag, "False")
    await client.patch(
        f"{API}/flags/{flag['id']}/environments/{env}",
        json={
            "is_enabled": False,
            "rules": {"targeting": {
                "offVariationId": off,
                "rules": [{"attribute": "email", "operator": "endsWith", "value": "@example.com",
                           "variationId": variation_id(flag, "True")}],
            }},
        },
        headers=superuser_headers,
    )

    resp = await client.post(
        f"{API}/flags/{flag['id']}/environments/{env}/evaluate",
        json={"context": {"email": "a@example.com"}},
        headers=superuser_headers,
    )
    assert resp.json()["value"] is False
    assert resp.json()["reason"] == "OFF"


@pytest.mark.asyncio
async def test_segment_targeting(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(
        client, superuser_headers, project["id"],
        {
            "name": "Checkout", "key": "checkout", "type": "string",
            "variations": [{"name": "Classic", "value": "classic"}, {"name": "Express", "value": "express"}],
        },
    )
    segment = await create_segment(
        client, superuser_headers, project["id"],
        {"name": "TW Pro", "key": "tw-pro", "rules": [
            {"attribute": "country", "operator": "equals", "value": "TW"},
            {"attribute": "plan", "operator": "equals", "value": "pro"},
        ]},
    )
    env = environment_id(project, "staging")
    await _enable(client, superuser_headers, flag, env, {
        "defaultVariationId": variation_id(flag, "Classic"),
        "segments": [{"segmentId": segment["id"], "variationId": variation_id(flag, "Express")}],
    })
    url = f"{API}/flags/{flag['id']}/environments/{env}/evaluate"

    member = await client.post(url, json={"context": {"country": "TW", "plan": "pro"}}, headers=superuser_headers)
    assert member.json()["value"] == "express"
    assert member.json()["reason"] == "SEGMENT"

    partial = await client.post(url, json={"context": {"country": "TW"}}, headers=superuser_headers)
    assert partial.json()["value"] == "classic"


@pytest.mark.asyncio
async def test_individual_override(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "F", "key": "f"})
    env = environment_id(project, "development")
    await _enable(client, superuser_headers, flag, env, {
        "defaultVariationId": variation_id(flag, "False"),
        "individual": [{"userId": "user-7", "variationId": variation_id(flag, "True")}],
    })

    resp = await client.post(
        f"{API}/flags/{flag['id']}/environments/{env}/evaluate",
        json={"context": {"userId": "user-7"}},
        headers=superuser_headers,
    )
    assert resp.json()["value"] is True
    assert resp.json()["reason"] == "INDIVIDUAL"


@pytest.mark.asyncio
async def test_flag_without_variations_or_default_conflicts(
    client: AsyncClient, superuser_headers: dict, project: dict
):
    flag = await create_flag(
        client, superuser_headers, project["id"], {"name": "Empty", "key": "empty", "type": "string"}
    )
    env = environment_id(project, "development")
    resp = await client.post(
        f"{API}/flags/{flag['id']}/environments/{env}/evaluate", json={"context": {}}, headers=superuser_headers
    )
    assert resp.status_code == 409


# ═══════════════════════════════════════════
#  SDK
# ═══════════════════════════════════════════

def _sdk_headers(project: dict, key: str) -> dict:
    api_key = next(e["api_key"] for e in project["environments"] if e["key"] == key)
    return {"X-Environment-Key": api_key}


@pytest.mark.asyncio
async def test_sdk_evaluates_active_flags(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "F", "key": "f"})
    archived = await create_flag(client, superuser_headers, project["id"], {"name": "Old", "key": "old"})
    await client.post(f"{API}/flags/{archived['id']}/archive", headers=superuser_headers)
    await _enable(client, superuser_headers, flag, environment_id(project, "production"), {
        "defaultVariationId": variation_id(flag, "True"),
    })

    resp = await client.post(
        f"{API}/sdk/evaluate",
        json={"context": {"userId": "u1"}},
        headers=_sdk_headers(project, "production"),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["environment"] == "production"
    assert set(body["flags"]) == {"f"}
    assert body["flags"]["f"]["value"] is True

    # The same flag is still off in development
    dev = await client.post(f"{API}/sdk/evaluate", json={"context": {}}, headers=_sdk_headers(project, "development"))
    assert dev.json()["flags"]["f"]["reason"] == "OFF"


@pytest.mark.asyncio
async def test_sdk_reports_errors_per_flag(client: AsyncClient, superuser_headers: dict, project: dict):
    await create_flag(client, superuser_headers, project["id"], {"name": "F", "key": "f"})
    await create_flag(client, superuser_headers, project["id"], {"name": "Empty", "key": "empty", "type": "string"})

    resp = await client.post(
        f"{API}/sdk/evaluate",
        json={"context": {}, "flag_keys": ["f", "empty", "missing"]},
        headers=_sdk_headers(project, "staging"),
    )
    assert resp.status_code == 200
    flags = resp.json()["flags"]
    # Disabled with no off variation: first variation
    assert flags["f"]["value"] is True
    assert flags["f"]["reason"] == "OFF"
    assert flags["f"]["error"] is None
    assert flags["empty"]["error"]
    assert flags["missing"]["error"] == "Flag not found"


@pytest.mark.asyncio
async def test_sdk_requires_valid_environment_key(client: AsyncClient):
    assert (await client.post(f"{API}/sdk/evaluate", json={"context": {}})).status_code == 422
    resp = await client.post(f"{API}/sdk/evaluate", json={"context": {}}, headers={"X-Environment-Key": "nope"})
    assert resp.status_code == 401
