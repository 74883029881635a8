"""
Environment Tests
Per-project environments, their flag states and SDK keys.
"""
import pytest
from httpx import AsyncClient
from tests.conftest import API, create_flag, environment_id


@pytest.mark.asyncio
async def test_new_environment_gets_disabled_state_for_existing_flags(
    client: AsyncClient, superuser_headers: dict, project: dict
):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "A", "key": "flag-a"})

    resp = await client.post(
        f"{API}/projects/{project['id']}/environments",
        json={"name": "QA", "key": "qa"},
        headers=superuser_headers,
    )
    assert resp.status_code == 201
    qa = resp.json()
    assert qa["require_confirmation"] is False

    states = (await client.get(f"{API}/flags/{flag['id']}", headers=superuser_headers)).json()["flag_states"]
    qa_state = next(s for s in states if s["environment_id"] == qa["id"])
    assert qa_state["is_enabled"] is False
    assert len(states) == 4


@pytest.mark.asyncio
async def test_environment_key_unique_within_project(client: AsyncClient, superuser_headers: dict, project: dict):
    resp = await client.post(
        f"{API}/projects/{project['id']}/environments",
        json={"name": "Dev 2", "key": "development"},
        headers=superuser_headers,
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_default_environment_cannot_be_deleted(client: AsyncClient, superuser_headers: dict, project: dict):
    production = environment_id(project, "production")
    resp = await client.delete(f"{API}/environments/{production}", headers=superuser_headers)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_custom_environment(client: AsyncClient, superuser_headers: dict, project: dict):
    qa = (
        await client.post(
            f"{API}/projects/{project['id']}/environments",
            json={"name": "QA", "key": "qa"},
            headers=superuser_headers,
        )
    ).json()

    resp = await client.delete(f"{API}/environments/{qa['id']}", headers=superuser_headers)
    assert resp.status_code == 200

    listed = await client.get(f"{API}/projects/{project['id']}/environments", headers=superuser_headers)
    assert "qa" not in {e["key"] for e in listed.json()}


@pytest.mark.asyncio
async def test_update_environment(client: AsyncClient, superuser_headers: dict, project: dict):
    staging = environment_id(project, "staging")
    resp = await client.patch(
        f"{API}/environments/{staging}",
        json={"name": "Pre-production", "require_confirmation": True},
        headers=superuser_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Pre-production"
    assert resp.json()["require_confirmation"] is True

    clash = await client.patch(
        f"{API}/environments/{staging}", json={"key": "production"}, headers=superuser_headers
    )
    assert clash.status_code == 409

    for field in ("name", "key", "require_confirmation"):
        nulled = await client.patch(f"{API}/environments/{staging}", json={field: None}, headers=superuser_headers)
        assert nulled.status_code == 422, field


@pytest.mark.asyncio
async def test_rotate_key_invalidates_old_key(client: AsyncClient, superuser_headers: dict, project: dict):
    development = next(e for e in project["environments"] if e["key"] == "development")

    resp = await client.post(f"{API}/environments/{development['id']}/rotate-key", headers=superuser_headers)
    assert resp.status_code == 200
    new_key = resp.json()["api_key"]
    assert new_key != development["api_key"]

    old = await client.post(
        f"{API}/sdk/evaluate", json={"context": {}}, headers={"X-Environment-Key": development["api_key"]}
    )
    assert old.status_code == 401
    new = await client.post(f"{API}/sdk/evaluate", json={"context": {}}, headers={"X-Environment-Key": new_key})
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_non_member_cannot_touch_environment(
    client: AsyncClient, user_headers: dict, project: dict
):
    development = environment_id(project, "development")
    resp = await client.patch(f"{API}/environments/{development}", json={"name": "x"}, headers=user_headers)
    assert resp.status_code == 404
