"""
Audit Log Tests
Every mutating operation leaves an entry; reads are scoped by membership.
"""
import pytest
from httpx import AsyncClient
from tests.conftest import API, create_flag, create_project, environment_id


@pytest.mark.asyncio
async def test_flag_operations_are_audited(client: AsyncClient, superuser_headers: dict, project: dict):
    flag = await create_flag(client, superuser_headers, project["id"], {"name": "A", "key": "flag-a"})
    await client.patch(
        f"{API}/flags/{flag['id']}/environments/{environment_id(project, 'production')}",
        json={"is_enabled": True},
        headers=superuser_headers,
    )
    await client.post(f"{API}/flags/{flag['id']}/archive", headers=superuser_headers)

    resp = await client.get(f"{API}/flags/{flag['id']}/audits", headers=superuser_headers)
    assert resp.status_code == 200
    entries = resp.json()
    assert {e["action"] for e in entries} == {"FLAG_CREATED", "FLAG_STATE_UPDATED", "FLAG_ARCHIVED"}
    assert all(e["entity"] == "FeatureFlag" and e["entity_id"] == flag["id"] for e in entries)

    created = next(e for e in entries if e["action"] == "FLAG_CREATED")
    assert created["payload"] == {"name": "A", "key": "flag-a"}
    state = next(e for e in entries if e["action"] == "FLAG_STATE_UPDATED")
    assert state["payload"]["environment"] == "production"
    assert state["payload"]["isEnabled"] is True


@pytest.mark.asyncio
async def test_global_audit_log_filters(client: AsyncClient, superuser_headers: dict, project: dict):
    await create_flag(client, superuser_headers, project["id"], {"name": "A", "key": "flag-a"})

    resp = await client.get(f"{API}/audit-logs", params={"action": "PROJECT_CREATED"}, headers=superuser_headers)
    assert resp.status_code == 200
    assert [e["payload"]["key"] for e in resp.json()] == ["web-app"]

    limited = await client.get(f"{API}/audit-logs", params={"limit": 1}, headers=superuser_headers)
    assert len(limited.json()) == 1

    assert (await client.get(f"{API}/audit-logs", params={"limit": 0}, headers=superuser_headers)).status_code == 422


@pytest.mark.asyncio
async def test_audit_logs_scoped_to_membership(
    client: AsyncClient, superuser_headers: dict, user_headers: dict, project: dict
):
    mine = await create_project(client, user_headers, {"name": "Mine", "key": "mine"})

    visible = (await client.get(f"{API}/audit-logs", headers=user_headers)).json()
    assert visible
    assert {e["project_id"] for e in visible} == {mine["id"]}

    assert (await client.get(f"{API}/projects/{project['id']}/audit-logs", headers=user_headers)).status_code == 404

    project_logs = await client.get(f"{API}/projects/{project['id']}/audit-logs", headers=superuser_headers)
    assert {e["project_id"] for e in project_logs.json()} == {project["id"]}
