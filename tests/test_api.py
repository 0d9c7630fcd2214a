"""Integration tests exercising the HTTP surface with the mock SSH transport."""

from __future__ import annotations

import pytest

CONFIG = {
    "host": "10.0.0.5",
    "user": "deploy",
    "agent": True,
    "timeout": "5s",
    "retry_delay": "1s",
    "commands": ["echo hi"],
}


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["debug_log"].endswith("debug.log")


@pytest.mark.asyncio
async def test_create(client, mock_sessions):
    resp = await client.post("/resources/ssh_resource/create", json=CONFIG)
    assert resp.status_code == 200
    data = resp.json()
    assert data["diagnostics"] == []
    assert data["record"]["result"] == "hi\n"
    assert data["record"]["id"]
    assert data["record"]["schema_version"] == 3
    assert mock_sessions.commands == ["echo hi"]


@pytest.mark.asyncio
async def test_create_validation_error(client, mock_sessions):
    resp = await client.post(
        "/resources/ssh_resource/create",
        json={**CONFIG, "commands": ["false"], "timeout": "1s", "retry_delay": "2s"},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["record"] is None
    assert data["diagnostics"][0]["severity"] == "error"
    assert mock_sessions.specs == []


@pytest.mark.asyncio
async def test_too_many_commands_rejected(client):
    resp = await client.post(
        "/resources/ssh_resource/create",
        json={**CONFIG, "commands": ["true"] * 101},
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_and_delete_roundtrip(client, mock_sessions):
    created = (await client.post("/resources/ssh_resource/create", json=CONFIG)).json()["record"]

    resp = await client.post(
        "/resources/ssh_resource/update",
        json={"prior": created, "config": {**CONFIG, "commands": ["hostname"]}},
    )
    updated = resp.json()["record"]
    assert updated["result"] == "web-01\n"
    assert updated["id"] == created["id"]

    resp = await client.post("/resources/ssh_resource/delete", json=updated)
    assert resp.json()["record"]["id"] == ""


@pytest.mark.asyncio
async def test_read(client):
    created = (await client.post("/resources/ssh_resource/create", json=CONFIG)).json()["record"]
    resp = await client.post("/resources/ssh_resource/read", json=created)
    assert resp.json()["record"] == created


@pytest.mark.asyncio
async def test_plan(client):
    resp = await client.post(
        "/resources/ssh_resource/plan",
        json={"prior": None, "config": CONFIG},
    )
    assert resp.status_code == 200
    assert resp.json()["result_unknown"] is True


@pytest.mark.asyncio
async def test_import(client, mock_sessions):
    resp = await client.post(
        "/resources/ssh_resource/import",
        json={"id": "legacy-1", "config": CONFIG},
    )
    assert resp.json()["record"]["id"] == "legacy-1"
    assert mock_sessions.specs == []


@pytest.mark.asyncio
async def test_upgrade_v0(client):
    resp = await client.post(
        "/resources/ssh_resource/upgrade",
        json={"version": 0, "state": {"id": "1", "host": "10.0.0.5", "commands": ["ls"]}},
    )
    data = resp.json()
    assert data["version"] == 3
    assert data["state"]["when"] == "create"
    assert data["diagnostics"] == []


@pytest.mark.asyncio
async def test_upgrade_future_version(client):
    resp = await client.post(
        "/resources/ssh_resource/upgrade",
        json={"version": 7, "state": {}},
    )
    data = resp.json()
    assert data["version"] == 7
    assert data["diagnostics"][0]["severity"] == "error"


@pytest.mark.asyncio
async def test_sensitive_kind(client, mock_sessions, debug_path):
    mock_sessions.add_response("cat /root/token", stdout="tok-123\n")
    resp = await client.post(
        "/resources/ssh_sensitive_resource/create",
        json={**CONFIG, "commands": ["cat /root/token"]},
    )
    assert resp.json()["record"]["result"] == "tok-123\n"
    assert "tok-123" not in debug_path.read_text()


@pytest.mark.asyncio
async def test_unknown_kind(client):
    resp = await client.post("/resources/ssh_bogus/create", json=CONFIG)
    assert resp.status_code == 422
