import pytest

from app.audit.entity.audit import AuditEntry
from app.audit.repository.audit_repository import AuditRepository


async def record(sql_conn, *rows):
    """Insert audit entries directly: (user_id, action, ip_address)."""
    repo = AuditRepository(sql_conn)
    for user_id, action, ip_address in rows:
        await repo.record(AuditEntry(user_id=user_id, action=action, ip_address=ip_address))


@pytest.mark.asyncio
async def test_activity_logs_newest_first_with_filters(client, admin_headers, sql_conn):
    await record(
        sql_conn,
        ("alice", "chat_message", "10.0.0.1"),
        ("alice", "delete_chat_history", "10.0.0.1"),
        ("admin-9", "admin_flag_chat", "192.0.2.5"),
    )

    res = await client.get("/admin/activity-logs", headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert [e["action"] for e in data["activity"]] == ["admin_flag_chat", "delete_chat_history", "chat_message"]
    assert data["pagination"] == {"total": 3, "page": 1, "per_page": 20, "last_page": 1}

    res = await client.get("/admin/activity-logs", params={"user_id": "alice"}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["total"] == 2

    res = await client.get("/admin/activity-logs", params={"action": "chat"}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["total"] == 3

    res = await client.get("/admin/activity-logs", params={"action": "admin_"}, headers=admin_headers)
    assert [e["user_id"] for e in res.json()["data"]["activity"]] == ["admin-9"]

    res = await client.get("/admin/activity-logs", params={"search": "192.0.2"}, headers=admin_headers)
    assert [e["action"] for e in res.json()["data"]["activity"]] == ["admin_flag_chat"]

    res = await client.get("/admin/activity-logs", params={"date_to": "2000-01-01"}, headers=admin_headers)
    assert res.json()["data"]["activity"] == []


@pytest.mark.asyncio
async def test_activity_logs_paging(client, admin_headers, sql_conn):
    await record(sql_conn, *[("alice", f"action_{i}", None) for i in range(5)])

    res = await client.get("/admin/activity-logs", params={"per_page": 2, "page": 3}, headers=admin_headers)
    data = res.json()["data"]
    assert [e["action"] for e in data["activity"]] == ["action_0"]
    assert data["pagination"]["last_page"] == 3


@pytest.mark.asyncio
async def test_activity_logs_show_admin_actions(client, admin_headers):
    await client.post("/admin/banned-ips", json={"ip_address": "203.0.113.9"}, headers=admin_headers)

    res = await client.get("/admin/activity-logs", params={"user_id": "admin-1"}, headers=admin_headers)
    (entry,) = res.json()["data"]["activity"]
    assert entry["action"] == "admin_ban_ip"
    assert entry["details"]["ip_address"] == "203.0.113.9"
    assert entry["ip_address"] == "127.0.0.1"


@pytest.mark.asyncio
async def test_activity_logs_require_admin(client, auth_headers):
    res = await client.get("/admin/activity-logs", headers=auth_headers("user-1"))
    assert res.status_code == 403
