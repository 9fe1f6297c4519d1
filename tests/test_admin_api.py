import httpx
import pytest

from app.audit.repository.audit_repository import AuditRepository
from app.chat.entity.chat import ChatExchange
from app.chat.repository.chat_repository import ChatRepository
from conftest import completion


async def seed(sql_conn, *rows):
    """Insert exchanges directly: (user_id, message, response, session_id)."""
    repo = ChatRepository(sql_conn)
    saved = []
    for user_id, message, response, session_id in rows:
        saved.append(await repo.save_exchange(ChatExchange(
            user_id=user_id, message=message, response=response, session_id=session_id,
        )))
    return saved


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(client, auth_headers):
    res = await client.get("/admin/chats", headers=auth_headers("user-1"))
    assert res.status_code == 403
    assert res.json() == {"status": False, "message": "Unauthorized. Admin access required."}

    res = await client.get("/admin/chats")
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_list_chats_filters_and_search(client, admin_headers, sql_conn):
    await seed(
        sql_conn,
        ("alice", "how do I reset a password", "Use the reset link.", "session_a"),
        ("alice", "what is SQL injection", "A code injection technique.", "session_a"),
        ("bob", "hello", "Hi! Ask me about passwords.", "session_b"),
    )

    res = await client.get("/admin/chats", headers=admin_headers)
    data = res.json()["data"]
    assert res.status_code == 200
    assert data["pagination"]["total"] == 3
    assert [c["message"] for c in data["chats"]] == ["hello", "what is SQL injection", "how do I reset a password"]

    res = await client.get("/admin/chats", params={"search": "password"}, headers=admin_headers)
    assert {c["user_id"] for c in res.json()["data"]["chats"]} == {"alice", "bob"}
    assert res.json()["data"]["pagination"]["total"] == 2

    res = await client.get("/admin/chats", params={"user_id": "alice", "session_id": "session_a"}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["total"] == 2

    res = await client.get("/admin/chats", params={"flagged": "true"}, headers=admin_headers)
    assert res.json()["data"]["chats"] == []

    res = await client.get("/admin/chats", params={"flagged": "all", "reviewed": "false"}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["total"] == 3


@pytest.mark.asyncio
async def test_list_chats_date_range(client, admin_headers, sql_conn):
    await seed(sql_conn, ("alice", "today", "ok", "session_a"))

    res = await client.get("/admin/chats", params={"date_from": "2000-01-01", "date_to": "2000-12-31"},
                           headers=admin_headers)
    assert res.json()["data"]["chats"] == []

    res = await client.get("/admin/chats", params={"date_from": "2000-01-01"}, headers=admin_headers)
    assert len(res.json()["data"]["chats"]) == 1


@pytest.mark.asyncio
async def test_list_chats_rejects_unknown_tristate(client, admin_headers):
    res = await client.get("/admin/chats", params={"flagged": "maybe"}, headers=admin_headers)
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_pagination_is_clamped(client, admin_headers, sql_conn):
    await seed(sql_conn, *[("alice", f"m{i}", "r", "session_a") for i in range(5)])

    res = await client.get("/admin/chats", params={"per_page": 2, "page": 2}, headers=admin_headers)
    data = res.json()["data"]
    assert [c["message"] for c in data["chats"]] == ["m2", "m1"]
    assert data["pagination"] == {"total": 5, "page": 2, "per_page": 2, "last_page": 3}

    res = await client.get("/admin/chats", params={"per_page": 1000}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["per_page"] == 100

    res = await client.get("/admin/chats", params={"per_page": 0}, headers=admin_headers)
    assert res.json()["data"]["pagination"]["per_page"] == 1

    res = await client.get("/admin/chats", headers=admin_headers)
    assert res.json()["data"]["pagination"]["per_page"] == 20


@pytest.mark.asyncio
async def test_get_and_delete_chat(client, admin_headers, sql_conn):
    (exchange,) = await seed(sql_conn, ("alice", "delete me", "ok", "session_a"))

    res = await client.get(f"/admin/chats/{exchange.id}", headers=admin_headers)
    assert res.json()["data"]["chat"]["message"] == "delete me"

    res = await client.delete(f"/admin/chats/{exchange.id}", headers=admin_headers)
    assert res.status_code == 200

    res = await client.get(f"/admin/chats/{exchange.id}", headers=admin_headers)
    assert res.status_code == 404

    res = await client.delete(f"/admin/chats/{exchange.id}", headers=admin_headers)
    assert res.status_code == 404

    entries = await AuditRepository(sql_conn).list_entries(action="admin_delete_chat")
    assert len(entries) == 1
    assert entries[0].user_id == "admin-1"
    assert entries[0].details["chat_id"] == exchange.id


@pytest.mark.asyncio
async def test_bulk_delete_requires_every_id_to_exist(client, admin_headers, sql_conn):
    first, second = await seed(
        sql_conn,
        ("alice", "one", "r", "session_a"),
        ("bob", "two", "r", "session_b"),
    )

    res = await client.post("/admin/chats/bulk-delete", json={"chat_ids": [first.id, 9999]}, headers=admin_headers)
    assert res.status_code == 422
    assert (await client.get(f"/admin/chats/{first.id}", headers=admin_headers)).status_code == 200

    res = await client.post("/admin/chats/bulk-delete", json={"chat_ids": []}, headers=admin_headers)
    assert res.status_code == 422

    res = await client.post(
        "/admin/chats/bulk-delete", json={"chat_ids": [first.id, second.id]}, headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["data"]["deleted_count"] == 2

    entries = await AuditRepository(sql_conn).list_entries(action="admin_bulk_delete_chats")
    assert entries[0].details["chat_ids"] == [first.id, second.id]


@pytest.mark.asyncio
async def test_flag_and_unflag(client, admin_headers, sql_conn):
    (exchange,) = await seed(sql_conn, ("alice", "sketchy", "r", "session_a"))

    res = await client.post(f"/admin/chats/{exchange.id}/flag", json={"reason": "Abusive"}, headers=admin_headers)
    chat = res.json()["data"]["chat"]
    assert chat["flagged"] is True
    assert chat["flagged_by"] == "admin-1"
    assert chat["flag_reason"] == "Abusive"
    assert chat["flagged_at"] is not None

    res = await client.get("/admin/chats", params={"flagged": "true"}, headers=admin_headers)
    assert [c["id"] for c in res.json()["data"]["chats"]] == [exchange.id]

    res = await client.post(f"/admin/chats/{exchange.id}/unflag", headers=admin_headers)
    chat = res.json()["data"]["chat"]
    assert chat["flagged"] is False
    assert chat["flagged_by"] is None
    assert chat["flag_reason"] is None

    actions = [e.action for e in await AuditRepository(sql_conn).list_entries()]
    assert "admin_flag_chat" in actions
    assert "admin_unflag_chat" in actions


@pytest.mark.asyncio
async def test_flag_reason_length_is_validated(client, admin_headers, sql_conn):
    (exchange,) = await seed(sql_conn, ("alice", "m", "r", "session_a"))
    res = await client.post(f"/admin/chats/{exchange.id}/flag", json={"reason": "x" * 501}, headers=admin_headers)
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_flag_missing_chat_is_404(client, admin_headers):
    res = await client.post("/admin/chats/4242/flag", json={}, headers=admin_headers)
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_review_approve_and_reject(client, admin_headers, sql_conn):
    approved, rejected = await seed(
        sql_conn,
        ("alice", "fine", "r", "session_a"),
        ("bob", "not fine", "r", "session_b"),
    )

    res = await client.post(f"/admin/chats/{approved.id}/review", json={"action": "approve"}, headers=admin_headers)
    chat = res.json()["data"]["chat"]
    assert chat["reviewed"] is True
    assert chat["reviewed_by"] == "admin-1"
    assert chat["flagged"] is False

    res = await client.post(
        f"/admin/chats/{rejected.id}/review",
        json={"action": "reject", "notes": "Policy violation"},
        headers=admin_headers,
    )
    chat = res.json()["data"]["chat"]
    assert chat["reviewed"] is True
    assert chat["flagged"] is True
    assert chat["flag_reason"] == "Policy violation"

    res = await client.post(f"/admin/chats/{approved.id}/review", json={"action": "escalate"}, headers=admin_headers)
    assert res.status_code == 422

    entries = await AuditRepository(sql_conn).list_entries(action="admin_review_chat")
    assert [e.details["chat_id"] for e in entries] == [rejected.id, approved.id]
    assert entries[0].details["review_action"] == "reject"
    assert entries[0].details["notes"] == "Policy violation"
    assert entries[1].details["review_action"] == "approve"
    assert all(e.user_id == "admin-1" for e in entries)


@pytest.mark.asyncio
async def test_review_without_action_is_audited(client, admin_headers, sql_conn):
    (exchange,) = await seed(sql_conn, ("alice", "m", "r", "session_a"))

    res = await client.post(f"/admin/chats/{exchange.id}/review", json={}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["chat"]["reviewed"] is True

    (entry,) = await AuditRepository(sql_conn).list_entries(action="admin_review_chat")
    assert entry.details == {"chat_id": exchange.id, "review_action": None, "notes": None}


@pytest.mark.asyncio
async def test_user_chats(client, admin_headers, sql_conn):
    await seed(
        sql_conn,
        ("alice", "a1", "r", "session_a"),
        ("alice", "a2", "r", "session_b"),
        ("bob", "b1", "r", "session_c"),
    )

    res = await client.get("/admin/users/alice/chats", headers=admin_headers)
    data = res.json()["data"]
    assert data["user_id"] == "alice"
    assert [c["message"] for c in data["chats"]] == ["a2", "a1"]

    res = await client.get("/admin/users/alice/chats", params={"session_id": "session_a"}, headers=admin_headers)
    assert [c["message"] for c in res.json()["data"]["chats"]] == ["a1"]


@pytest.mark.asyncio
async def test_llm_providers_and_usage(client, scripted, admin_headers, auth_headers):
    scripted.script["primary.test"] = [httpx.Response(200, json=completion("hi"))]
    await client.post("/chat/message", json={"message": "Hi"}, headers=auth_headers("user-7"))

    res = await client.get("/llm/providers", headers=admin_headers)
    providers = res.json()["data"]["providers"]
    assert [p["name"] for p in providers] == ["huggingface", "openai"]
    assert providers[1]["priced"] is True
    assert res.json()["data"]["retry_delay_seconds"] == 3.0

    res = await client.get("/llm/usage", params={"user_id": "user-7"}, headers=admin_headers)
    usage = res.json()["data"]
    assert usage["total"] == 1
    assert usage["records"][0]["api_provider"] == "huggingface"
    assert usage["records"][0]["success"] is True

    res = await client.get("/llm/providers", headers=auth_headers("user-7"))
    assert res.status_code == 403
