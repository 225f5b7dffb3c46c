"""Tests for discussion threads, replies and the daily posting limit."""
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from studyhub.models.database_models import Thread, User
from tests.conftest import USER1


async def _create_thread(client: AsyncClient, headers, title: str = "How to start DP?") -> dict:
    resp = await client.post(
        "/api/threads",
        json={"title": title, "content": "Any tips?", "tags": ["dp"]},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_create_thread_populates_author(client: AsyncClient, auth_headers):
    thread = await _create_thread(client, auth_headers)
    assert thread["user"]["name"] == USER1["name"]
    assert thread["user"]["email"] == USER1["email"]
    assert thread["replies"] == []
    assert thread["views"] == 0


@pytest.mark.asyncio
async def test_eleventh_thread_same_day_is_rejected(client: AsyncClient, auth_headers):
    for i in range(10):
        await _create_thread(client, auth_headers, f"Thread {i}")

    resp = await client.post(
        "/api/threads",
        json={"title": "One too many", "content": "..."},
        headers=auth_headers,
    )
    assert resp.status_code == 429
    assert resp.json() == {
        "success": False,
        "message": "Daily thread limit reached (10 threads per day)",
    }


@pytest.mark.asyncio
async def test_limit_is_per_user(client: AsyncClient, auth_headers, auth_headers_user2):
    for i in range(10):
        await _create_thread(client, auth_headers, f"Thread {i}")
    await _create_thread(client, auth_headers_user2, "Still allowed")


@pytest.mark.asyncio
async def test_yesterdays_threads_do_not_count(client: AsyncClient, auth_headers, db_session):
    user = (await db_session.execute(select(User).where(User.email == USER1["email"]))).scalar_one()
    yesterday = datetime.now(timezone.utc) - timedelta(days=1, hours=1)
    db_session.add_all([
        Thread(user_id=user.id, title=f"Old {i}", content="old", created_at=yesterday)
        for i in range(10)
    ])
    await db_session.commit()

    await _create_thread(client, auth_headers, "Fresh")


@pytest.mark.asyncio
async def test_get_thread_counts_views(client: AsyncClient, auth_headers, auth_headers_user2):
    thread = await _create_thread(client, auth_headers)

    await client.get(f"/api/threads/{thread['id']}", headers=auth_headers_user2)
    resp = await client.get(f"/api/threads/{thread['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["views"] == 2


@pytest.mark.asyncio
async def test_list_threads_newest_first(client: AsyncClient, auth_headers, auth_headers_user2):
    await _create_thread(client, auth_headers, "Older")
    await _create_thread(client, auth_headers_user2, "Newer")

    resp = await client.get("/api/threads", headers=auth_headers)
    body = resp.json()
    assert body["count"] == 2
    assert [t["title"] for t in body["data"]] == ["Newer", "Older"]


@pytest.mark.asyncio
async def test_replies(client: AsyncClient, auth_headers, auth_headers_user2):
    thread = await _create_thread(client, auth_headers)

    resp = await client.post(
        f"/api/threads/{thread['id']}/replies",
        json={"content": "Start with memoisation"},
        headers=auth_headers_user2,
    )
    assert resp.status_code == 200
    replies = resp.json()["data"]["replies"]
    assert len(replies) == 1
    assert replies[0]["user"]["name"] == "Test User 2"
    reply_id = replies[0]["id"]

    # Only the reply author may delete it, even the thread owner can't
    resp = await client.delete(f"/api/threads/{thread['id']}/replies/{reply_id}", headers=auth_headers)
    assert resp.status_code == 403

    resp = await client.delete(
        f"/api/threads/{thread['id']}/replies/{reply_id}", headers=auth_headers_user2
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["replies"] == []


@pytest.mark.asyncio
async def test_delete_unknown_reply_returns_404(client: AsyncClient, auth_headers):
    thread = await _create_thread(client, auth_headers)

    resp = await client.delete(f"/api/threads/{thread['id']}/replies/999", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Reply not found"

    resp = await client.delete("/api/threads/999/replies/1", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Thread not found"


@pytest.mark.asyncio
async def test_delete_thread_owner_only(client: AsyncClient, auth_headers, auth_headers_user2):
    thread = await _create_thread(client, auth_headers)

    resp = await client.delete(f"/api/threads/{thread['id']}", headers=auth_headers_user2)
    assert resp.status_code == 403

    resp = await client.delete(f"/api/threads/{thread['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Thread deleted"}

    resp = await client.get(f"/api/threads/{thread['id']}", headers=auth_headers)
    assert resp.status_code == 404
