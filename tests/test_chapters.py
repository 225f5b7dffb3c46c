"""Tests for chapter CRUD, ordering and isolation."""
import pytest
from httpx import AsyncClient
from sqlalchemy import Text

from studyhub.models import database_models as models
from tests.conftest import create_chapter, create_question


@pytest.mark.asyncio
async def test_create_chapter_defaults(client: AsyncClient, auth_headers):
    data = await create_chapter(client, auth_headers, "  Dynamic Programming  ", tags=[" dp ", "", "memo"])
    assert data["title"] == "Dynamic Programming"
    assert data["order"] == 0
    assert data["icon"] == "📚"
    assert data["color"] == ""
    assert data["tags"] == ["dp", "memo"]
    assert data["questionCount"] == 0
    assert isinstance(data["id"], int)


@pytest.mark.asyncio
async def test_new_chapters_are_appended(client: AsyncClient, auth_headers):
    first = await create_chapter(client, auth_headers, "First")
    second = await create_chapter(client, auth_headers, "Second")
    assert (first["order"], second["order"]) == (0, 1)


@pytest.mark.asyncio
async def test_create_chapter_requires_title(client: AsyncClient, auth_headers):
    resp = await client.post("/api/chapters", json={"description": "no title"}, headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_list_chapters_returns_only_own(client: AsyncClient, auth_headers, auth_headers_user2):
    """Each user only sees their own chapters."""
    await create_chapter(client, auth_headers, "A")
    await create_chapter(client, auth_headers, "B")
    await create_chapter(client, auth_headers_user2, "C")

    resp = await client.get("/api/chapters", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 2
    assert [c["title"] for c in body["data"]] == ["A", "B"]


@pytest.mark.asyncio
async def test_get_chapter_includes_questions(client: AsyncClient, auth_headers):
    chapter = await create_chapter(client, auth_headers)
    await create_question(client, auth_headers, chapter["id"], "Two Sum")
    await create_question(client, auth_headers, chapter["id"], "Three Sum")

    resp = await client.get(f"/api/chapters/{chapter['id']}", headers=auth_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["questionCount"] == 2
    assert [q["title"] for q in data["questions"]] == ["Two Sum", "Three Sum"]


@pytest.mark.asyncio
async def test_other_users_chapter_returns_401(client: AsyncClient, auth_headers, auth_headers_user2):
    chapter = await create_chapter(client, auth_headers)

    resp = await client.get(f"/api/chapters/{chapter['id']}", headers=auth_headers_user2)
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized"

    resp = await client.delete(f"/api/chapters/{chapter['id']}", headers=auth_headers_user2)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_chapter_returns_404(client: AsyncClient, auth_headers):
    resp = await client.get("/api/chapters/99999", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Chapter not found"}


@pytest.mark.asyncio
async def test_update_chapter_is_partial(client: AsyncClient, auth_headers):
    chapter = await create_chapter(client, auth_headers, "Old", description="keep me")

    resp = await client.put(
        f"/api/chapters/{chapter['id']}",
        json={"title": "New", "icon": "🧠"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "New"
    assert data["icon"] == "🧠"
    assert data["description"] == "keep me"


@pytest.mark.asyncio
async def test_delete_chapter_cascades(client: AsyncClient, auth_headers, fake_ai):
    chapter = await create_chapter(client, auth_headers)
    question = await create_question(client, auth_headers, chapter["id"])
    fake_ai.queue("not json", "not json")
    await client.post("/api/ai/mindmap", json={"chapterId": chapter["id"]}, headers=auth_headers)
    await client.post("/api/ai/test", json={"chapterId": chapter["id"], "count": 2}, headers=auth_headers)

    resp = await client.delete(f"/api/chapters/{chapter['id']}", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "data": {}}

    resp = await client.get(f"/api/questions/{question['id']}", headers=auth_headers)
    assert resp.status_code == 404
    resp = await client.get(f"/api/ai/mindmap/{chapter['id']}", headers=auth_headers)
    assert resp.status_code == 404
    resp = await client.get(f"/api/ai/tests/{chapter['id']}", headers=auth_headers)
    assert resp.json()["count"] == 0


@pytest.mark.asyncio
async def test_reorder_only_touches_own_chapters(client: AsyncClient, auth_headers, auth_headers_user2):
    a = await create_chapter(client, auth_headers, "A")
    b = await create_chapter(client, auth_headers, "B")
    foreign = await create_chapter(client, auth_headers_user2, "Foreign")

    resp = await client.put(
        "/api/chapters/reorder/all",
        json={"chapters": [
            {"id": a["id"], "order": 5},
            {"id": b["id"], "order": 2},
            {"id": foreign["id"], "order": 9},
        ]},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [(c["title"], c["order"]) for c in data] == [("B", 2), ("A", 5)]

    resp = await client.get(f"/api/chapters/{foreign['id']}", headers=auth_headers_user2)
    assert resp.json()["data"]["order"] == 0


def test_free_form_columns_are_unbounded():
    # PostgreSQL rejects values longer than a VARCHAR limit
    columns = [
        models.Chapter.__table__.c.color,
        models.Chapter.__table__.c.icon,
        models.Question.__table__.c.link,
        models.Question.__table__.c.code_language,
        models.Cheatsheet.__table__.c.color,
        models.Cheatsheet.__table__.c.icon,
        models.TestQuestion.__table__.c.source,
        models.TestQuestion.__table__.c.source_url,
        models.Blog.__table__.c.cover_image,
    ]
    for column in columns:
        assert isinstance(column.type, Text), column.name
