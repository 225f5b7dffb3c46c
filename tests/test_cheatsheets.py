"""Tests for cheatsheets and their items."""
import pytest
from httpx import AsyncClient


async def _create_sheet(client: AsyncClient, headers, **body) -> dict:
    payload = {"title": "Big-O", **body}
    resp = await client.post("/api/cheatsheets", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_create_cheatsheet_with_items(client: AsyncClient, auth_headers):
    data = await _create_sheet(
        client,
        auth_headers,
        subject="Algorithms",
        items=[{"title": "Sorting", "content": "n log n"}, {"title": "Hashing"}],
    )
    assert data["color"] == "#10b981"
    assert data["icon"] == "📋"
    assert data["isPublic"] is False
    assert [(i["title"], i["order"]) for i in data["items"]] == [("Sorting", 0), ("Hashing", 1)]
    assert data["items"][1]["questionLinks"] == ""


@pytest.mark.asyncio
async def test_list_cheatsheets(client: AsyncClient, auth_headers, auth_headers_user2):
    await _create_sheet(client, auth_headers, title="Mine")
    await _create_sheet(client, auth_headers_user2, title="Theirs")

    resp = await client.get("/api/cheatsheets", headers=auth_headers)
    body = resp.json()
    assert body["count"] == 1
    assert body["data"][0]["title"] == "Mine"


@pytest.mark.asyncio
async def test_add_update_delete_item(client: AsyncClient, auth_headers):
    sheet = await _create_sheet(client, auth_headers, items=[{"title": "First"}])

    resp = await client.post(
        f"/api/cheatsheets/{sheet['id']}/items",
        json={"title": "Second", "tags": ["graphs"]},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    items = resp.json()["data"]["items"]
    assert [(i["title"], i["order"]) for i in items] == [("First", 0), ("Second", 1)]
    second_id = items[1]["id"]

    resp = await client.put(
        f"/api/cheatsheets/{sheet['id']}/items/{second_id}",
        json={"content": "BFS / DFS"},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    updated = resp.json()["data"]["items"][1]
    assert updated["title"] == "Second"
    assert updated["content"] == "BFS / DFS"
    assert updated["tags"] == ["graphs"]

    resp = await client.delete(f"/api/cheatsheets/{sheet['id']}/items/{second_id}", headers=auth_headers)
    assert resp.status_code == 200
    assert [i["title"] for i in resp.json()["data"]["items"]] == ["First"]


@pytest.mark.asyncio
async def test_update_unknown_item_returns_404(client: AsyncClient, auth_headers):
    sheet = await _create_sheet(client, auth_headers)
    resp = await client.put(
        f"/api/cheatsheets/{sheet['id']}/items/424242",
        json={"content": "x"},
        headers=auth_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Item not found"


@pytest.mark.asyncio
async def test_update_replaces_items_when_given(client: AsyncClient, auth_headers):
    sheet = await _create_sheet(client, auth_headers, items=[{"title": "Old"}])

    resp = await client.put(
        f"/api/cheatsheets/{sheet['id']}",
        json={"isPublic": True},
        headers=auth_headers,
    )
    data = resp.json()["data"]
    assert data["isPublic"] is True
    assert [i["title"] for i in data["items"]] == ["Old"]

    resp = await client.put(
        f"/api/cheatsheets/{sheet['id']}",
        json={"items": [{"title": "New A"}, {"title": "New B"}]},
        headers=auth_headers,
    )
    assert [i["title"] for i in resp.json()["data"]["items"]] == ["New A", "New B"]


@pytest.mark.asyncio
async def test_foreign_cheatsheet_returns_401(client: AsyncClient, auth_headers, auth_headers_user2):
    sheet = await _create_sheet(client, auth_headers)

    resp = await client.get(f"/api/cheatsheets/{sheet['id']}", headers=auth_headers_user2)
    assert resp.status_code == 401

    resp = await client.post(
        f"/api/cheatsheets/{sheet['id']}/items",
        json={"title": "Injected"},
        headers=auth_headers_user2,
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_delete_cheatsheet(client: AsyncClient, auth_headers):
    sheet = await _create_sheet(client, auth_headers, items=[{"title": "Gone"}])

    resp = await client.delete(f"/api/cheatsheets/{sheet['id']}", headers=auth_headers)
    assert resp.status_code == 200

    resp = await client.get(f"/api/cheatsheets/{sheet['id']}", headers=auth_headers)
    assert resp.status_code == 404
    assert resp.json()["message"] == "Cheatsheet not found"
