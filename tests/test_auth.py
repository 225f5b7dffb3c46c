"""Tests for registration, login and the bearer-token boundary."""
from datetime import timedelta

import pytest
from httpx import AsyncClient

from studyhub.dependencies.auth import create_access_token
from tests.conftest import USER1, register


@pytest.mark.asyncio
async def test_register_returns_user_and_token(client: AsyncClient):
    resp = await client.post("/api/auth/register", json=USER1)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["email"] == USER1["email"]
    assert data["role"] == "user"
    assert data["settings"] == {
        "aiEnabled": True,
        "mindmapEnabled": True,
        "suggestionsEnabled": True,
    }
    assert data["token"]
    assert "passwordHash" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email_returns_400(client: AsyncClient):
    await register(client, USER1)
    resp = await client.post("/api/auth/register", json=USER1)
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "User already exists"}


@pytest.mark.asyncio
async def test_register_short_password_returns_400(client: AsyncClient):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Shorty", "email": "short@example.com", "password": "123"},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert "password" in body["message"]


@pytest.mark.asyncio
async def test_login_with_valid_credentials(client: AsyncClient):
    await register(client, USER1)
    resp = await client.post(
        "/api/auth/login",
        json={"email": USER1["email"], "password": USER1["password"]},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["token"]


@pytest.mark.asyncio
async def test_login_with_wrong_password_returns_401(client: AsyncClient):
    await register(client, USER1)
    resp = await client.post(
        "/api/auth/login",
        json={"email": USER1["email"], "password": "wrong-password"},
    )
    assert resp.status_code == 401
    assert resp.json()["message"] == "Invalid credentials"


@pytest.mark.asyncio
async def test_me_returns_current_user(client: AsyncClient, auth_headers):
    resp = await client.get("/api/auth/me", headers=auth_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == USER1["name"]


@pytest.mark.asyncio
async def test_missing_token_returns_401(client: AsyncClient):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, no token"


@pytest.mark.asyncio
async def test_garbage_token_returns_401(client: AsyncClient):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_expired_token_returns_401(client: AsyncClient, auth_headers):
    me = (await client.get("/api/auth/me", headers=auth_headers)).json()["data"]
    token = create_access_token(me["id"], expires_delta=timedelta(seconds=-5))

    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, token expired"


@pytest.mark.asyncio
async def test_token_for_deleted_user_returns_401(client: AsyncClient):
    token = create_access_token(9999)
    resp = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json()["message"] == "Not authorized, user not found"


@pytest.mark.asyncio
async def test_update_settings_merges_keys(client: AsyncClient, auth_headers):
    resp = await client.put(
        "/api/auth/settings",
        json={"settings": {"aiEnabled": False}},
        headers=auth_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["settings"] == {
        "aiEnabled": False,
        "mindmapEnabled": True,
        "suggestionsEnabled": True,
    }

    # Persisted
    resp = await client.get("/api/auth/me", headers=auth_headers)
    assert resp.json()["data"]["settings"]["aiEnabled"] is False


@pytest.mark.asyncio
async def test_admin_routes_reject_regular_users(client: AsyncClient, auth_headers):
    resp = await client.get("/api/blogs/pending", headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["message"] == "Admin access required"
