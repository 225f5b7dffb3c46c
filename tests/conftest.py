"""
Shared fixtures for StudyHub backend integration tests.

Each test gets its own SQLite database file (aiosqlite) under tmp_path and
its own app built by ``create_app``. The AI provider dependency is replaced
with one that talks to an in-process fake chat-completion API through
``httpx.MockTransport``, so no network is needed.
"""
from __future__ import annotations

import json
import os
from typing import AsyncGenerator, Dict, List, Union

# Keep the import-time default app off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

import httpx  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import select  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from studyhub.config import Settings  # noqa: E402
from studyhub.main import create_app  # noqa: E402
from studyhub.models.database_models import User, UserRole  # noqa: E402
from studyhub.services.ai_provider import AIProvider, get_ai_provider  # noqa: E402


# ---------------------------------------------------------------------------
# Fake chat-completion API
# ---------------------------------------------------------------------------

class FakeChatAPI:
    """
    Queue of canned replies served in order.

    A queued ``str`` becomes a normal completion; a queued ``httpx.Response``
    is returned as-is. An empty queue answers with an API error payload.
    """

    def __init__(self) -> None:
        self.replies: List[Union[str, httpx.Response]] = []
        self.requests: List[dict] = []

    def queue(self, *replies: Union[str, httpx.Response]) -> None:
        self.replies.extend(replies)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.replies:
            return httpx.Response(500, json={"error": {"message": "no reply queued"}})
        reply = self.replies.pop(0)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, json={"choices": [{"message": {"content": reply}}]})


def make_provider(fake: FakeChatAPI, api_key: Union[str, None] = "test-key") -> AIProvider:
    config = Settings(GROQ_API_KEY=api_key)
    return AIProvider(config=config, transport=httpx.MockTransport(fake.handler))


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def fake_ai() -> FakeChatAPI:
    return FakeChatAPI()


@pytest_asyncio.fixture
async def app(tmp_path, fake_ai: FakeChatAPI) -> AsyncGenerator[FastAPI, None]:
    """App bound to a fresh SQLite file, with the AI provider overridden."""
    config = Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'studyhub_test.db'}")
    application = create_app(config)
    await application.state.db.create_all()

    provider = make_provider(fake_ai)
    application.dependency_overrides[get_ai_provider] = lambda: provider

    yield application

    application.dependency_overrides.clear()
    await application.state.db.dispose()


@pytest_asyncio.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Direct session on the test database, for setup the API doesn't expose."""
    async with app.state.db.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

USER1 = {"name": "Test User 1", "email": "test1@example.com", "password": "secret123"}
USER2 = {"name": "Test User 2", "email": "test2@example.com", "password": "secret456"}


async def register(client: AsyncClient, user: Dict[str, str] = USER1) -> Dict[str, str]:
    """Register *user* and return bearer auth headers for it."""
    resp = await client.post("/api/auth/register", json=user)
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


async def make_admin(db_session: AsyncSession, email: str) -> None:
    user = (await db_session.execute(select(User).where(User.email == email))).scalar_one()
    user.role = UserRole.ADMIN
    await db_session.commit()


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient) -> Dict[str, str]:
    return await register(client, USER1)


@pytest_asyncio.fixture
async def auth_headers_user2(client: AsyncClient) -> Dict[str, str]:
    return await register(client, USER2)


async def create_chapter(client: AsyncClient, headers: Dict[str, str], title: str = "Arrays", **extra) -> dict:
    resp = await client.post("/api/chapters", json={"title": title, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def create_question(
    client: AsyncClient,
    headers: Dict[str, str],
    chapter_id: int,
    title: str = "Two Sum",
    **extra,
) -> dict:
    resp = await client.post(
        "/api/questions",
        json={"chapterId": chapter_id, "title": title, **extra},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]
