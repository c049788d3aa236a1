"""Shared fixtures: every test gets a fresh in-memory store and an ASGI client
with the store dependency overridden."""

import os

# Settings are read at import time by playlistify.main
os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("ADMIN_WORDS", "vinilo")
os.environ.setdefault("BYPASS_UIDS", "bypass-uid")

import pytest
from httpx import ASGITransport, AsyncClient

from playlistify.database import MemorySessionStore, get_store
from playlistify.main import app


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
async def client(store):
    app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
async def session(client):
    """A freshly created session: {"sessionId", "code", "adminWord"}."""
    res = await client.post("/session/create")
    assert res.status_code == 200
    return res.json()


def entry_body(session_id: str, video_id: str, **extra) -> dict:
    body = {
        "sessionId": session_id,
        "id": video_id,
        "titulo": f"Video {video_id}",
        "usuario": "Ana",
        "thumbnailUrl": f"https://img.example/{video_id}.jpg",
        "duration": "PT3M21S",
    }
    body.update(extra)
    return body
