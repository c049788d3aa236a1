"""In-memory store and the session service functions that sit directly on it."""

import asyncio

import pytest

from playlistify.errors import NotFoundError, SessionNotFoundError, StoreError
from playlistify.models.session import QueueEntry
from playlistify.services import queue as queue_service
from playlistify.services import session as session_service


async def test_saved_session_is_a_copy(store):
    session, _ = await session_service.create_session(store, ["vinilo"])
    session.code = "0000"

    stored = await store.get_session(session.session_id)
    assert stored.code != "0000"


async def test_code_index(store):
    assert await store.claim_code("1234", "s1")
    assert not await store.claim_code("1234", "s2")
    assert await store.lookup_code("1234") == "s1"

    await store.release_code("1234")
    assert await store.lookup_code("1234") is None


async def test_stored_document_uses_wire_names(store):
    session, _ = await session_service.create_session(store)

    raw = store._sessions[session.session_id]
    for name in ("sessionId", "pendingRequests", "usuarios", "baneados", "queueOrder", "playbackState"):
        assert f'"{name}"' in raw


async def test_code_space_exhausted(store, monkeypatch):
    monkeypatch.setattr(session_service, "_generate_code", lambda: "1234")
    await store.claim_code("1234", "other")

    with pytest.raises(StoreError):
        await session_service.create_session(store)


async def test_verify_code_with_stale_index(store):
    await store.claim_code("4321", "gone")
    with pytest.raises(NotFoundError):
        await session_service.verify_code(store, "4321")


async def test_require_session_raises(store):
    with pytest.raises(SessionNotFoundError):
        await session_service.require_session(store, "nope")


async def test_lock_serialises_writers(store):
    session, _ = await session_service.create_session(store)
    sid = session.session_id
    events = []

    async def writer(name):
        async with store.lock(sid):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(writer("a"), writer("b"))
    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_concurrent_mutations_keep_order_in_sync(store):
    session, _ = await session_service.create_session(store)
    sid = session.session_id
    keys = []
    for i in range(6):
        key, _ = await queue_service.add_entry(store, sid, QueueEntry(id=f"v{i}", title="T", added_by="Ana"))
        keys.append(key)

    await asyncio.gather(
        queue_service.add_entry(store, sid, QueueEntry(id="new", title="T", added_by="Ana")),
        queue_service.remove_entry(store, sid, keys[1], uid=sid),
        queue_service.remove_entry(store, sid, keys[2], uid=sid),
        queue_service.play_next(store, sid, keys[5]),
    )

    stored = await store.get_session(sid)
    assert sorted(stored.queue) == sorted(stored.queue_order)
    assert len(stored.queue_order) == 5
