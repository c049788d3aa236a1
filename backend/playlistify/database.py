"""Session document store.

One JSON document per session (``session:{id}``) plus a join-code index
(``code:{code}`` -> session id) and the default host list. Writers of one
session serialise through ``lock(session_id)``: a redis lock for the redis
store, an ``asyncio.Lock`` for the in-memory one.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncContextManager, List, Optional, Protocol

import redis.asyncio as redis

from playlistify.config import Settings
from playlistify.models.session import Session

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def get_session(self, session_id: str) -> Optional[Session]: ...
    async def save_session(self, session: Session) -> None: ...
    async def claim_code(self, code: str, session_id: str) -> bool: ...
    async def lookup_code(self, code: str) -> Optional[str]: ...
    async def release_code(self, code: str) -> None: ...
    async def get_default_hosts(self) -> List[str]: ...
    async def set_default_hosts(self, hosts: List[str]) -> None: ...
    def lock(self, session_id: str) -> AsyncContextManager: ...
    async def close(self) -> None: ...


class RedisSessionStore:
    def __init__(self, redis_client: redis.Redis, lock_timeout: float = 10.0):
        self._redis = redis_client
        self._lock_timeout = lock_timeout

    @classmethod
    def from_url(cls, url: str, lock_timeout: float = 10.0) -> "RedisSessionStore":
        return cls(redis.from_url(url, decode_responses=True), lock_timeout)

    async def get_session(self, session_id: str) -> Optional[Session]:
        data = await self._redis.get(f"session:{session_id}")
        if not data:
            return None
        return Session.model_validate_json(data)

    async def save_session(self, session: Session) -> None:
        await self._redis.set(
            f"session:{session.session_id}", session.model_dump_json(by_alias=True)
        )

    async def claim_code(self, code: str, session_id: str) -> bool:
        return bool(await self._redis.set(f"code:{code}", session_id, nx=True))

    async def lookup_code(self, code: str) -> Optional[str]:
        return await self._redis.get(f"code:{code}")

    async def release_code(self, code: str) -> None:
        await self._redis.delete(f"code:{code}")

    async def get_default_hosts(self) -> List[str]:
        data = await self._redis.get("hosts:default")
        return json.loads(data) if data else []

    async def set_default_hosts(self, hosts: List[str]) -> None:
        await self._redis.set("hosts:default", json.dumps(hosts))

    def lock(self, session_id: str) -> AsyncContextManager:
        return self._redis.lock(
            f"lock:session:{session_id}",
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_timeout,
        )

    async def close(self) -> None:
        await self._redis.aclose()


class MemorySessionStore:
    """Single-process store. Documents are kept serialized so callers never
    share mutable state with the store, same as with redis."""

    def __init__(self):
        self._sessions: dict[str, str] = {}
        self._codes: dict[str, str] = {}
        self._default_hosts: List[str] = []
        self._locks: dict[str, asyncio.Lock] = {}

    async def get_session(self, session_id: str) -> Optional[Session]:
        data = self._sessions.get(session_id)
        if not data:
            return None
        return Session.model_validate_json(data)

    async def save_session(self, session: Session) -> None:
        self._sessions[session.session_id] = session.model_dump_json(by_alias=True)

    async def claim_code(self, code: str, session_id: str) -> bool:
        if code in self._codes:
            return False
        self._codes[code] = session_id
        return True

    async def lookup_code(self, code: str) -> Optional[str]:
        return self._codes.get(code)

    async def release_code(self, code: str) -> None:
        self._codes.pop(code, None)

    async def get_default_hosts(self) -> List[str]:
        return list(self._default_hosts)

    async def set_default_hosts(self, hosts: List[str]) -> None:
        self._default_hosts = list(hosts)

    @asynccontextmanager
    async def lock(self, session_id: str):
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        try:
            async with lock:
                yield
        finally:
            # Unknown session ids must not leave locks behind
            if session_id not in self._sessions and not lock.locked():
                self._locks.pop(session_id, None)

    async def close(self) -> None:
        pass


store: Optional[SessionStore] = None


def init_store(settings: Settings) -> SessionStore:
    global store
    if settings.store_backend == "memory":
        logger.warning("Using in-memory session store; data is lost on restart")
        store = MemorySessionStore()
    else:
        store = RedisSessionStore.from_url(
            settings.database_url, lock_timeout=settings.lock_timeout_seconds
        )
    return store


async def close_store():
    global store
    if store is not None:
        await store.close()
        store = None


def get_store() -> SessionStore:
    """FastAPI dependency."""
    if store is None:
        raise RuntimeError("Session store not initialized")
    return store
