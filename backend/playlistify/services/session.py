import logging
import random
import time
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from playlistify.database import SessionStore
from playlistify.errors import (
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
    SessionNotFoundError,
    StoreError,
    ValidationError,
)
from playlistify.models.session import GUEST_FLAG, HOST_FLAG, Role, Session, User
from playlistify.services import secret as secret_service

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 50


def now_ms() -> int:
    return int(time.time() * 1000)


def _generate_code() -> str:
    return str(random.randint(1000, 9999))


async def _claim_new_code(store: SessionStore, session_id: str) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = _generate_code()
        if await store.claim_code(code, session_id):
            return code
    raise StoreError("Could not allocate a join code")


async def require_session(store: SessionStore, session_id: str) -> Session:
    session = await store.get_session(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return session


async def create_session(store: SessionStore, admin_words: Sequence[str] = ()) -> Tuple[Session, Optional[str]]:
    session_id = str(uuid.uuid4())
    code = await _claim_new_code(store, session_id)
    default_hosts = await store.get_default_hosts()
    admin_word = secret_service.pick_word(admin_words)

    session = Session(
        session_id=session_id,
        code=code,
        host=session_id,
        guests={uid: HOST_FLAG for uid in default_hosts},
        secret=secret_service.make_secret(admin_word) if admin_word else None,
        created_at=now_ms(),
    )
    await store.save_session(session)
    logger.info(f"Session created with code {code}", extra={"session_id": session_id})
    return session, admin_word


async def verify_code(store: SessionStore, code: str) -> str:
    session_id = await store.lookup_code(code)
    if not session_id or await store.get_session(session_id) is None:
        raise NotFoundError("Código de sala no encontrado")
    return session_id


async def refresh_session(store: SessionStore, session_id: str) -> Session:
    """Start over: empty queue, no playback, no bans and a new join code.
    Users, guests and the secret word are kept."""
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        old_code = session.code
        session.code = await _claim_new_code(store, session_id)
        session.queue = {}
        session.queue_order = []
        session.banned = {}
        session.clear_playback()
        await store.save_session(session)
    await store.release_code(old_code)
    logger.info(f"Session refreshed, code {old_code} -> {session.code}", extra={"session_id": session_id})
    return session


async def get_default_hosts(store: SessionStore) -> List[str]:
    return await store.get_default_hosts()


async def set_default_hosts(store: SessionStore, hosts: List[str]) -> int:
    hosts = list(dict.fromkeys(h.strip() for h in hosts if h and h.strip()))
    await store.set_default_hosts(hosts)
    return len(hosts)


# Users

async def upsert_user(
    store: SessionStore,
    session_id: str,
    name: str,
    uid: Optional[str] = None,
    device: Optional[str] = None,
) -> Tuple[str, User, Session]:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        uid = uid or str(uuid.uuid4())
        if uid in session.banned:
            raise ForbiddenError("Usuario baneado de la sesión")

        user = session.users.get(uid)
        if user is None:
            is_host = uid == session.host or session.guests.get(uid) == HOST_FLAG
            user = User(name=name, device=device, role=Role.HOST if is_host else Role.GUEST)
            session.users[uid] = user
        else:
            user.name = name
            if device is not None:
                user.device = device
        user.last_seen = now_ms()
        session.guests.setdefault(uid, HOST_FLAG if user.role == Role.HOST else GUEST_FLAG)
        await store.save_session(session)
    return uid, user, session


async def change_role(store: SessionStore, session_id: str, uid: str, role: Role) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        user = session.users.get(uid)
        if user is None:
            raise NotFoundError("Usuario no encontrado")
        user.role = Role(role).value
        session.guests[uid] = HOST_FLAG if user.role == Role.HOST else GUEST_FLAG
        await store.save_session(session)
    logger.info(f"Role of {uid} set to {user.role}", extra={"session_id": session_id, "uid": uid})
    return session


async def list_users(store: SessionStore, session_id: str, online_window_seconds: int = 40) -> Dict[str, dict]:
    session = await require_session(store, session_id)
    now = now_ms()
    users = {}
    for uid, user in session.users.items():
        data = user.model_dump(by_alias=True, mode="json")
        data["online"] = now - user.last_seen < online_window_seconds * 1000
        users[uid] = data
    return users


async def ban_user(store: SessionStore, session_id: str, uid: str) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        session.banned[uid] = True
        session.users.pop(uid, None)
        session.guests.pop(uid, None)
        await store.save_session(session)
    logger.info(f"User {uid} banned", extra={"session_id": session_id, "uid": uid})
    return session


async def unban_user(store: SessionStore, session_id: str, uid: str) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        session.banned.pop(uid, None)
        await store.save_session(session)
    return session


async def kick_user(store: SessionStore, session_id: str, uid: str) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        session.users.pop(uid, None)
        session.guests.pop(uid, None)
        await store.save_session(session)
    logger.info(f"User {uid} kicked", extra={"session_id": session_id, "uid": uid})
    return session


async def list_banned(store: SessionStore, session_id: str) -> Dict[str, bool]:
    session = await require_session(store, session_id)
    return dict(session.banned)


async def update_name(store: SessionStore, session_id: str, uid: str, name: str) -> Tuple[int, Session]:
    """Rename a user and every queue entry they added. Returns the number of
    queue entries changed."""
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        user = session.users.get(uid)
        if user is None:
            raise NotFoundError("Usuario no encontrado")
        old_name = user.name
        user.name = name

        updated = 0
        for entry in session.queue.values():
            owned = entry.uid == uid if entry.uid else entry.added_by == old_name
            if owned:
                entry.added_by = name
                updated += 1

        current = session.playback.current_video
        if current is not None and current.key in session.queue:
            session.playback.current_video = session.queue[current.key].model_copy()
        await store.save_session(session)
    return updated, session


# Secret word

async def change_secret(store: SessionStore, session_id: str, word: str) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        enabled = session.secret.enabled if session.secret else True
        session.secret = secret_service.make_secret(word)
        session.secret.enabled = enabled
        await store.save_session(session)
    logger.info("Secret word changed", extra={"session_id": session_id})
    return session


async def rotate_secret(store: SessionStore, session_id: str, pool: Sequence[str]) -> str:
    word = secret_service.pick_word(pool)
    if word is None:
        raise ValidationError("No hay palabras secretas configuradas")
    await change_secret(store, session_id, word)
    return word


async def enable_secret(store: SessionStore, session_id: str, enabled: bool) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        if session.secret is None:
            raise ValidationError("La sesión no tiene palabra secreta")
        session.secret.enabled = enabled
        await store.save_session(session)
    return session


async def grant_admin(
    store: SessionStore,
    session_id: str,
    uid: str,
    word: str,
    name: Optional[str] = None,
) -> Tuple[User, Session]:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        if session.secret is None or not session.secret.enabled:
            raise PreconditionFailedError("La elevación por palabra secreta no está habilitada")
        if uid in session.banned:
            raise ForbiddenError("Usuario baneado de la sesión")
        if not secret_service.verify_word(session.secret, word):
            logger.info(f"Wrong secret word from {uid}", extra={"session_id": session_id, "uid": uid})
            raise ForbiddenError("Palabra incorrecta")

        user = session.users.get(uid)
        if user is None:
            user = User(name=name or "Invitado")
            session.users[uid] = user
        elif name:
            user.name = name
        if user.role != Role.HOST:
            user.role = Role.ADMIN.value
        user.last_seen = now_ms()
        session.guests.setdefault(uid, GUEST_FLAG)
        await store.save_session(session)
    logger.info(f"User {uid} elevated to {user.role}", extra={"session_id": session_id, "uid": uid})
    return user, session
