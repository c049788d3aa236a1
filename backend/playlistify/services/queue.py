"""Play queue: a keyed mapping of entries plus ``queue_order``, the list of
keys in playback order. Index 0 of the order is the entry on screen."""

import logging
import uuid
from typing import Iterable, List, Optional, Tuple

from playlistify.database import SessionStore
from playlistify.errors import ForbiddenError, NotFoundError
from playlistify.models.session import PlaybackState, QueueEntry, Session
from playlistify.services.permissions import can_moderate, can_mutate_entry
from playlistify.services.session import require_session

logger = logging.getLogger(__name__)


async def get_queue(store: SessionStore, session_id: str) -> dict:
    return (await require_session(store, session_id)).queue_view()


async def get_queue_order(store: SessionStore, session_id: str) -> List[str]:
    return list((await require_session(store, session_id)).queue_order)


async def get_playback(store: SessionStore, session_id: str) -> dict:
    return (await require_session(store, session_id)).playback_view()


async def add_entry(store: SessionStore, session_id: str, entry: QueueEntry) -> Tuple[str, Session]:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        if entry.uid and entry.uid in session.banned:
            raise ForbiddenError("Usuario baneado de la sesión")

        key = uuid.uuid4().hex
        entry = entry.model_copy(update={"key": key})
        session.queue[key] = entry
        session.queue_order.append(key)

        # Nothing playing: the new entry goes straight on screen
        if not session.playback.playing:
            session.playback = PlaybackState(playing=True, current_video=entry)
        await store.save_session(session)

    logger.info(f"Queued {entry.id} as {key}", extra={"session_id": session_id, "uid": entry.uid, "key": key})
    return key, session


async def remove_entry(
    store: SessionStore,
    session_id: str,
    key: str,
    uid: Optional[str] = None,
    name: Optional[str] = None,
    bypass_uids: Iterable[str] = (),
) -> Session:
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        entry = session.queue.get(key)
        if entry is None:
            raise NotFoundError("Video no encontrado en la cola")
        if not can_mutate_entry(session, entry, uid, name, bypass_uids):
            raise ForbiddenError("No tienes permiso para eliminar este video")

        del session.queue[key]
        session.queue_order = [k for k in session.queue_order if k != key]
        # Removing the entry on screen does not promote the next one; see advance()
        if not session.queue_order:
            session.clear_playback()
        await store.save_session(session)

    logger.info(f"Removed {key} (by {uid})", extra={"session_id": session_id, "uid": uid, "key": key})
    return session


async def play_next(store: SessionStore, session_id: str, key: str) -> Tuple[List[str], Session]:
    """Move ``key`` to index 1, right after the entry playing now."""
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        order = session.queue_order
        if key not in order:
            raise NotFoundError("Video no encontrado en la cola")

        index = order.index(key)
        if index > 1:
            order.pop(index)
            order.insert(1, key)
            await store.save_session(session)
    return list(order), session


async def advance(
    store: SessionStore,
    session_id: str,
    uid: Optional[str] = None,
    name: Optional[str] = None,
    bypass_uids: Iterable[str] = (),
) -> Session:
    """Drop the entry on screen and put the next one in order on screen.

    Allowed for whoever may remove the entry on screen; with nothing on
    screen only moderators may advance."""
    async with store.lock(session_id):
        session = await require_session(store, session_id)
        current = session.playback.current_video
        on_screen = session.queue.get(current.key) if current is not None else None
        if on_screen is not None:
            allowed = can_mutate_entry(session, on_screen, uid, name, bypass_uids)
        else:
            allowed = can_moderate(session, uid, bypass_uids)
        if not allowed:
            raise ForbiddenError("No tienes permiso para pasar al siguiente video")

        if on_screen is not None:
            del session.queue[current.key]
            session.queue_order = [k for k in session.queue_order if k != current.key]

        if session.queue_order:
            head = session.queue[session.queue_order[0]]
            session.playback = PlaybackState(playing=True, current_video=head)
        else:
            session.clear_playback()
        await store.save_session(session)

    playing = session.playback.current_video
    logger.info(
        f"Advanced to {playing.key if playing else 'nothing'}",
        extra={"session_id": session_id, "uid": uid},
    )
    return session
