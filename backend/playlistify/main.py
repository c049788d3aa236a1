import logging
import time
from contextlib import asynccontextmanager

import socketio
import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from playlistify import database
from playlistify.config import Settings, get_settings
from playlistify.database import SessionStore, get_store
from playlistify.error_handlers import register_error_handlers
from playlistify.models.requests import (
    AddEntryBody,
    AdvanceBody,
    DefaultHostsBody,
    GrantBody,
    PlayNextBody,
    RemoveEntryBody,
    RoleBody,
    SecretEnableBody,
    SecretWordBody,
    UpdateNameBody,
    UpsertUserBody,
    VerifyCodeBody,
)
from playlistify.models.session import QueueEntry, Session
from playlistify.observability import setup_logging
from playlistify.services import queue as queue_service
from playlistify.services import session as session_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_store(settings)
    logger.info("Playlistify API started")
    yield
    await database.close_store()
    logger.info("Playlistify API shutting down")


app = FastAPI(title="Playlistify API", lifespan=lifespan)

# CORS Configuration
origins = get_settings().allowed_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_error_handlers(app)

sio = socketio.AsyncServer(async_mode='asgi', cors_allowed_origins=origins if origins != ["*"] else "*")
socket_app = socketio.ASGIApp(sio, app)


async def _emit(event: str, data: dict, session_id: str):
    try:
        await sio.emit(event, {**data, "server_time": time.time()}, room=session_id)
    except Exception as e:
        logger.error(f"Error emitting {event}: {e}", exc_info=True, extra={"session_id": session_id, "event": event})


async def _emit_queue(session: Session):
    await _emit("queue_update", {
        "queue": session.queue_view(),
        "queueOrder": session.queue_order,
    }, session.session_id)


async def _emit_playback(session: Session):
    await _emit("playback_update", {"playbackState": session.playback_view()}, session.session_id)


async def _emit_users(session: Session):
    users = {uid: u.model_dump(by_alias=True, mode="json") for uid, u in session.users.items()}
    await _emit("users_update", {"usuarios": users}, session.session_id)


# REST API

@app.get("/")
async def health():
    return {"ok": True, "message": "Playlistify API running"}


@app.post("/session/create")
async def create_session(
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    session, admin_word = await session_service.create_session(store, settings.admin_words)
    response = {"sessionId": session.session_id, "code": session.code}
    if admin_word:
        response["adminWord"] = admin_word
    return response


@app.post("/session/verify")
async def verify_session(body: VerifyCodeBody, store: SessionStore = Depends(get_store)):
    session_id = await session_service.verify_code(store, body.code)
    return {"sessionId": session_id}


@app.post("/session/admin/grant")
async def grant_admin(body: GrantBody, store: SessionStore = Depends(get_store)):
    user, session = await session_service.grant_admin(
        store, body.session_id, body.uid, body.word, body.name
    )
    await _emit_users(session)
    return {"ok": True, "rol": user.role}


@app.get("/session/{session_id}")
async def get_session(session_id: str, store: SessionStore = Depends(get_store)):
    session = await session_service.require_session(store, session_id)
    return session.public_view()


@app.get("/queue/{session_id}")
async def get_queue(session_id: str, store: SessionStore = Depends(get_store)):
    return await queue_service.get_queue(store, session_id)


@app.get("/queueOrder/{session_id}")
async def get_queue_order(session_id: str, store: SessionStore = Depends(get_store)):
    return await queue_service.get_queue_order(store, session_id)


@app.get("/playback/{session_id}")
async def get_playback(session_id: str, store: SessionStore = Depends(get_store)):
    return await queue_service.get_playback(store, session_id)


@app.post("/queue/add")
async def add_to_queue(body: AddEntryBody, store: SessionStore = Depends(get_store)):
    entry = QueueEntry(
        id=body.id,
        title=body.title,
        added_by=body.added_by,
        thumbnail_url=body.thumbnail_url,
        duration=body.duration,
        uid=body.uid,
    )
    key, session = await queue_service.add_entry(store, body.session_id, entry)
    await _emit_queue(session)
    await _emit_playback(session)
    return {"ok": True, "message": "Video agregado a la cola", "key": key}


@app.post("/queue/remove")
async def remove_from_queue(
    body: RemoveEntryBody,
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    session = await queue_service.remove_entry(
        store, body.session_id, body.key,
        uid=body.uid, name=body.added_by, bypass_uids=settings.bypass_uids,
    )
    await _emit_queue(session)
    await _emit_playback(session)
    return {"ok": True, "message": "Video eliminado de la cola"}


@app.post("/queue/playnext")
async def play_next(body: PlayNextBody, store: SessionStore = Depends(get_store)):
    new_order, session = await queue_service.play_next(store, body.session_id, body.key)
    await _emit_queue(session)
    return {"ok": True, "message": "Video movido a la siguiente posición", "newOrder": new_order}


@app.post("/playback/{session_id}/next")
async def advance_playback(
    session_id: str,
    body: AdvanceBody,
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    session = await queue_service.advance(
        store, session_id,
        uid=body.uid, name=body.added_by, bypass_uids=settings.bypass_uids,
    )
    await _emit_queue(session)
    await _emit_playback(session)
    return {"ok": True, "currentVideo": session.playback_view()["currentVideo"]}


@app.post("/hosts/default")
async def set_default_hosts(body: DefaultHostsBody, store: SessionStore = Depends(get_store)):
    updated = await session_service.set_default_hosts(store, body.hosts)
    return {"ok": True, "updated": updated}


@app.get("/hosts/default")
async def get_default_hosts(store: SessionStore = Depends(get_store)):
    return {"hosts": await session_service.get_default_hosts(store)}


# Users

@app.post("/session/{session_id}/user")
async def upsert_user(session_id: str, body: UpsertUserBody, store: SessionStore = Depends(get_store)):
    uid, user, session = await session_service.upsert_user(
        store, session_id, body.name, uid=body.uid, device=body.device
    )
    await _emit_users(session)
    return {"ok": True, "uid": uid, "rol": user.role}


@app.post("/session/{session_id}/user/{uid}/role")
async def change_role(session_id: str, uid: str, body: RoleBody, store: SessionStore = Depends(get_store)):
    session = await session_service.change_role(store, session_id, uid, body.role)
    await _emit_users(session)
    return {"ok": True, "message": f"Rol actualizado a {body.role.value}"}


@app.get("/session/{session_id}/users")
async def list_users(
    session_id: str,
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    return await session_service.list_users(store, session_id, settings.online_window_seconds)


@app.post("/session/{session_id}/user/{uid}/ban")
async def ban_user(session_id: str, uid: str, store: SessionStore = Depends(get_store)):
    session = await session_service.ban_user(store, session_id, uid)
    await _emit("user_banned", {"uid": uid}, session_id)
    await _emit_users(session)
    return {"ok": True, "uid": uid}


@app.post("/session/{session_id}/user/{uid}/unban")
async def unban_user(session_id: str, uid: str, store: SessionStore = Depends(get_store)):
    await session_service.unban_user(store, session_id, uid)
    return {"ok": True, "uid": uid}


@app.post("/session/{session_id}/user/{uid}/kick")
async def kick_user(session_id: str, uid: str, store: SessionStore = Depends(get_store)):
    session = await session_service.kick_user(store, session_id, uid)
    await _emit("user_kicked", {"uid": uid}, session_id)
    await _emit_users(session)
    return {"ok": True, "uid": uid}


@app.get("/session/{session_id}/banned")
async def list_banned(session_id: str, store: SessionStore = Depends(get_store)):
    return await session_service.list_banned(store, session_id)


@app.post("/session/{session_id}/user/{uid}/updateName")
async def update_name(session_id: str, uid: str, body: UpdateNameBody, store: SessionStore = Depends(get_store)):
    updated, session = await session_service.update_name(store, session_id, uid, body.name)
    await _emit_users(session)
    if updated:
        await _emit_queue(session)
        await _emit_playback(session)
    return {"ok": True, "actualizadas": updated}


@app.post("/session/{session_id}/refresh")
async def refresh_session(session_id: str, store: SessionStore = Depends(get_store)):
    session = await session_service.refresh_session(store, session_id)
    await _emit("session_update", {"code": session.code}, session_id)
    await _emit_queue(session)
    await _emit_playback(session)
    return {"ok": True, "code": session.code}


# Secret word

@app.post("/session/{session_id}/secret/change")
async def change_secret(session_id: str, body: SecretWordBody, store: SessionStore = Depends(get_store)):
    await session_service.change_secret(store, session_id, body.word)
    return {"ok": True}


@app.post("/session/{session_id}/secret/rotate")
async def rotate_secret(
    session_id: str,
    store: SessionStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    word = await session_service.rotate_secret(store, session_id, settings.admin_words)
    return {"ok": True, "adminWord": word}


@app.post("/session/{session_id}/secret/enable")
async def enable_secret(session_id: str, body: SecretEnableBody, store: SessionStore = Depends(get_store)):
    session = await session_service.enable_secret(store, session_id, body.enabled)
    return {"ok": True, "enabled": session.secret.enabled}


# Socket Events

def _resolve_store() -> SessionStore:
    """Socket handlers sit outside dependency injection; honour the overrides."""
    return app.dependency_overrides.get(get_store, get_store)()


@sio.event
async def connect(sid, environ):
    logger.info(f"Client {sid} connected")


@sio.event
async def disconnect(sid):
    logger.info(f"Client {sid} disconnected")


@sio.event
async def join_session(sid, data):
    session_id = (data or {}).get("sessionId")
    if not session_id:
        await sio.emit("error", {"message": "Sesión no encontrada"}, to=sid)
        return

    session = await _resolve_store().get_session(session_id)
    if session is None:
        logger.warning(
            f"Session {session_id} not found for join request",
            extra={"sid": sid, "session_id": session_id, "event": "join_session"},
        )
        await sio.emit("error", {"message": "Sesión no encontrada"}, to=sid)
        return

    await sio.enter_room(sid, session_id)
    logger.info(
        f"Client {sid} joined session {session_id}",
        extra={"sid": sid, "session_id": session_id, "event": "join_session"},
    )
    await sio.emit("session_state", {
        "session": session.public_view(),
        "queue": session.queue_view(),
        "queueOrder": session.queue_order,
        "playbackState": session.playback_view(),
        "server_time": time.time(),
    }, to=sid)


@sio.event
async def leave_session(sid, data):
    session_id = (data or {}).get("sessionId")
    if session_id:
        await sio.leave_room(sid, session_id)


def run():
    settings = get_settings()
    uvicorn.run(socket_app, host=settings.host, port=settings.port)
