"""User records: upsert, roles, liveness, moderation and name propagation."""

from conftest import entry_body


async def test_upsert_creates_guest_with_generated_uid(client, session):
    sid = session["sessionId"]
    res = await client.post(f"/session/{sid}/user", json={"name": "Ana", "device": "android"})
    data = res.json()

    assert res.status_code == 200
    assert data["ok"] is True and data["uid"]
    assert data["rol"] == "invitado"

    users = (await client.get(f"/session/{sid}/users")).json()
    assert users[data["uid"]]["name"] == "Ana"
    assert users[data["uid"]]["device"] == "android"
    assert users[data["uid"]]["online"] is True


async def test_upsert_host_uid_gets_host_role(client, session):
    sid = session["sessionId"]
    res = await client.post(f"/session/{sid}/user", json={"uid": sid, "name": "TV"})
    assert res.json()["rol"] == "anfitrion"


async def test_upsert_existing_user_keeps_role_and_updates_name(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})
    await client.post(f"/session/{sid}/user/u1/role", json={"rol": "admin"})

    res = await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana María"})

    assert res.json()["rol"] == "admin"
    users = (await client.get(f"/session/{sid}/users")).json()
    assert users["u1"]["name"] == "Ana María"


async def test_upsert_without_name_returns_400(client, session):
    res = await client.post(f"/session/{session['sessionId']}/user", json={"uid": "u1"})
    assert res.status_code == 400


async def test_users_offline_after_window(client, session, store):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})

    stored = await store.get_session(sid)
    stored.users["u1"].last_seen -= 41_000
    await store.save_session(stored)

    users = (await client.get(f"/session/{sid}/users")).json()
    assert users["u1"]["online"] is False


async def test_change_role_validates_role_and_user(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})

    assert (await client.post(f"/session/{sid}/user/u1/role", json={"rol": "rey"})).status_code == 400
    assert (await client.post(f"/session/{sid}/user/ghost/role", json={"rol": "admin"})).status_code == 404

    res = await client.post(f"/session/{sid}/user/u1/role", json={"rol": "anfitrion"})
    assert res.json()["ok"] is True
    guests = (await client.get(f"/session/{sid}")).json()["guests"]
    assert guests["u1"] == "host"


async def test_ban_removes_user_and_blocks_rejoin(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})

    res = await client.post(f"/session/{sid}/user/u1/ban")

    assert res.json() == {"ok": True, "uid": "u1"}
    assert (await client.get(f"/session/{sid}/banned")).json() == {"u1": True}
    assert "u1" not in (await client.get(f"/session/{sid}/users")).json()
    rejoin = await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})
    assert rejoin.status_code == 403


async def test_unban_allows_rejoin(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user/u1/ban")

    res = await client.post(f"/session/{sid}/user/u1/unban")

    assert res.json() == {"ok": True, "uid": "u1"}
    assert (await client.get(f"/session/{sid}/banned")).json() == {}
    rejoin = await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})
    assert rejoin.status_code == 200


async def test_kick_removes_user_without_banning(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})

    res = await client.post(f"/session/{sid}/user/u1/kick")

    assert res.json() == {"ok": True, "uid": "u1"}
    assert "u1" not in (await client.get(f"/session/{sid}/users")).json()
    assert (await client.get(f"/session/{sid}/banned")).json() == {}


async def test_moderation_on_unknown_session_returns_404(client):
    assert (await client.post("/session/nope/user/u1/ban")).status_code == 404
    assert (await client.get("/session/nope/users")).status_code == 404


async def test_update_name_propagates_to_owned_entries_only(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})
    await client.post("/queue/add", json=entry_body(sid, "v1", uid="u1"))
    await client.post("/queue/add", json=entry_body(sid, "v2", uid="u1"))
    await client.post("/queue/add", json=entry_body(sid, "v3", uid="u2", usuario="Luis"))

    res = await client.post(f"/session/{sid}/user/u1/updateName", json={"name": "Anita"})

    assert res.json() == {"ok": True, "actualizadas": 2}
    queue = (await client.get(f"/queue/{sid}")).json()
    names = {e["id"]: e["usuario"] for e in queue.values()}
    assert names == {"v1": "Anita", "v2": "Anita", "v3": "Luis"}
    playback = (await client.get(f"/playback/{sid}")).json()
    assert playback["currentVideo"]["usuario"] == "Anita"
    users = (await client.get(f"/session/{sid}/users")).json()
    assert users["u1"]["name"] == "Anita"


async def test_update_name_renames_entries_without_claiming_them(client, session):
    sid = session["sessionId"]
    await client.post(f"/session/{sid}/user", json={"uid": "u1", "name": "Ana"})
    await client.post("/queue/add", json=entry_body(sid, "v1"))

    res = await client.post(f"/session/{sid}/user/u1/updateName", json={"name": "Anita"})

    assert res.json() == {"ok": True, "actualizadas": 1}
    entry = next(iter((await client.get(f"/queue/{sid}")).json().values()))
    assert entry["usuario"] == "Anita"
    assert entry["uid"] is None


async def test_update_name_for_unknown_user_returns_404(client, session):
    sid = session["sessionId"]
    await client.post("/queue/add", json=entry_body(sid, "v1"))

    res = await client.post(f"/session/{sid}/user/ghost/updateName", json={"name": "Anita"})

    assert res.status_code == 404
    assert res.json()["code"] == "NOT_FOUND"
    entry = next(iter((await client.get(f"/queue/{sid}")).json().values()))
    assert entry["usuario"] == "Ana"


async def test_update_name_requires_name(client, session):
    res = await client.post(f"/session/{session['sessionId']}/user/u1/updateName", json={})
    assert res.status_code == 400
