from typing import Iterable, Optional

from playlistify.models.session import ELEVATED_ROLES, HOST_FLAG, QueueEntry, Session


def can_moderate(session: Session, uid: Optional[str], bypass_uids: Iterable[str] = ()) -> bool:
    if not uid:
        return False
    if uid in bypass_uids or uid == session.host:
        return True
    if session.guests.get(uid) == HOST_FLAG:
        return True
    user = session.users.get(uid)
    return user is not None and user.role in ELEVATED_ROLES


def owns_entry(session: Session, entry: QueueEntry, uid: Optional[str], name: Optional[str] = None) -> bool:
    if entry.uid:
        return uid is not None and entry.uid == uid
    # Entries added without a uid can only be matched by display name
    user = session.users.get(uid) if uid else None
    actor_name = user.name if user else name
    return bool(actor_name) and entry.added_by == actor_name


def can_mutate_entry(
    session: Session,
    entry: QueueEntry,
    uid: Optional[str],
    name: Optional[str] = None,
    bypass_uids: Iterable[str] = (),
) -> bool:
    return can_moderate(session, uid, bypass_uids) or owns_entry(session, entry, uid, name)
