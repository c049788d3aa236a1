from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


class Role(str, Enum):
    HOST = "anfitrion"
    ADMIN = "admin"
    GUEST = "invitado"


ELEVATED_ROLES = (Role.HOST.value, Role.ADMIN.value)

# Values of Session.guests
HOST_FLAG = "host"
GUEST_FLAG = "guest"


class QueueEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: Optional[str] = None # Storage key inside Session.queue
    id: str # Video / track id
    title: str = Field(alias="titulo")
    added_by: str = Field(alias="usuario") # Display name
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    duration: Optional[str] = None # ISO-8601, e.g. PT3M21S
    uid: Optional[str] = None # Owner's user id


class PlaybackState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    playing: bool = False
    current_video: Optional[QueueEntry] = Field(default=None, alias="currentVideo")


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    name: str
    device: Optional[str] = None
    role: Role = Role.GUEST
    last_seen: int = Field(default=0, alias="lastSeen") # Epoch ms


class SecretWord(BaseModel):
    salt: str # base64
    hash: str # base64(sha256(salt + word))
    enabled: bool = True
    version: int # Epoch ms of the last change


class Session(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    code: str # 4-digit join code
    host: str
    guests: Dict[str, str] = {} # uid -> HOST_FLAG | GUEST_FLAG
    pending_requests: Dict[str, bool] = Field(default_factory=dict, alias="pendingRequests")
    users: Dict[str, User] = Field(default_factory=dict, alias="usuarios")
    banned: Dict[str, bool] = Field(default_factory=dict, alias="baneados")
    secret: Optional[SecretWord] = None
    queue: Dict[str, QueueEntry] = {}
    queue_order: List[str] = Field(default_factory=list, alias="queueOrder")
    playback: PlaybackState = Field(default_factory=PlaybackState, alias="playbackState")
    created_at: int = Field(alias="createdAt")

    def public_view(self) -> dict:
        """Session document as served to clients: no queue data, no secret hash."""
        data = self.model_dump(
            by_alias=True,
            mode="json",
            exclude={"queue", "queue_order", "playback", "secret"},
        )
        data["secret"] = (
            {"enabled": self.secret.enabled, "version": self.secret.version}
            if self.secret else None
        )
        return data

    def queue_view(self) -> dict:
        return {k: e.model_dump(by_alias=True, mode="json") for k, e in self.queue.items()}

    def playback_view(self) -> dict:
        return self.playback.model_dump(by_alias=True, mode="json")

    def clear_playback(self):
        self.playback = PlaybackState()
