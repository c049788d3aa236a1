from pydantic import BaseModel, ConfigDict, Field, StrictBool
from typing import List, Optional

from playlistify.models.session import Role


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class VerifyCodeBody(_Body):
    code: str = Field(min_length=1)


class AddEntryBody(_Body):
    session_id: str = Field(alias="sessionId", min_length=1)
    id: str = Field(min_length=1)
    title: str = Field(alias="titulo", min_length=1)
    added_by: str = Field(alias="usuario", min_length=1)
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    duration: Optional[str] = None
    uid: Optional[str] = None


class RemoveEntryBody(_Body):
    session_id: str = Field(alias="sessionId", min_length=1)
    key: str = Field(min_length=1)
    uid: Optional[str] = None
    added_by: Optional[str] = Field(default=None, alias="usuario")


class PlayNextBody(_Body):
    session_id: str = Field(alias="sessionId", min_length=1)
    key: str = Field(min_length=1)


class DefaultHostsBody(_Body):
    hosts: List[str]


class UpsertUserBody(_Body):
    uid: Optional[str] = None
    name: str = Field(min_length=1)
    device: Optional[str] = None


class RoleBody(_Body):
    role: Role = Field(alias="rol")


class SecretWordBody(_Body):
    word: str = Field(min_length=1)


class SecretEnableBody(_Body):
    enabled: StrictBool


class GrantBody(_Body):
    session_id: str = Field(alias="sessionId", min_length=1)
    uid: str = Field(min_length=1)
    word: str = Field(min_length=1)
    name: Optional[str] = None


class UpdateNameBody(_Body):
    name: str = Field(min_length=1)


class AdvanceBody(_Body):
    uid: Optional[str] = None
    added_by: Optional[str] = Field(default=None, alias="usuario")
