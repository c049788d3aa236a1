"""Application configuration, read from the environment via pydantic-settings.

List settings (origins, word pool, bypass ids) are comma-separated strings in
the environment, e.g. ``ADMIN_WORDS=vinilo,karaoke``.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ADMIN_WORDS = [
    "palomitas", "karaoke", "vinilo", "guitarra",
    "mixtape", "bateria", "tocadiscos", "estribillo",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Document store
    store_backend: Literal["redis", "memory"] = "redis"
    database_url: str = "redis://localhost:6379/0"
    lock_timeout_seconds: float = 10.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origins: Annotated[list[str], NoDecode] = ["*"]

    # Sessions
    admin_words: Annotated[list[str], NoDecode] = DEFAULT_ADMIN_WORDS
    bypass_uids: Annotated[list[str], NoDecode] = []
    online_window_seconds: int = 40

    # Observability
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("allowed_origins", "admin_words", "bypass_uids", mode="before")
    @classmethod
    def split_csv(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
