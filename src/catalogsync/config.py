"""Runtime configuration for catalogsync."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalogsync.remote.wire import DEFAULT_COLLECTION
from catalogsync.util.ids import DEFAULT_TEMP_PREFIX

ENV_PREFIX = "CATALOGSYNC_"


class SyncConfig(BaseSettings):
    """
    Engine settings, read from CATALOGSYNC_* environment variables.

    Keyword arguments take precedence over the environment; blank variables
    fall back to the defaults. Invalid values raise pydantic's
    ValidationError (a ValueError).

    Attributes:
        db_path: sqlite file holding entities and the operation log.
        base_url: backend API root (e.g. http://localhost:3000/api).
        collection: backend collection name for catalog items.
        request_timeout: time budget of one HTTP attempt in seconds.
        sync_interval: periodic sync timer in seconds; 0 disables it.
        max_retries: in-call retries for transient transport failures.
        retry_initial_delay: first backoff delay in seconds.
        temp_id_prefix: reserved prefix of temporary identifiers.
        token: optional bearer token for the backend.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
    )

    db_path: str = Field(default="catalogsync.db", min_length=1)
    base_url: str = Field(default="http://localhost:3000/api", min_length=1)
    collection: str = Field(default=DEFAULT_COLLECTION, min_length=1)
    request_timeout: float = Field(default=10.0, gt=0)
    sync_interval: float = Field(default=60.0, ge=0)
    max_retries: int = Field(default=2, ge=0)
    retry_initial_delay: float = Field(default=0.5, ge=0)
    temp_id_prefix: str = Field(default=DEFAULT_TEMP_PREFIX, min_length=1)
    token: Optional[str] = None

    @field_validator("collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        """Collection names become a URL path segment."""
        if "/" in v:
            raise ValueError("collection must be a name without '/'")
        return v

    @field_validator("token")
    @classmethod
    def blank_token_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Build a config from the environment; keyword overrides win."""
        return cls(**overrides)
