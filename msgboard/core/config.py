# msgboard/core/config.py
"""
Runtime configuration for the message board service.

All values can be overridden through environment variables prefixed with
``MSGBOARD_`` or a local ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_LONG_POLL_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

DeliveryMode = Literal["long_poll", "push"]


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    environment: str = "development"
    log_level: str = "INFO"

    delivery_mode: DeliveryMode = Field(
        default="long_poll",
        description="GET /messages semantics: hold the request open or return a snapshot",
    )
    long_poll_timeout_seconds: float = Field(default=DEFAULT_LONG_POLL_TIMEOUT_SECONDS, gt=0)
    sse_heartbeat_interval: float = Field(default=15.0, gt=0)
    push_queue_size: int = Field(default=256, gt=0)
    max_message_length: int = Field(default=5000, gt=0)

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    static_dir: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="MSGBOARD_", env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("static_dir")
    @classmethod
    def _blank_static_dir_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
