"""
trip_session.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for every component of the layer.
- Offer a cached settings instance for the composition root and the CLI.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration (prefix `TRIP_`).
    Defaults point at a local development backend.
    """

    model_config = SettingsConfigDict(env_prefix="TRIP_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "trip-session"
    log_level: str = "INFO"
    # JSON lines by default; console rendering for interactive CLI use.
    log_json: bool = True

    # Remote API
    api_base_url: str = "http://localhost:5000/api"
    # AI itinerary generation can take minutes on the backend.
    request_timeout_seconds: float = 120.0
    unauthorized_status: int = 401

    # Session bootstrap
    restore_timeout_seconds: float = 5.0
    # Proactive renewal ahead of access-token expiry (15 min server side); 0 disables.
    renewal_interval_seconds: float = Field(default=14 * 60, ge=0)
    # Local logout after this long without `touch()`; 0 disables.
    idle_timeout_seconds: float = Field(default=30 * 60, ge=0)
    credential_path: Path = Field(
        default=Path.home() / ".trip-planner" / "credential.json",
        repr=False,
    )

    # Real-time channel
    realtime_url: str = "ws://localhost:5000/realtime"
    channel_reconnect_delay_seconds: float = 5.0
    channel_max_reconnect_delay_seconds: float = 30.0

    # Notifications
    notification_capacity: int = Field(default=50, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Components receive a Settings instance explicitly; only the CLI entrypoint
# reads the cached one.
