"""Application settings loaded from environment variables."""

import os
import zoneinfo
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Dailies configuration. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/dailies.db"))

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")
    reset_interval_seconds: float = Field(default=60.0, gt=0)

    # HTTP server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8080)

    # WebSocket keep-alive: the server pings every ws_ping_interval seconds and
    # drops a client that stays silent (no pong, no frame) for ws_read_timeout.
    ws_ping_interval: float = Field(default=54.0, gt=0)
    ws_read_timeout: float = Field(default=60.0, gt=0)
    ws_write_timeout: float = Field(default=10.0, gt=0)
    ws_max_message_size: int = Field(default=512)

    # Notification hub
    subscriber_queue_size: int = Field(default=256, ge=1)
    hub_inbox_size: int = Field(default=256, ge=1)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @field_validator("scheduler_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            zoneinfo.ZoneInfo(value)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"invalid timezone '{value}'"
            raise ValueError(msg) from exc
        return value

    @model_validator(mode="after")
    def _check_keepalive(self) -> "Settings":
        if self.ws_read_timeout <= self.ws_ping_interval:
            msg = "ws_read_timeout must be greater than ws_ping_interval"
            raise ValueError(msg)
        return self


settings = Settings()
