from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the event router tooling.

    Values are loaded from ``EVENT_ROUTER_*`` environment variables (or a
    ``.env`` file) and may be overridden via CLI flags.
    """

    # Logging
    log_level: str = "INFO"
    log_format: Literal["plain", "json"] = "plain"

    # Default ``module:attribute`` path of the router the CLI loads.
    app: str | None = None

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_prefix="EVENT_ROUTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
