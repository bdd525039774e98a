"""
config.py — pydantic-settings Settings class.

All environment variables for the tenantsync directory sync are declared
here. The pipeline and CLI import `settings` from this module.

Usage:
    from tenantsync_shared.config import settings
    print(settings.external_api_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tenantsync_shared.errors import ConfigurationError


def _find_dotenv() -> Path | None:
    """Walk up from CWD to find the nearest .env file."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        candidate = parent / ".env"
        if candidate.is_file():
            return candidate
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_dotenv() or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase (catalog store)
    # -------------------------------------------------------------------------
    supabase_url: str = Field(default="http://localhost:54321")
    supabase_service_key: str = Field(default="")

    # -------------------------------------------------------------------------
    # Upstream directory feed
    # -------------------------------------------------------------------------
    external_api_url: str = Field(default="")
    x_apig_appcode: str = Field(default="")
    external_api_cookies: str = Field(default="")
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("app_env", "node_env"),
    )
    feed_page_limit: int = Field(default=100, ge=1)
    feed_page_delay_seconds: float = Field(default=0.1, ge=0)
    feed_timeout_seconds: float = Field(default=30.0, gt=0)

    # -------------------------------------------------------------------------
    # Sync engine
    # -------------------------------------------------------------------------
    sync_batch_size: int = Field(default=10, ge=1)
    tenantsync_alias_file: str | None = Field(default=None)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )
    log_format: Literal["json", "console"] = Field(default="console")

    # -------------------------------------------------------------------------
    # Derived / computed
    # -------------------------------------------------------------------------
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @field_validator("supabase_url", "external_api_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/") if isinstance(v, str) else v

    def require_feed(self) -> str:
        """Return the feed URL or raise when it is not configured."""
        if not self.external_api_url:
            raise ConfigurationError(
                "EXTERNAL_API_URL environment variable is required"
            )
        return self.external_api_url


# ---------------------------------------------------------------------------
# Module-level singleton, import this everywhere
# ---------------------------------------------------------------------------
settings = Settings()
