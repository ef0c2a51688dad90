"""
Configuration and settings for the reminder relay.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # VAPID credentials (generate with scripts/generate_vapid_keys.py)
    vapid_public_key: Optional[str] = Field(default=None, alias="VAPID_PUBLIC_KEY")
    vapid_private_key: Optional[str] = Field(default=None, alias="VAPID_PRIVATE_KEY")
    vapid_subject: str = Field(
        default="mailto:your-email@example.com", alias="VAPID_SUBJECT"
    )

    # Delivery
    delivery_timeout_seconds: float = Field(
        default=10.0, gt=0, le=30, alias="DELIVERY_TIMEOUT_SECONDS"
    )
    push_ttl_seconds: int = Field(default=86400, ge=0, alias="PUSH_TTL_SECONDS")

    # Scheduling
    cron_secret: Optional[str] = Field(default=None, alias="CRON_SECRET")
    reminder_timezone: Optional[str] = Field(default=None, alias="REMINDER_TIMEZONE")
    local_ticker_enabled: bool = Field(default=False, alias="LOCAL_TICKER_ENABLED")

    # CORS
    frontend_url: Optional[str] = Field(default=None, alias="FRONTEND_URL")
    cors_allowed_origins: list[str] = Field(
        default=[
            "https://meal-notify.vercel.app",
            "http://localhost:5173",
            "http://localhost:8080",
            "http://localhost:3000",
        ],
        alias="CORS_ALLOWED_ORIGINS",
    )
    cors_origin_regex: Optional[str] = Field(
        default=r"https://meal-notify-git-main-.*\.vercel\.app",
        alias="CORS_ORIGIN_REGEX",
    )

    # Development toggles
    use_in_memory_delivery: bool = Field(
        default=False, alias="MEAL_NOTIFY_USE_IN_MEMORY_DELIVERY"
    )

    @property
    def allowed_origins(self) -> list[str]:
        origins = list(self.cors_allowed_origins)
        if self.frontend_url and self.frontend_url not in origins:
            origins.insert(0, self.frontend_url)
        return origins

    @property
    def has_vapid_keys(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
