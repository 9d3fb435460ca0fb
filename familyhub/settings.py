from __future__ import annotations

import os
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")
    backend_session_secret: str = Field(..., alias="BACKEND_SESSION_SECRET")

    hub_timezone: str = Field("America/Montreal", alias="HUB_TIMEZONE")

    allowed_emails_raw: str = Field("", alias="ALLOWED_EMAILS")

    screen_time_default_daily_minutes: int = Field(60, alias="SCREEN_TIME_DEFAULT_DAILY_MINUTES")
    screen_time_default_hearts: int = Field(5, alias="SCREEN_TIME_DEFAULT_HEARTS")
    rotation_default_reset_day: int = Field(1, alias="ROTATION_DEFAULT_RESET_DAY")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_emails(self) -> List[str]:
        return [email.strip().lower() for email in self.allowed_emails_raw.split(",") if email.strip()]


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("BACKEND_DEBUG_SETTINGS"):
    print(get_settings())
