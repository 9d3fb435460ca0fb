from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import Depends, Header, HTTPException

from familyhub.context import HouseholdContext
from familyhub.settings import get_settings


async def require_user_email(
    x_user_email: str | None = Header(default=None, alias="X-User-Email"),
    x_backend_token: str | None = Header(default=None, alias="X-Backend-Token"),
) -> str:
    settings = get_settings()
    if not x_backend_token or x_backend_token != settings.backend_session_secret:
        raise HTTPException(status_code=401, detail="Invalid backend token")
    if not x_user_email:
        raise HTTPException(status_code=401, detail="Missing user email")
    email = x_user_email.strip().lower()
    if settings.allowed_emails and email not in settings.allowed_emails:
        raise HTTPException(status_code=403, detail="User not allowed")
    return email


def current_local_time() -> datetime:
    """Naive wall-clock time in the household timezone."""
    settings = get_settings()
    return datetime.now(ZoneInfo(settings.hub_timezone)).replace(tzinfo=None)


async def require_household(
    user_email: str = Depends(require_user_email),
    now: datetime = Depends(current_local_time),
) -> HouseholdContext:
    return HouseholdContext(household_id=user_email, user_email=user_email, now=now)
