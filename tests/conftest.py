"""Shared fixtures for Family Hub tests."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from familyhub.auth import current_local_time
from familyhub.context import HouseholdContext
from familyhub.db import dispose_engine
from familyhub.db_init import init_db
from familyhub.main import create_app
from familyhub.settings import reset_settings
from tests.helpers import HOUSEHOLD, MONDAY, SECRET


@pytest.fixture
def hub_env(tmp_path, monkeypatch):
    """Point the app at a throw-away SQLite database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'hub.db'}")
    monkeypatch.setenv("BACKEND_SESSION_SECRET", SECRET)
    monkeypatch.delenv("ALLOWED_EMAILS", raising=False)
    monkeypatch.delenv("SCREEN_TIME_DEFAULT_DAILY_MINUTES", raising=False)
    monkeypatch.delenv("ROTATION_DEFAULT_RESET_DAY", raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
async def database(hub_env):
    await init_db()
    yield
    await dispose_engine()


@pytest.fixture
def make_ctx():
    def _make(now: datetime = MONDAY, household_id: str = HOUSEHOLD) -> HouseholdContext:
        return HouseholdContext(household_id=household_id, user_email=household_id, now=now)

    return _make


@pytest.fixture
def clock():
    """Mutable wall clock used by the API client."""
    return {"now": MONDAY}


@pytest.fixture
def client(hub_env, clock):
    app = create_app()
    app.dependency_overrides[current_local_time] = lambda: clock["now"]
    headers = {"X-Backend-Token": SECRET, "X-User-Email": HOUSEHOLD}
    with TestClient(app, headers=headers) as test_client:
        yield test_client
