from __future__ import annotations

import logging

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine

from familyhub.settings import get_settings

logger = logging.getLogger(__name__)

ASYNC_DRIVERS = {
    "postgres": "postgresql+asyncpg",
    "postgresql": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}
# libpq-only options asyncpg rejects as connect kwargs.
LIBPQ_QUERY_KEYS = ("sslmode", "channel_binding")
LOCAL_HOSTS = {"localhost", "127.0.0.1", "::1"}


def database_url(raw: str) -> URL:
    """Parse DATABASE_URL and point it at the async driver for its backend."""
    url = make_url(str(raw or "").strip())
    driver = ASYNC_DRIVERS.get(url.get_backend_name())
    if driver and url.drivername != driver:
        url = url.set(drivername=driver)
    return url.difference_update_query(LIBPQ_QUERY_KEYS)


def engine_options(raw: str) -> dict:
    url = make_url(str(raw or "").strip())
    if url.get_backend_name() == "sqlite":
        return {}
    options: dict = {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 10}
    ssl_mode = url.query.get("sslmode")
    if ssl_mode and ssl_mode != "disable":
        options["connect_args"] = {"ssl": ssl_mode}
    elif not ssl_mode and url.host and url.host not in LOCAL_HOSTS:
        options["connect_args"] = {"ssl": True}
    return options


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        raw = get_settings().database_url
        url = database_url(raw)
        _engine = create_async_engine(url, **engine_options(raw))
        logger.info("Database engine created for %s", url.get_backend_name())
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
