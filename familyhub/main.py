from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from familyhub.db import dispose_engine
from familyhub.db_init import init_db
from familyhub.errors import HubError
from familyhub.routes import bootstrap, members, rotation, screen_time, settings


def create_app() -> FastAPI:
    logging.basicConfig(
        level=os.getenv("BACKEND_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    app = FastAPI(title="Family Hub API", version="0.1.0")

    app.include_router(bootstrap.router)
    app.include_router(members.router)
    app.include_router(rotation.router)
    app.include_router(screen_time.router)
    app.include_router(settings.router)

    @app.on_event("startup")
    async def _startup():
        await init_db()

    @app.on_event("shutdown")
    async def _shutdown():
        await dispose_engine()

    @app.exception_handler(HubError)
    async def _hub_error_handler(request: Request, exc: HubError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "field": exc.field})

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        logging.getLogger("familyhub").exception("Unhandled exception: %s", exc)
        return JSONResponse(status_code=500, content={"detail": "Internal error"})

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
