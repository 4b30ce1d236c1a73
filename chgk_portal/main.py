"""
CHGK Portal — FastAPI application entry-point.

Run with:
    uvicorn chgk_portal.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

import chgk_portal.models  # noqa: F401
from chgk_portal.config import settings
from chgk_portal.database import Base, engine, is_configured
from chgk_portal.utils.logging_config import setup_logging

# ── Import routers ──
from chgk_portal.routers import (
    announcements,
    auth,
    games,
    media,
    notifications,
    polls,
    profile,
    questions,
)

logger = logging.getLogger(__name__)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if engine is None:
        logger.warning("DATABASE_URL is empty, data endpoints will answer 503")
    else:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="Question submissions, game panels and club news for a ЧГК club.",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Session middleware (host grant lives for the browser session only) ──
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SECRET_KEY,
    max_age=None,
    https_only=not settings.DEBUG,
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=("*",))

# ── Register API routers ──
app.include_router(auth.router)
app.include_router(profile.router)
app.include_router(questions.router)
app.include_router(games.router)
app.include_router(announcements.router)
app.include_router(polls.router)
app.include_router(media.router)
app.include_router(notifications.router)

# ── Uploaded images ──
Path(settings.MEDIA_ROOT).mkdir(parents=True, exist_ok=True)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_ROOT), name="media")


@app.get("/health")
async def health():
    return {"status": "ok", "store": "configured" if is_configured() else "missing"}
