"""Reference backend for the onboarding sync endpoints.

Serves the same routes the mobile client talks to, for local
development and integration tests.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from onboard.config import settings
from onboard.core.errors import register_error_handlers
from onboard.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from onboard.dependencies import engine
from onboard.routers import answers, progress

logger = logging.getLogger("onboard")

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create database tables on startup if they don't exist."""
    from onboard.models.base import Base
    # Import all models so Base.metadata is populated
    from onboard.models import cache, remote  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Middleware order matters: last added is outermost
app.add_middleware(RequestIDMiddleware)
app.add_middleware(AccessLogMiddleware)

register_error_handlers(app)

app.include_router(progress.router, prefix=API_PREFIX)
app.include_router(answers.router, prefix=API_PREFIX)


@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.app_name, "version": "0.1.0"}
