"""Donation Events API — FastAPI Application Factory."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from donation_api import __version__
from donation_api.common.constants import API_SECRET_HEADER
from donation_api.common.exceptions import register_exception_handlers
from donation_api.common.rate_limit import FixedWindowRateLimiter
from donation_api.config import Settings, settings
from donation_api.database import engine
from donation_api.events.router import router as events_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    limiter: FixedWindowRateLimiter = app.state.rate_limiter
    sweeper = asyncio.create_task(
        limiter.run_sweeper(app.state.settings.RATE_LIMIT_SWEEP_INTERVAL_MS),
    )
    app.state.rate_limit_sweeper = sweeper
    logger.info(
        "Donation API started (rate limit %d/%dms, secret %s)",
        limiter.max_requests,
        limiter.window_ms,
        "required" if app.state.settings.REQUIRE_API_SECRET else "not required",
    )
    yield
    # Shutdown
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await engine.dispose()
    logger.info("Donation API stopped")


def build_rate_limiter(app_settings: Settings) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        max_requests=app_settings.RATE_LIMIT_MAX,
        window_ms=app_settings.RATE_LIMIT_WINDOW_MS,
        max_keys=app_settings.RATE_LIMIT_MAX_KEYS,
    )


def create_app(
    app_settings: Optional[Settings] = None,
    rate_limiter: Optional[FixedWindowRateLimiter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = app_settings if app_settings is not None else settings
    app = FastAPI(
        title="Donation Events API",
        description="Receives donation telemetry from the browser extension",
        version=__version__,
        docs_url="/docs" if app_settings.ENVIRONMENT != "production" else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.rate_limiter = (
        rate_limiter if rate_limiter is not None else build_rate_limiter(app_settings)
    )

    # Exception handlers ({"ok": false, "error": ...})
    register_exception_handlers(app)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", API_SECRET_HEADER],
    )

    # Health check (no auth, no rate limit)
    @app.get("/health", tags=["system"])
    async def health_check():
        return {"ok": True}

    app.include_router(events_router, prefix="/events", tags=["events"])

    return app


app = create_app()
