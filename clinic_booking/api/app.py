"""FastAPI application factory for the clinic booking service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_booking import __version__
from clinic_booking.api.errors import register_exception_handlers
from clinic_booking.api.middleware import APIKeyMiddleware, RequestLoggingMiddleware
from clinic_booking.api.routes import booking, health, sessions
from clinic_booking.config import Settings, get_settings
from clinic_booking.core.database import dispose_engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # SQLite is the development backend; PostgreSQL schemas are managed outside the app.
    if settings.is_sqlite:
        await init_db()
    if not settings.api_key:
        logger.warning("CLINIC_API_KEY is not set; /api routes are unauthenticated")

    # Set a coroutine ``(appointment, event)`` here to receive booking events.
    app.state.notifier = None
    logger.info("Clinic booking API %s ready", __version__)

    yield

    await dispose_engine()
    logger.info("Clinic booking API stopped")


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    # Starlette runs the last-added middleware first: API key, then logging, then CORS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    if settings.api_key:
        app.add_middleware(APIKeyMiddleware, api_key=settings.api_key)


def create_app() -> FastAPI:
    """Build the application; used by ``uvicorn --factory`` and tests."""
    settings = get_settings()

    app = FastAPI(
        title="Clinic Booking API",
        description="Doctor slot availability and race-safe appointment booking",
        version=__version__,
        lifespan=lifespan,
    )
    _install_middleware(app, settings)

    app.include_router(health.router, tags=["health"])
    app.include_router(booking.router, prefix="/api/v1", tags=["booking"])
    app.include_router(sessions.router, prefix="/api/v1", tags=["sessions"])

    register_exception_handlers(app, debug=settings.debug_mode)
    return app
