"""Health check endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from clinic_booking import __version__
from clinic_booking.core.database import ping_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    return {
        "status": "healthy",
        "service": "clinic-booking",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check():
    """Ready when the booking database answers; 503 otherwise."""
    try:
        backend = await ping_db()
    except Exception as e:
        logger.warning("Readiness probe: database unreachable: %s", e)
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "errors": [f"database: {e}"]},
        )
    return {"status": "ready", "database": backend}


@router.get("/health/live")
async def liveness_check() -> dict:
    return {"status": "alive"}
