"""Mapping of scheduling errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from clinic_booking.scheduling.errors import (
    AppointmentNotFound,
    DoctorNotFound,
    Forbidden,
    InvalidDate,
    InvalidSession,
    InvalidTime,
    InvalidTransition,
    SchedulingError,
    SessionNotFound,
    SlotUnavailable,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[SchedulingError], int] = {
    DoctorNotFound: 404,
    SessionNotFound: 404,
    AppointmentNotFound: 404,
    InvalidDate: 422,
    InvalidTime: 422,
    InvalidSession: 422,
    SlotUnavailable: 409,
    InvalidTransition: 409,
    Forbidden: 403,
}


def status_for(exc: SchedulingError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return 400


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install the SchedulingError handler and the catch-all 500 handler.

    With *debug* set, the text of unexpected exceptions is returned to the
    client.
    """

    @app.exception_handler(SchedulingError)
    async def scheduling_error_handler(request: Request, exc: SchedulingError):
        status_code = status_for(exc)
        if status_code == 409:
            logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "InternalError",
                "detail": str(exc) if debug else None,
            },
        )
