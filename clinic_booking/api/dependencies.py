"""FastAPI dependencies for the booking routes."""

from __future__ import annotations

import uuid

from fastapi import BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.database import get_db
from clinic_booking.core.services import build_booking_service
from clinic_booking.scheduling.booking import BookingService


async def get_booking_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> BookingService:
    """Booking service bound to the request's database session.

    A notifier placed on ``app.state.notifier`` is handed to the service.
    """
    notifier = getattr(request.app.state, "notifier", None)
    return build_booking_service(db, notifier=notifier)


async def commit_and_notify(
    db: AsyncSession,
    service: BookingService,
    background_tasks: BackgroundTasks,
) -> None:
    """Commit the request's writes, then send the service's events after the response."""
    await db.commit()
    if service.pending_events:
        background_tasks.add_task(service.dispatch_events)


def parse_uuid(value: str, name: str = "ID") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value}")
