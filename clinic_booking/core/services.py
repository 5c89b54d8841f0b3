"""Wiring of the booking service onto a database session."""

from functools import partial
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.config import Settings, get_settings
from clinic_booking.core.repository import (
    AppointmentRepository,
    DoctorRepository,
    DoctorSessionRepository,
)
from clinic_booking.scheduling.booking import BookingService, Notifier, clinic_today


def build_booking_service(
    db: AsyncSession,
    settings: Optional[Settings] = None,
    notifier: Optional[Notifier] = None,
) -> BookingService:
    """Create a BookingService whose stores share *db*."""
    settings = settings or get_settings()
    return BookingService(
        doctors=DoctorRepository(db),
        sessions=DoctorSessionRepository(db),
        appointments=AppointmentRepository(db),
        slot_minutes=settings.slot_minutes,
        horizon_days=settings.booking_horizon_days,
        upcoming_days=settings.upcoming_sessions_days,
        today=partial(clinic_today, settings.clinic_timezone),
        notifier=notifier,
    )
