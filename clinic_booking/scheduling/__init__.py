"""Slot availability and booking core."""

from clinic_booking.scheduling.availability import compute_availability
from clinic_booking.scheduling.booking import BookingService
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
from clinic_booking.scheduling.models import (
    ActorRole,
    AppointmentRecord,
    AppointmentStatus,
    SessionOccurrence,
    SessionRule,
    Slot,
    SlotAvailability,
)
from clinic_booking.scheduling.slots import generate_slots

__all__ = [
    "ActorRole",
    "AppointmentNotFound",
    "AppointmentRecord",
    "AppointmentStatus",
    "BookingService",
    "DoctorNotFound",
    "Forbidden",
    "InvalidDate",
    "InvalidSession",
    "InvalidTime",
    "InvalidTransition",
    "SchedulingError",
    "SessionNotFound",
    "SessionOccurrence",
    "SessionRule",
    "Slot",
    "SlotAvailability",
    "SlotUnavailable",
    "compute_availability",
    "generate_slots",
]
