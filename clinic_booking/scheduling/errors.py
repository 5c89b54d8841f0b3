"""Exceptions raised by the scheduling core."""


class SchedulingError(Exception):
    """Base exception for scheduling errors."""

    pass


class DoctorNotFound(SchedulingError):
    """Doctor reference is unknown or inactive."""

    pass


class SessionNotFound(SchedulingError):
    """Session reference is unknown."""

    pass


class AppointmentNotFound(SchedulingError):
    """Appointment reference is unknown."""

    pass


class InvalidDate(SchedulingError):
    """Requested date is in the past or outside the booking horizon."""

    pass


class InvalidTime(SchedulingError):
    """Requested time is not on any active session's slot grid."""

    pass


class SlotUnavailable(SchedulingError):
    """Slot was taken, or its session is full. Pick another slot."""

    pass


class InvalidTransition(SchedulingError):
    """Status change is not an edge of the appointment state machine."""

    pass


class Forbidden(SchedulingError):
    """Actor role may not perform this change."""

    pass


class InvalidSession(SchedulingError):
    """Session definition is malformed (day, window or capacity)."""

    pass
