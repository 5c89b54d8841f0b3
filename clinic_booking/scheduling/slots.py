"""Slot generation from recurring weekly sessions."""

from datetime import date, datetime, time, timedelta
from typing import Iterable

from clinic_booking.scheduling.models import SessionRule, Slot

DEFAULT_SLOT_MINUTES = 30


def sunday_weekday(day: date) -> int:
    """Return the weekday of *day* with 0=Sunday..6=Saturday."""
    return (day.weekday() + 1) % 7


def session_applies(session: SessionRule, day: date) -> bool:
    """True if an active *session* has an occurrence on *day*."""
    return session.is_active and session.day_of_week == sunday_weekday(day)


def generate_slots(
    session: SessionRule,
    day: date,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> list[Slot]:
    """Expand one session occurrence into fixed-width slots.

    A slot is emitted at every ``slot_minutes`` step from ``start_time`` as long
    as the whole slot fits before ``end_time``; a trailing partial period is
    dropped. Inactive sessions and non-matching weekdays yield an empty list.
    """
    if slot_minutes <= 0:
        raise ValueError(f"slot_minutes must be positive, got {slot_minutes}")
    if not session_applies(session, day):
        return []

    current = datetime.combine(day, session.start_time)
    end = datetime.combine(day, session.end_time)
    delta = timedelta(minutes=slot_minutes)

    slots: list[Slot] = []
    while current + delta <= end:
        slots.append(Slot(time=current.time(), session_id=session.id))
        current += delta
    return slots


def slot_grid(
    sessions: Iterable[SessionRule],
    day: date,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> dict[time, SessionRule]:
    """Map each bookable time on *day* to the session that offers it.

    When sessions overlap, the earliest-starting session wins the time.
    """
    grid: dict[time, SessionRule] = {}
    for session in sorted(sessions, key=lambda s: s.start_time):
        for slot in generate_slots(session, day, slot_minutes):
            grid.setdefault(slot.time, session)
    return grid


def occurrence_dates(
    sessions: Iterable[SessionRule],
    start: date,
    horizon_days: int,
) -> list[date]:
    """Dates in ``[start, start + horizon_days)`` with at least one active session."""
    active_days = {s.day_of_week for s in sessions if s.is_active}
    return [
        start + timedelta(days=i)
        for i in range(horizon_days)
        if sunday_weekday(start + timedelta(days=i)) in active_days
    ]
