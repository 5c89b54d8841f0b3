"""Availability calculation: slots merged with bookings and session capacity."""

from datetime import date, time
from typing import Iterable

from clinic_booking.scheduling.models import AppointmentRecord, SessionRule, SlotAvailability
from clinic_booking.scheduling.slots import DEFAULT_SLOT_MINUTES, generate_slots, session_applies


def _counted(appointments: Iterable[AppointmentRecord], day: date) -> list[AppointmentRecord]:
    """Appointments on *day* that occupy their slot (pending or confirmed)."""
    return [a for a in appointments if a.appointment_date == day and a.status.occupies_slot]


def belongs_to(appointment: AppointmentRecord, session: SessionRule) -> bool:
    """True if *appointment* was booked under this session's occurrence.

    Appointments without a ``session_id`` are attributed by time window.
    """
    if appointment.session_id is not None:
        return appointment.session_id == session.id
    return session.start_time <= appointment.appointment_time < session.end_time


def occurrence_load(
    session: SessionRule,
    appointments: Iterable[AppointmentRecord],
    day: date,
) -> int:
    """Number of active appointments held by *session* on *day*."""
    return sum(1 for a in _counted(appointments, day) if belongs_to(a, session))


def compute_availability(
    sessions: Iterable[SessionRule],
    appointments: Iterable[AppointmentRecord],
    day: date,
    slot_minutes: int = DEFAULT_SLOT_MINUTES,
) -> list[SlotAvailability]:
    """Return the slots a patient can see for one doctor on *day*.

    A slot is unavailable when an active appointment sits at the same time,
    or when its session has reached ``max_patients`` for this date. The
    capacity gate closes every slot of a full session, not only booked ones.
    Overlapping sessions are unioned; a shared time stays available only if
    every session offering it has it open.
    """
    matching = sorted(
        (s for s in sessions if session_applies(s, day)),
        key=lambda s: s.start_time,
    )
    if not matching:
        return []

    counted = _counted(appointments, day)
    booked_times = {a.appointment_time for a in counted}

    merged: dict[time, SlotAvailability] = {}
    for session in matching:
        full = (
            session.max_patients is not None
            and sum(1 for a in counted if belongs_to(a, session)) >= session.max_patients
        )
        for slot in generate_slots(session, day, slot_minutes):
            open_ = not full and slot.time not in booked_times
            existing = merged.get(slot.time)
            if existing is None:
                merged[slot.time] = SlotAvailability(
                    time=slot.time, available=open_, session_id=session.id
                )
            elif existing.available and not open_:
                existing.available = False

    return [merged[t] for t in sorted(merged)]
