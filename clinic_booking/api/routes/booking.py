"""Booking API endpoints: slot availability, appointments and status changes."""

from datetime import date, time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.api.dependencies import commit_and_notify, get_booking_service, parse_uuid
from clinic_booking.core.database import get_db
from clinic_booking.scheduling.booking import BookingService
from clinic_booking.scheduling.models import (
    ActorRole,
    AppointmentRecord,
    AppointmentStatus,
    SlotAvailability,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Pydantic request/response schemas
# ---------------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    doctor_id: str
    patient_id: str
    appointment_date: date
    appointment_time: time
    reason: str | None = None
    idempotency_key: str | None = Field(default=None, max_length=128)


class StatusUpdate(BaseModel):
    status: AppointmentStatus
    actor_role: ActorRole


class NotesUpdate(BaseModel):
    notes: str | None = None
    actor_role: ActorRole


class UpcomingSessionResponse(BaseModel):
    date: date
    session_id: str
    start_time: time
    end_time: time
    max_patients: int | None = None
    booked_count: int
    is_full: bool


# ---------------------------------------------------------------------------
# Doctor availability
# ---------------------------------------------------------------------------

@router.get("/doctors/{doctor_id}/slots", response_model=list[SlotAvailability])
async def get_available_slots(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    service: BookingService = Depends(get_booking_service),
) -> list[SlotAvailability]:
    """Return the doctor's slots for a date with their availability."""
    did = parse_uuid(doctor_id, "doctor_id")
    return await service.get_available_slots(did, day)


@router.get("/doctors/{doctor_id}/available-dates", response_model=list[date])
async def get_available_dates(
    doctor_id: str,
    service: BookingService = Depends(get_booking_service),
) -> list[date]:
    """Dates within the booking horizon on which the doctor holds a session."""
    did = parse_uuid(doctor_id, "doctor_id")
    return await service.available_dates(did)


@router.get("/doctors/{doctor_id}/upcoming-sessions", response_model=list[UpcomingSessionResponse])
async def get_upcoming_sessions(
    doctor_id: str,
    days: Optional[int] = Query(None, ge=1, le=31),
    service: BookingService = Depends(get_booking_service),
) -> list[UpcomingSessionResponse]:
    did = parse_uuid(doctor_id, "doctor_id")
    occurrences = await service.upcoming_sessions(did, days=days)
    return [
        UpcomingSessionResponse(
            date=o.day,
            session_id=str(o.session.id),
            start_time=o.session.start_time,
            end_time=o.session.end_time,
            max_patients=o.session.max_patients,
            booked_count=o.booked_count,
            is_full=o.is_full,
        )
        for o in occurrences
    ]


# ---------------------------------------------------------------------------
# Book / list / get appointments
# ---------------------------------------------------------------------------

@router.post("/appointments", response_model=AppointmentRecord, status_code=201)
async def book_appointment(
    body: AppointmentCreate,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRecord:
    """Book a slot. 409 if the slot was taken in the meantime."""
    record = await service.book_appointment(
        doctor_id=parse_uuid(body.doctor_id, "doctor_id"),
        patient_id=parse_uuid(body.patient_id, "patient_id"),
        day=body.appointment_date,
        at=body.appointment_time,
        reason=body.reason,
        idempotency_key=body.idempotency_key,
    )
    await commit_and_notify(db, service, background_tasks)
    return record


@router.get("/appointments", response_model=list[AppointmentRecord])
async def list_appointments(
    doctor_id: Optional[str] = Query(None),
    patient_id: Optional[str] = Query(None),
    day: Optional[date] = Query(None, alias="date"),
    status: Optional[AppointmentStatus] = Query(None),
    service: BookingService = Depends(get_booking_service),
) -> list[AppointmentRecord]:
    """List appointments with filters."""
    records = await service.list_appointments(
        doctor_id=parse_uuid(doctor_id, "doctor_id") if doctor_id else None,
        patient_id=parse_uuid(patient_id, "patient_id") if patient_id else None,
        day=day,
        status=status,
    )
    return list(records)


@router.get("/appointments/{appointment_id}", response_model=AppointmentRecord)
async def get_appointment(
    appointment_id: str,
    service: BookingService = Depends(get_booking_service),
) -> AppointmentRecord:
    return await service.get_appointment(parse_uuid(appointment_id, "appointment_id"))


# ---------------------------------------------------------------------------
# Status / notes
# ---------------------------------------------------------------------------

@router.post("/appointments/{appointment_id}/status", response_model=AppointmentRecord)
async def update_appointment_status(
    appointment_id: str,
    body: StatusUpdate,
    background_tasks: BackgroundTasks,
    service: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db),
) -> AppointmentRecord:
    """Confirm, complete or cancel an appointment on behalf of a role."""
    record = await service.update_appointment_status(
        parse_uuid(appointment_id, "appointment_id"), body.status, body.actor_role
    )
    await commit_and_notify(db, service, background_tasks)
    return record


@router.put("/appointments/{appointment_id}/notes", response_model=AppointmentRecord)
async def update_appointment_notes(
    appointment_id: str,
    body: NotesUpdate,
    service: BookingService = Depends(get_booking_service),
) -> AppointmentRecord:
    return await service.update_notes(
        parse_uuid(appointment_id, "appointment_id"), body.notes, body.actor_role
    )
