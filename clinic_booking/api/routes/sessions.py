"""Doctor session (weekly schedule) endpoints."""

from datetime import time

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from clinic_booking.api.dependencies import get_booking_service, parse_uuid
from clinic_booking.scheduling.booking import BookingService
from clinic_booking.scheduling.models import SessionRule

router = APIRouter()


class SessionIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0=Sunday .. 6=Saturday")
    start_time: time
    end_time: time
    max_patients: int | None = Field(default=None, gt=0)
    is_active: bool = True


class SessionToggle(BaseModel):
    is_active: bool


class SessionRemoval(BaseModel):
    session_id: str
    result: str


@router.get("/doctors/{doctor_id}/sessions", response_model=list[SessionRule])
async def list_sessions(
    doctor_id: str,
    include_inactive: bool = Query(True),
    service: BookingService = Depends(get_booking_service),
) -> list[SessionRule]:
    did = parse_uuid(doctor_id, "doctor_id")
    return list(await service.list_sessions(did, include_inactive=include_inactive))


@router.post("/doctors/{doctor_id}/sessions", response_model=SessionRule, status_code=201)
async def create_session(
    doctor_id: str,
    body: SessionIn,
    service: BookingService = Depends(get_booking_service),
) -> SessionRule:
    did = parse_uuid(doctor_id, "doctor_id")
    return await service.create_session(did, **body.model_dump())


@router.patch("/sessions/{session_id}", response_model=SessionRule)
async def toggle_session(
    session_id: str,
    body: SessionToggle,
    service: BookingService = Depends(get_booking_service),
) -> SessionRule:
    """Activate or deactivate a session."""
    sid = parse_uuid(session_id, "session_id")
    return await service.set_session_active(sid, body.is_active)


@router.delete("/sessions/{session_id}", response_model=SessionRemoval)
async def remove_session(
    session_id: str,
    service: BookingService = Depends(get_booking_service),
) -> SessionRemoval:
    """Delete a session; sessions with appointments are deactivated instead."""
    sid = parse_uuid(session_id, "session_id")
    result = await service.remove_session(sid)
    return SessionRemoval(session_id=session_id, result=result)
