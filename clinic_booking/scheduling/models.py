"""Pydantic models for the scheduling core."""

import uuid
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AppointmentStatus(str, Enum):
    """Appointment lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED)

    @property
    def occupies_slot(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


class ActorRole(str, Enum):
    """Who is asking for a change."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


class SessionRule(BaseModel):
    """A doctor's recurring weekly availability window.

    ``day_of_week`` is Sunday-based (0=Sun..6=Sat). ``max_patients`` caps the
    number of active appointments for one occurrence; ``None`` means no cap.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    doctor_id: uuid.UUID
    day_of_week: int = Field(ge=0, le=6)
    start_time: time
    end_time: time
    max_patients: Optional[int] = Field(default=None, gt=0)
    is_active: bool = True

    @model_validator(mode="after")
    def _check_window(self) -> "SessionRule":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class Slot(BaseModel):
    """A candidate time generated from one session occurrence."""

    time: time
    session_id: uuid.UUID


class SlotAvailability(BaseModel):
    """A slot as offered to a patient."""

    time: time
    available: bool
    session_id: Optional[uuid.UUID] = None


class AppointmentRecord(BaseModel):
    """A booked appointment."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    doctor_id: uuid.UUID
    patient_id: uuid.UUID
    session_id: Optional[uuid.UUID] = None
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus = AppointmentStatus.PENDING
    reason: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SessionOccurrence(BaseModel):
    """A session instantiated on one date, with its current fill level."""

    day: date
    session: SessionRule
    booked_count: int = 0

    @property
    def is_full(self) -> bool:
        cap = self.session.max_patients
        return cap is not None and self.booked_count >= cap
