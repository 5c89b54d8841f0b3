"""Storage capabilities the booking service depends on.

The SQLAlchemy repositories in ``clinic_booking.core.repository`` satisfy these
protocols; tests may substitute anything with the same shape.
"""

import uuid
from datetime import date, time
from typing import Optional, Protocol, Sequence

from clinic_booking.scheduling.models import AppointmentRecord, AppointmentStatus, SessionRule


class DoctorStore(Protocol):
    async def exists(self, doctor_id: uuid.UUID) -> bool: ...


class SessionStore(Protocol):
    async def list_for_doctor(
        self, doctor_id: uuid.UUID, include_inactive: bool = False
    ) -> Sequence[SessionRule]: ...

    async def get(self, session_id: uuid.UUID) -> Optional[SessionRule]: ...

    async def add(self, rule: SessionRule) -> SessionRule: ...

    async def set_active(self, session_id: uuid.UUID, is_active: bool) -> Optional[SessionRule]: ...

    async def delete(self, session_id: uuid.UUID) -> bool: ...

    async def is_referenced(self, session_id: uuid.UUID) -> bool: ...


class BookingStore(Protocol):
    async def list_active_for_doctor_on(self, doctor_id: uuid.UUID, day: date) -> Sequence[AppointmentRecord]: ...

    async def get(self, appointment_id: uuid.UUID) -> Optional[AppointmentRecord]: ...

    async def get_by_idempotency_key(self, key: str) -> Optional[AppointmentRecord]: ...

    async def try_insert(
        self,
        doctor_id: uuid.UUID,
        patient_id: uuid.UUID,
        session_id: Optional[uuid.UUID],
        day: date,
        at: time,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Optional[AppointmentRecord]:
        """Insert a pending appointment; return None if the slot is already held."""
        ...

    async def set_status(
        self,
        appointment_id: uuid.UUID,
        status: AppointmentStatus,
        *,
        expected: AppointmentStatus,
    ) -> Optional[AppointmentRecord]:
        """Change the status only if it is still *expected*; None if it is not.

        Raises SlotUnavailable when the change would double-book the slot.
        """
        ...

    async def set_notes(self, appointment_id: uuid.UUID, notes: Optional[str]) -> Optional[AppointmentRecord]: ...

    async def search(
        self,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        day: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
        limit: int = 200,
    ) -> Sequence[AppointmentRecord]: ...
