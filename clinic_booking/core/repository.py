"""SQLAlchemy repositories backing the scheduling stores."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timezone
from typing import Optional, Sequence

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_booking.core.models import AppointmentDB, Doctor, DoctorSession
from clinic_booking.scheduling.errors import SlotUnavailable
from clinic_booking.scheduling.models import (
    ACTIVE_STATUSES,
    AppointmentRecord,
    AppointmentStatus,
    SessionRule,
)

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_STATUSES]


class DoctorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **kwargs) -> Doctor:
        doctor = Doctor(**kwargs)
        self.session.add(doctor)
        await self.session.flush()
        return doctor

    async def get_by_id(self, doctor_id: uuid.UUID) -> Optional[Doctor]:
        return await self.session.get(Doctor, doctor_id)

    async def exists(self, doctor_id: uuid.UUID) -> bool:
        stmt = select(exists().where(Doctor.id == doctor_id, Doctor.is_active.is_(True)))
        result = await self.session.execute(stmt)
        return bool(result.scalar())


class DoctorSessionRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_doctor(
        self, doctor_id: uuid.UUID, include_inactive: bool = False
    ) -> Sequence[SessionRule]:
        stmt = select(DoctorSession).where(DoctorSession.doctor_id == doctor_id)
        if not include_inactive:
            stmt = stmt.where(DoctorSession.is_active.is_(True))
        stmt = stmt.order_by(DoctorSession.day_of_week, DoctorSession.start_time)
        result = await self.session.execute(stmt)
        return [SessionRule.model_validate(row) for row in result.scalars().all()]

    async def get(self, session_id: uuid.UUID) -> Optional[SessionRule]:
        row = await self.session.get(DoctorSession, session_id)
        return SessionRule.model_validate(row) if row else None

    async def add(self, rule: SessionRule) -> SessionRule:
        row = DoctorSession(**rule.model_dump())
        self.session.add(row)
        await self.session.flush()
        return SessionRule.model_validate(row)

    async def set_active(self, session_id: uuid.UUID, is_active: bool) -> Optional[SessionRule]:
        row = await self.session.get(DoctorSession, session_id)
        if not row:
            return None
        row.is_active = is_active
        await self.session.flush()
        return SessionRule.model_validate(row)

    async def delete(self, session_id: uuid.UUID) -> bool:
        row = await self.session.get(DoctorSession, session_id)
        if not row:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True

    async def is_referenced(self, session_id: uuid.UUID) -> bool:
        stmt = select(exists().where(AppointmentDB.session_id == session_id))
        result = await self.session.execute(stmt)
        return bool(result.scalar())


class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_active_for_doctor_on(self, doctor_id: uuid.UUID, day: date) -> Sequence[AppointmentRecord]:
        stmt = (
            select(AppointmentDB)
            .where(
                AppointmentDB.doctor_id == doctor_id,
                AppointmentDB.appointment_date == day,
                AppointmentDB.status.in_(_ACTIVE),
            )
            .order_by(AppointmentDB.appointment_time)
        )
        result = await self.session.execute(stmt)
        return [AppointmentRecord.model_validate(row) for row in result.scalars().all()]

    async def get(self, appointment_id: uuid.UUID) -> Optional[AppointmentRecord]:
        row = await self.session.get(AppointmentDB, appointment_id, populate_existing=True)
        return AppointmentRecord.model_validate(row) if row else None

    async def get_by_idempotency_key(self, key: str) -> Optional[AppointmentRecord]:
        stmt = select(AppointmentDB).where(AppointmentDB.idempotency_key == key)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        return AppointmentRecord.model_validate(row) if row else None

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
        """Insert a pending appointment, or return None on a uniqueness conflict.

        The partial unique index on (doctor_id, appointment_date,
        appointment_time) over active statuses is what serialises concurrent
        bookings. On conflict the session's transaction is rolled back, so
        this must be the only write in its unit of work.
        """
        row = AppointmentDB(
            doctor_id=doctor_id,
            patient_id=patient_id,
            session_id=session_id,
            appointment_date=day,
            appointment_time=at,
            status=AppointmentStatus.PENDING.value,
            reason=reason,
            idempotency_key=idempotency_key,
        )
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Booking conflict for doctor=%s date=%s time=%s: %s",
                doctor_id, day, at, e.orig,
            )
            return None
        return AppointmentRecord.model_validate(row)

    async def set_status(
        self,
        appointment_id: uuid.UUID,
        status: AppointmentStatus,
        *,
        expected: AppointmentStatus,
    ) -> Optional[AppointmentRecord]:
        """Move the row from *expected* to *status* in a single conditional UPDATE.

        Returns None when no row is still in *expected* (missing, or changed by
        another transaction since it was read). Raises SlotUnavailable if the
        new status would put a second active appointment on the slot.
        """
        stmt = (
            update(AppointmentDB)
            .where(
                AppointmentDB.id == appointment_id,
                AppointmentDB.status == expected.value,
            )
            .values(status=status.value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                "Status change %s -> %s for appointment %s conflicts with an active booking: %s",
                expected.value, status.value, appointment_id, e.orig,
            )
            raise SlotUnavailable(f"Appointment {appointment_id}'s slot is held by another booking") from e
        if result.rowcount == 0:
            return None
        row = await self.session.get(AppointmentDB, appointment_id, populate_existing=True)
        return AppointmentRecord.model_validate(row)

    async def set_notes(self, appointment_id: uuid.UUID, notes: Optional[str]) -> Optional[AppointmentRecord]:
        row = await self.session.get(AppointmentDB, appointment_id)
        if not row:
            return None
        row.notes = notes
        row.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return AppointmentRecord.model_validate(row)

    async def search(
        self,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        day: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
        limit: int = 200,
    ) -> Sequence[AppointmentRecord]:
        stmt = select(AppointmentDB)
        if doctor_id is not None:
            stmt = stmt.where(AppointmentDB.doctor_id == doctor_id)
        if patient_id is not None:
            stmt = stmt.where(AppointmentDB.patient_id == patient_id)
        if day is not None:
            stmt = stmt.where(AppointmentDB.appointment_date == day)
        if status is not None:
            stmt = stmt.where(AppointmentDB.status == status.value)
        stmt = stmt.order_by(AppointmentDB.appointment_date, AppointmentDB.appointment_time).limit(limit)
        result = await self.session.execute(stmt)
        return [AppointmentRecord.model_validate(row) for row in result.scalars().all()]
