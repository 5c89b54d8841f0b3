"""Pytest configuration and fixtures."""

import uuid
from datetime import date, time

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from clinic_booking.core.models import Base
from clinic_booking.core.repository import (
    AppointmentRepository,
    DoctorRepository,
    DoctorSessionRepository,
)
from clinic_booking.scheduling.booking import BookingService
from clinic_booking.scheduling.models import AppointmentRecord, AppointmentStatus, SessionRule

# A Monday. Sunday-based weekday 1.
FIXED_TODAY = date(2026, 10, 19)


# ---------------------------------------------------------------------------
# Plain model factories
# ---------------------------------------------------------------------------

@pytest.fixture
def today() -> date:
    return FIXED_TODAY


@pytest.fixture
def doctor_id() -> uuid.UUID:
    return uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd")


@pytest.fixture
def make_rule(doctor_id):
    """Build a SessionRule; defaults to Monday 09:00-12:00, no cap."""

    def _make(
        day_of_week: int = 1,
        start: time = time(9, 0),
        end: time = time(12, 0),
        max_patients: int | None = None,
        is_active: bool = True,
    ) -> SessionRule:
        return SessionRule(
            id=uuid.uuid4(),
            doctor_id=doctor_id,
            day_of_week=day_of_week,
            start_time=start,
            end_time=end,
            max_patients=max_patients,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def make_appointment(doctor_id, today):
    """Build an AppointmentRecord on *today* unless told otherwise."""

    def _make(
        at: time,
        day: date | None = None,
        status: AppointmentStatus = AppointmentStatus.PENDING,
        session_id: uuid.UUID | None = None,
    ) -> AppointmentRecord:
        return AppointmentRecord(
            id=uuid.uuid4(),
            doctor_id=doctor_id,
            patient_id=uuid.uuid4(),
            session_id=session_id,
            appointment_date=day or today,
            appointment_time=at,
            status=status,
        )

    return _make


# ---------------------------------------------------------------------------
# Database fixtures: in-memory SQLite
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as sess:
        yield sess
        await sess.rollback()


@pytest_asyncio.fixture
async def doctor(session: AsyncSession):
    """A committed, active doctor."""
    doc = await DoctorRepository(session).create(full_name="Dr. Nimal Perera", specialty="cardiology")
    await session.commit()
    return doc


@pytest.fixture
def service(session: AsyncSession, today) -> BookingService:
    """BookingService over the SQLite repositories with a pinned clock."""
    return BookingService(
        doctors=DoctorRepository(session),
        sessions=DoctorSessionRepository(session),
        appointments=AppointmentRepository(session),
        slot_minutes=30,
        horizon_days=30,
        today=lambda: today,
    )
