"""Booking service: availability reads, race-safe booking, status changes."""

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Awaitable, Callable, Optional, Sequence
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from clinic_booking.scheduling.availability import compute_availability, occurrence_load
from clinic_booking.scheduling.errors import (
    AppointmentNotFound,
    DoctorNotFound,
    Forbidden,
    InvalidDate,
    InvalidSession,
    InvalidTime,
    InvalidTransition,
    SessionNotFound,
    SlotUnavailable,
)
from clinic_booking.scheduling.models import (
    ActorRole,
    AppointmentRecord,
    AppointmentStatus,
    SessionOccurrence,
    SessionRule,
    SlotAvailability,
)
from clinic_booking.scheduling.slots import (
    DEFAULT_SLOT_MINUTES,
    occurrence_dates,
    session_applies,
    slot_grid,
)
from clinic_booking.scheduling.stores import BookingStore, DoctorStore, SessionStore
from clinic_booking.scheduling.transitions import check_transition

logger = logging.getLogger(__name__)

# Receives (appointment, event) for each booking or status change, once the
# caller has committed and calls BookingService.dispatch_events().
Notifier = Callable[[AppointmentRecord, str], Awaitable[None]]

_NOTES_ROLES = frozenset({ActorRole.DOCTOR, ActorRole.ADMIN})


def clinic_today(tz_name: str) -> date:
    """Current calendar date in the clinic's timezone."""
    return datetime.now(ZoneInfo(tz_name)).date()


class BookingService:
    """Computes slot availability and books appointments against the stores.

    The service holds no shared mutable state; every call reads what it needs
    from the stores. The only per-instance state is the queue of notifier
    events awaiting ``dispatch_events``. Conflicting bookings are detected by the booking store's
    uniqueness guarantee at write time, not by the availability pre-check.
    """

    def __init__(
        self,
        doctors: DoctorStore,
        sessions: SessionStore,
        appointments: BookingStore,
        slot_minutes: int = DEFAULT_SLOT_MINUTES,
        horizon_days: int = 30,
        upcoming_days: int = 7,
        today: Optional[Callable[[], date]] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.doctors = doctors
        self.sessions = sessions
        self.appointments = appointments
        self.slot_minutes = slot_minutes
        self.horizon_days = horizon_days
        self.upcoming_days = upcoming_days
        self._today = today or date.today
        self._notifier = notifier
        self._outbox: list[tuple[AppointmentRecord, str]] = []

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_available_slots(self, doctor_id: uuid.UUID, day: date) -> list[SlotAvailability]:
        """Return every slot of *day* with its availability, ascending by time.

        A day without an active session yields an empty list.
        """
        await self._require_doctor(doctor_id)
        sessions = await self.sessions.list_for_doctor(doctor_id)
        if not any(session_applies(s, day) for s in sessions):
            return []
        booked = await self.appointments.list_active_for_doctor_on(doctor_id, day)
        return compute_availability(sessions, booked, day, self.slot_minutes)

    async def available_dates(self, doctor_id: uuid.UUID, start: Optional[date] = None) -> list[date]:
        """Dates within the booking horizon on which the doctor holds a session."""
        await self._require_doctor(doctor_id)
        sessions = await self.sessions.list_for_doctor(doctor_id)
        return occurrence_dates(sessions, start or self._today(), self.horizon_days)

    async def upcoming_sessions(
        self, doctor_id: uuid.UUID, days: Optional[int] = None
    ) -> list[SessionOccurrence]:
        """Session occurrences over the next *days* days with their fill level.

        *days* defaults to the service's ``upcoming_days``.
        """
        if days is None:
            days = self.upcoming_days
        await self._require_doctor(doctor_id)
        sessions = await self.sessions.list_for_doctor(doctor_id)
        today = self._today()

        occurrences: list[SessionOccurrence] = []
        for offset in range(days):
            day = today + timedelta(days=offset)
            matching = sorted(
                (s for s in sessions if session_applies(s, day)),
                key=lambda s: s.start_time,
            )
            if not matching:
                continue
            booked = await self.appointments.list_active_for_doctor_on(doctor_id, day)
            for session in matching:
                occurrences.append(
                    SessionOccurrence(
                        day=day,
                        session=session,
                        booked_count=occurrence_load(session, booked, day),
                    )
                )
        return occurrences

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def book_appointment(
        self,
        doctor_id: uuid.UUID,
        patient_id: uuid.UUID,
        day: date,
        at: time,
        reason: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> AppointmentRecord:
        """Book the slot at *at* on *day* for *patient_id*.

        Raises:
            DoctorNotFound: unknown or inactive doctor.
            InvalidDate: *day* is before today or beyond the booking horizon.
            InvalidTime: *at* is not on an active session's slot grid.
            SlotUnavailable: the slot or its session is taken, either at read
                time or at write time.
        """
        if idempotency_key:
            previous = await self.appointments.get_by_idempotency_key(idempotency_key)
            if previous is not None:
                return self._replay(previous, doctor_id, patient_id, day, at)

        await self._require_doctor(doctor_id)
        self._check_date(day)

        sessions = await self.sessions.list_for_doctor(doctor_id)
        owner = slot_grid(sessions, day, self.slot_minutes).get(at)
        if owner is None:
            raise InvalidTime(f"{at.isoformat()} is not a bookable slot on {day.isoformat()}")

        booked = await self.appointments.list_active_for_doctor_on(doctor_id, day)
        slot = next(
            s for s in compute_availability(sessions, booked, day, self.slot_minutes)
            if s.time == at
        )
        if not slot.available:
            raise SlotUnavailable(f"Slot {day.isoformat()} {at.isoformat()} is no longer available")

        record = await self.appointments.try_insert(
            doctor_id=doctor_id,
            patient_id=patient_id,
            session_id=owner.id,
            day=day,
            at=at,
            reason=reason,
            idempotency_key=idempotency_key,
        )
        if record is None:
            if idempotency_key:
                previous = await self.appointments.get_by_idempotency_key(idempotency_key)
                if previous is not None:
                    return self._replay(previous, doctor_id, patient_id, day, at)
            raise SlotUnavailable(f"Slot {day.isoformat()} {at.isoformat()} was just booked by someone else")

        logger.info(
            "Booked appointment %s doctor=%s date=%s time=%s",
            record.id, doctor_id, day, at,
        )
        self._queue_event(record, "booked")
        return record

    # ------------------------------------------------------------------
    # Appointment lifecycle
    # ------------------------------------------------------------------

    async def update_appointment_status(
        self,
        appointment_id: uuid.UUID,
        new_status: AppointmentStatus,
        actor_role: ActorRole,
    ) -> AppointmentRecord:
        """Move an appointment along the state machine on behalf of *actor_role*.

        The write only applies if the status is still the one that was checked.
        If another request changed it in between, InvalidTransition is raised
        and the other request's outcome stands.
        """
        current = await self.appointments.get(appointment_id)
        if current is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")

        check_transition(current.status, new_status, actor_role)

        updated = await self.appointments.set_status(
            appointment_id, new_status, expected=current.status
        )
        if updated is None:
            latest = await self.appointments.get(appointment_id)
            if latest is None:
                raise AppointmentNotFound(f"Appointment {appointment_id} not found")
            logger.warning(
                "Appointment %s changed to %s while %s -> %s was in flight",
                appointment_id, latest.status.value, current.status.value, new_status.value,
            )
            raise InvalidTransition(
                f"Appointment {appointment_id} is now '{latest.status.value}'; "
                f"cannot move it to '{new_status.value}'"
            )
        logger.info(
            "Appointment %s: %s -> %s by %s",
            appointment_id, current.status.value, new_status.value, actor_role.value,
        )
        self._queue_event(updated, new_status.value)
        return updated

    async def get_appointment(self, appointment_id: uuid.UUID) -> AppointmentRecord:
        record = await self.appointments.get(appointment_id)
        if record is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        return record

    async def update_notes(
        self,
        appointment_id: uuid.UUID,
        notes: Optional[str],
        actor_role: ActorRole,
    ) -> AppointmentRecord:
        if actor_role not in _NOTES_ROLES:
            raise Forbidden(f"Role '{actor_role.value}' may not edit appointment notes")
        updated = await self.appointments.set_notes(appointment_id, notes)
        if updated is None:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        return updated

    async def list_appointments(
        self,
        doctor_id: Optional[uuid.UUID] = None,
        patient_id: Optional[uuid.UUID] = None,
        day: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> Sequence[AppointmentRecord]:
        return await self.appointments.search(
            doctor_id=doctor_id, patient_id=patient_id, day=day, status=status
        )

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------

    async def list_sessions(self, doctor_id: uuid.UUID, include_inactive: bool = True) -> Sequence[SessionRule]:
        await self._require_doctor(doctor_id)
        return await self.sessions.list_for_doctor(doctor_id, include_inactive=include_inactive)

    async def create_session(
        self,
        doctor_id: uuid.UUID,
        day_of_week: int,
        start_time: time,
        end_time: time,
        max_patients: Optional[int] = None,
        is_active: bool = True,
    ) -> SessionRule:
        await self._require_doctor(doctor_id)
        try:
            rule = SessionRule(
                id=uuid.uuid4(),
                doctor_id=doctor_id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                max_patients=max_patients,
                is_active=is_active,
            )
        except ValidationError as e:
            raise InvalidSession(str(e)) from e
        created = await self.sessions.add(rule)
        logger.info("Created session %s for doctor %s (day %d)", created.id, doctor_id, day_of_week)
        return created

    async def set_session_active(self, session_id: uuid.UUID, is_active: bool) -> SessionRule:
        updated = await self.sessions.set_active(session_id, is_active)
        if updated is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return updated

    async def remove_session(self, session_id: uuid.UUID) -> str:
        """Delete a session, or deactivate it if appointments reference it.

        Returns ``"deleted"`` or ``"deactivated"``.
        """
        if await self.sessions.get(session_id) is None:
            raise SessionNotFound(f"Session {session_id} not found")
        if await self.sessions.is_referenced(session_id):
            await self.sessions.set_active(session_id, False)
            logger.info("Session %s is referenced by appointments; deactivated", session_id)
            return "deactivated"
        await self.sessions.delete(session_id)
        return "deleted"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_doctor(self, doctor_id: uuid.UUID) -> None:
        if not await self.doctors.exists(doctor_id):
            raise DoctorNotFound(f"Doctor {doctor_id} not found")

    def _check_date(self, day: date) -> None:
        today = self._today()
        if day < today:
            raise InvalidDate(f"{day.isoformat()} is in the past")
        if day >= today + timedelta(days=self.horizon_days):
            raise InvalidDate(
                f"{day.isoformat()} is beyond the {self.horizon_days}-day booking horizon"
            )

    @staticmethod
    def _replay(
        previous: AppointmentRecord,
        doctor_id: uuid.UUID,
        patient_id: uuid.UUID,
        day: date,
        at: time,
    ) -> AppointmentRecord:
        """Return the earlier result for a repeated idempotency key."""
        same = (
            previous.doctor_id == doctor_id
            and previous.patient_id == patient_id
            and previous.appointment_date == day
            and previous.appointment_time == at
        )
        if not same:
            raise SlotUnavailable("Idempotency key was already used for a different booking")
        return previous

    def _queue_event(self, record: AppointmentRecord, event: str) -> None:
        if self._notifier is not None:
            self._outbox.append((record, event))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @property
    def pending_events(self) -> list[tuple[AppointmentRecord, str]]:
        return list(self._outbox)

    async def dispatch_events(self) -> None:
        """Send queued events to the notifier. Call only after committing.

        Failures are logged and never raised.
        """
        events, self._outbox = self._outbox, []
        for record, event in events:
            try:
                await self._notifier(record, event)
            except Exception:
                logger.exception("Notification for appointment %s (%s) failed", record.id, event)
