"""Tests for slot availability against bookings and session capacity."""

from datetime import time, timedelta

from clinic_booking.scheduling.availability import (
    belongs_to,
    compute_availability,
    occurrence_load,
)
from clinic_booking.scheduling.models import AppointmentStatus


def _open(slots):
    return [s.time for s in slots if s.available]


class TestComputeAvailability:
    def test_booked_slot_unavailable(self, make_rule, make_appointment, today):
        rule = make_rule()
        result = compute_availability([rule], [make_appointment(time(10, 0))], today)

        assert len(result) == 6
        by_time = {s.time: s.available for s in result}
        assert by_time[time(10, 0)] is False
        assert sum(by_time.values()) == 5

    def test_confirmed_also_blocks(self, make_rule, make_appointment, today):
        appt = make_appointment(time(9, 30), status=AppointmentStatus.CONFIRMED)
        assert time(9, 30) not in _open(compute_availability([make_rule()], [appt], today))

    def test_cancelled_and_completed_free_the_slot(self, make_rule, make_appointment, today):
        appts = [
            make_appointment(time(10, 0), status=AppointmentStatus.CANCELLED),
            make_appointment(time(10, 30), status=AppointmentStatus.COMPLETED),
        ]
        result = compute_availability([make_rule()], appts, today)
        assert all(s.available for s in result)

    def test_other_dates_ignored(self, make_rule, make_appointment, today):
        appt = make_appointment(time(10, 0), day=today + timedelta(days=7))
        assert all(s.available for s in compute_availability([make_rule()], [appt], today))

    def test_no_session_no_slots(self, make_rule, today):
        assert compute_availability([make_rule(day_of_week=4)], [], today) == []

    def test_sorted_ascending(self, make_rule, today):
        afternoon = make_rule(start=time(14, 0), end=time(15, 0))
        morning = make_rule(start=time(9, 0), end=time(10, 0))
        times = [s.time for s in compute_availability([afternoon, morning], [], today)]
        assert times == sorted(times)
        assert times == [time(9, 0), time(9, 30), time(14, 0), time(14, 30)]

    def test_idempotent_read(self, make_rule, make_appointment, today):
        sessions = [make_rule()]
        appts = [make_appointment(time(11, 0))]
        assert compute_availability(sessions, appts, today) == compute_availability(sessions, appts, today)


class TestCapacityGate:
    def test_full_session_closes_every_slot(self, make_rule, make_appointment, today):
        rule = make_rule(max_patients=2)
        appts = [
            make_appointment(time(9, 0), session_id=rule.id),
            make_appointment(time(11, 30), session_id=rule.id),
        ]
        result = compute_availability([rule], appts, today)
        assert len(result) == 6
        assert _open(result) == []

    def test_below_capacity_only_booked_times_closed(self, make_rule, make_appointment, today):
        rule = make_rule(max_patients=3)
        appts = [
            make_appointment(time(9, 0), session_id=rule.id),
            make_appointment(time(9, 30), session_id=rule.id),
        ]
        assert _open(compute_availability([rule], appts, today)) == [
            time(10, 0), time(10, 30), time(11, 0), time(11, 30),
        ]

    def test_cancelled_does_not_count_towards_capacity(self, make_rule, make_appointment, today):
        rule = make_rule(max_patients=1)
        appt = make_appointment(time(9, 0), session_id=rule.id, status=AppointmentStatus.CANCELLED)
        assert len(_open(compute_availability([rule], [appt], today))) == 6

    def test_capacity_is_per_session(self, make_rule, make_appointment, today):
        morning = make_rule(start=time(9, 0), end=time(10, 0), max_patients=1)
        afternoon = make_rule(start=time(14, 0), end=time(15, 0), max_patients=1)
        appts = [make_appointment(time(9, 0), session_id=morning.id)]

        assert _open(compute_availability([morning, afternoon], appts, today)) == [
            time(14, 0), time(14, 30),
        ]

    def test_unattributed_appointment_counted_by_window(self, make_rule, make_appointment, today):
        rule = make_rule(max_patients=1)
        appt = make_appointment(time(10, 0), session_id=None)
        assert _open(compute_availability([rule], [appt], today)) == []


class TestOverlappingSessions:
    def test_union_of_slots(self, make_rule, today):
        a = make_rule(start=time(9, 0), end=time(11, 0))
        b = make_rule(start=time(10, 0), end=time(12, 0))
        result = compute_availability([a, b], [], today)
        assert [s.time for s in result] == [
            time(9, 0), time(9, 30), time(10, 0),
            time(10, 30), time(11, 0), time(11, 30),
        ]
        assert result[2].session_id == a.id

    def test_shared_time_closed_when_any_session_full(self, make_rule, make_appointment, today):
        a = make_rule(start=time(9, 0), end=time(11, 0))
        b = make_rule(start=time(10, 0), end=time(12, 0), max_patients=1)
        appts = [make_appointment(time(11, 30), session_id=b.id)]

        assert _open(compute_availability([a, b], appts, today)) == [
            time(9, 0), time(9, 30),
        ]


class TestOccurrenceLoad:
    def test_counts_only_active_on_day(self, make_rule, make_appointment, today):
        rule = make_rule()
        appts = [
            make_appointment(time(9, 0), session_id=rule.id),
            make_appointment(time(9, 30), session_id=rule.id, status=AppointmentStatus.CANCELLED),
            make_appointment(time(10, 0), session_id=rule.id, day=today + timedelta(days=7)),
        ]
        assert occurrence_load(rule, appts, today) == 1

    def test_belongs_to_prefers_session_id(self, make_rule, make_appointment):
        a = make_rule(start=time(9, 0), end=time(11, 0))
        b = make_rule(start=time(10, 0), end=time(12, 0))
        appt = make_appointment(time(10, 0), session_id=b.id)
        assert belongs_to(appt, b)
        assert not belongs_to(appt, a)
