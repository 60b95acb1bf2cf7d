"""Unit tests for the booking aggregates (no database)."""

from datetime import datetime, timedelta, timezone

import pytest

from shared.domain.value_objects import SessionSchedule
from apps.bookings.domain.entities import BookingRecord, BookingStatus
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingReserved,
    SeatAdmitted,
    SeatReleased,
    WaitlistPromoted,
)
from apps.bookings.domain.exceptions import (
    AlreadyWaitlisted,
    InvalidStatusTransition,
    RestrictedUser,
)
from apps.bookings.domain.ledger import CapacityLedger
from apps.bookings.domain.waitlist import WaitlistQueue

START = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


def schedule():
    return SessionSchedule(starts_at=START, duration=timedelta(minutes=60))


# ===== Capacity ledger =====

def test_try_admit_stops_at_capacity():
    ledger = CapacityLedger(id=1, capacity=2)

    results = [ledger.try_admit() for _ in range(3)]

    assert [r.admitted for r in results] == [True, True, False]
    assert ledger.enrolled_count == 2
    assert results[2].enrolled_count == results[2].capacity
    assert [type(e) for e in ledger.events] == [SeatAdmitted, SeatAdmitted]


def test_release_is_floored_at_zero():
    ledger = CapacityLedger(id=1, capacity=1)

    assert ledger.release() == 0
    assert ledger.events == []

    ledger.try_admit()
    ledger.clear_events()
    assert ledger.release() == 0
    assert isinstance(ledger.events[0], SeatReleased)


def test_ledger_rejects_out_of_bounds_state():
    with pytest.raises(ValueError):
        CapacityLedger(id=1, capacity=0)
    with pytest.raises(ValueError):
        CapacityLedger(id=1, capacity=2, enrolled_count=3)


def test_ledger_tracks_dirty_state_for_compare_and_set():
    ledger = CapacityLedger(id=1, capacity=3, enrolled_count=1)
    assert not ledger.is_dirty

    ledger.try_admit()
    assert ledger.is_dirty
    assert ledger.loaded_count == 1

    ledger.mark_persisted()
    assert not ledger.is_dirty


# ===== Waitlist queue =====

def test_waitlist_is_fifo_by_logical_clock():
    queue = WaitlistQueue(id=7, clock=10)

    first = queue.enqueue("ana")
    second = queue.enqueue("beto")

    assert (first.joined_at, second.joined_at) == (11, 12)
    assert queue.position_of("ana") == 1
    assert queue.position_of("beto") == 2
    assert queue.dequeue_next().user_id == "ana"
    assert queue.position_of("beto") == 1


def test_waitlist_rejects_duplicates():
    queue = WaitlistQueue(id=7)
    queue.enqueue("ana")

    with pytest.raises(AlreadyWaitlisted):
        queue.enqueue("ana")


def test_waitlist_remove_is_idempotent():
    queue = WaitlistQueue(id=7)
    queue.enqueue("ana")

    assert queue.remove("ana").user_id == "ana"
    assert queue.remove("ana") is None
    assert queue.position_of("ana") is None
    assert queue.dequeue_next() is None


def test_waitlist_tracks_pending_writes():
    from apps.bookings.domain.waitlist import WaitlistEntry

    stored = WaitlistEntry(id=3, user_id="old", joined_at=1, sequence=3)
    queue = WaitlistQueue(id=7, clock=1, entries=[stored])

    queue.enqueue("new")
    queue.dequeue_next()

    assert [e.user_id for e in queue.added] == ["new"]
    assert queue.removed == [stored]

    queue.remove("new")
    assert queue.added == []

    queue.mark_persisted()
    assert queue.loaded_clock == queue.clock == 2


def test_waitlist_equal_clock_values_fall_back_to_insertion_sequence():
    from apps.bookings.domain.waitlist import WaitlistEntry

    late = WaitlistEntry(id=9, user_id="late", joined_at=5, sequence=9)
    early = WaitlistEntry(id=4, user_id="early", joined_at=5, sequence=4)
    queue = WaitlistQueue(id=7, clock=5, entries=[late, early])

    assert queue.peek().user_id == "early"


# ===== Booking state machine =====

def test_reserve_then_cancel_before_start():
    booking = BookingRecord.reserve(1, "ana", START - timedelta(days=1))
    booking.id = 5
    cancelled_at = START - timedelta(minutes=10)

    booking.cancel(cancelled_at, "changed plans", schedule=schedule(), late=True)

    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancelled_from == BookingStatus.RESERVED
    assert booking.status_changed_at == cancelled_at
    assert booking.version == 1
    assert booking.blocks_reenrollment()
    reserved, cancelled = booking.events
    assert isinstance(reserved, BookingReserved)
    assert isinstance(cancelled, BookingCancelled) and cancelled.late


def test_reservation_cannot_be_cancelled_after_start():
    booking = BookingRecord.reserve(1, "ana", START - timedelta(days=1))

    with pytest.raises(InvalidStatusTransition):
        booking.cancel(START + timedelta(minutes=1), "too late", schedule=schedule())
    assert booking.status == BookingStatus.RESERVED


def test_leaving_waitlist_does_not_block_reenrollment():
    booking = BookingRecord.waitlist(1, "ana", START - timedelta(days=1))

    booking.cancel(START - timedelta(hours=5), "left waitlist")

    assert booking.cancelled_from == BookingStatus.WAITLIST
    assert not booking.blocks_reenrollment()


def test_promotion_only_from_waitlist():
    waiting = BookingRecord.waitlist(1, "beto", START - timedelta(days=1))
    waiting.id = 8
    waiting.promote(START - timedelta(hours=1))

    assert waiting.status == BookingStatus.RESERVED
    assert isinstance(waiting.events[-1], WaitlistPromoted)
    assert waiting.events[-1].promoted_user_id == "beto"

    with pytest.raises(InvalidStatusTransition):
        waiting.promote(START - timedelta(minutes=30))


def test_attendance_windows():
    booking = BookingRecord.reserve(1, "ana", START - timedelta(days=1))

    with pytest.raises(InvalidStatusTransition):
        booking.mark_absent(START - timedelta(minutes=1), schedule())
    with pytest.raises(InvalidStatusTransition):
        booking.mark_attended(START + timedelta(hours=2), schedule())

    booking.mark_attended(START + timedelta(minutes=5), schedule())
    assert booking.status == BookingStatus.ATTENDED

    with pytest.raises(InvalidStatusTransition) as exc_info:
        booking.mark_absent(START + timedelta(hours=2), schedule())
    assert exc_info.value.to_dict()["from"] == "ATTENDED"


def test_terminal_states_reject_every_transition():
    booking = BookingRecord.reserve(1, "ana", START - timedelta(days=1))
    booking.mark_absent(START + timedelta(hours=2), schedule())

    with pytest.raises(InvalidStatusTransition):
        booking.cancel(START + timedelta(hours=3), "nope")
    with pytest.raises(InvalidStatusTransition):
        booking.promote(START + timedelta(hours=3))


def test_error_payload_carries_structured_fields():
    until = START + timedelta(days=1)
    payload = RestrictedUser(until).to_dict()

    assert payload["code"] == "RESTRICTED"
    assert payload["restrictionUntil"] == until.isoformat()
    assert RestrictedUser.http_status == 421
