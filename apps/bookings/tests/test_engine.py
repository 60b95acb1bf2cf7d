"""Integration tests for the booking engine command handlers."""

from datetime import timedelta

import pytest

from shared.application.message_bus import MessageBus
from apps.bookings.application.bootstrap import bootstrap
from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CheckInCommand,
    EnrollCommand,
    JoinWaitlistCommand,
    LeaveWaitlistCommand,
    MarkAttendanceCommand,
    ReconcileWaitlistCommand,
)
from apps.bookings.application.results import ReplayedResult
from apps.bookings.domain.entities import BookingStatus
from apps.bookings.domain.exceptions import (
    AlreadyCancelledOnce,
    AlreadyEnrolled,
    AlreadyWaitlisted,
    BookingNotFound,
    CapacityFull,
    ClassNotFound,
    NotEnrolled,
    RestrictedUser,
    SessionClosed,
    StaleWrite,
)
from apps.bookings.models import Booking, WaitlistEntry
from apps.bookings.repositories import CapacityLedgerRepository
from apps.classes.models import ClassSession
from apps.notifications.models import Notification
from apps.strikes.domain.policy import StrikePolicyConfig
from apps.strikes.services import StrikePolicyService

pytestmark = pytest.mark.django_db


def enroll(engine, user, session, now, **kwargs):
    return engine.handle_command(EnrollCommand(user_id=user, class_id=session.pk, now=now, **kwargs))


def cancel(engine, user, session, now, **kwargs):
    return engine.handle_command(CancelBookingCommand(user_id=user, class_id=session.pk, now=now, **kwargs))


def enrolled(session) -> int:
    return ClassSession.objects.get(pk=session.pk).enrolled_count


# ===== Admission and waitlist =====

def test_capacity_is_never_exceeded_and_overflow_queues_in_arrival_order(engine, make_session):
    session = make_session(capacity=3)
    now = session.starts_at - timedelta(days=1)

    results = [enroll(engine, f"user-{i}", session, now) for i in range(5)]

    assert [r.waitlisted for r in results] == [False, False, False, True, True]
    assert [r.position for r in results[3:]] == [1, 2]
    assert enrolled(session) == 3
    assert Booking.objects.filter(class_session=session, status=Booking.Status.RESERVED).count() == 3
    assert list(
        WaitlistEntry.objects.filter(class_session=session).values_list("user_id", flat=True)
    ) == ["user-3", "user-4"]


def test_cancel_promotes_earliest_waiter_and_keeps_count(engine, make_session):
    session = make_session(capacity=2)
    now = session.starts_at - timedelta(days=1)
    for i in range(4):
        enroll(engine, f"user-{i}", session, now)

    result = cancel(engine, "user-0", session, now)

    assert result.promotion.promoted_user_id == "user-2"
    assert result.promotion.to_dict() == {"promoted": True, "classId": session.pk, "promotedUserId": "user-2"}
    assert result.strike_alert is None
    assert enrolled(session) == 2
    promoted = Booking.objects.get(class_session=session, user_id="user-2")
    assert promoted.status == Booking.Status.RESERVED
    assert promoted.last_status_reason == "promoted from waitlist"
    assert list(WaitlistEntry.objects.values_list("user_id", flat=True)) == ["user-3"]


def test_join_waitlist_takes_a_free_seat_directly(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)

    result = engine.handle_command(JoinWaitlistCommand(user_id="ana", class_id=session.pk, now=now))

    assert not result.waitlisted
    assert result.booking.status == BookingStatus.RESERVED


def test_duplicate_and_invalid_enrollments(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    enroll(engine, "beto", session, now)

    with pytest.raises(AlreadyEnrolled):
        enroll(engine, "ana", session, now)
    with pytest.raises(AlreadyWaitlisted):
        enroll(engine, "beto", session, now)
    with pytest.raises(ClassNotFound):
        engine.handle_command(EnrollCommand(user_id="ana", class_id=999_999, now=now))
    with pytest.raises(SessionClosed):
        enroll(engine, "carla", session, session.starts_at + timedelta(minutes=1))
    with pytest.raises(NotEnrolled):
        cancel(engine, "carla", session, now)


def test_admin_enroll_does_not_queue(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now, allow_waitlist=False)

    with pytest.raises(CapacityFull) as exc_info:
        enroll(engine, "beto", session, now, allow_waitlist=False)

    assert exc_info.value.to_dict()["code"] == "CAPACITY_FULL"
    assert not Booking.objects.filter(user_id="beto").exists()


# ===== Cancellation rules =====

def test_cancelled_reservation_blocks_reenrollment(engine, make_session):
    session = make_session(capacity=2)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    cancel(engine, "ana", session, now)

    with pytest.raises(AlreadyCancelledOnce):
        enroll(engine, "ana", session, now)


def test_reenrollment_allowed_when_policy_flag_is_off(make_session):
    engine = bootstrap(
        MessageBus(),
        StrikePolicyService(StrikePolicyConfig(block_reenrollment_after_cancellation=False)),
    )
    session = make_session(capacity=2)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    cancel(engine, "ana", session, now)

    result = enroll(engine, "ana", session, now)

    assert result.booking.status == BookingStatus.RESERVED
    assert Booking.objects.filter(user_id="ana").count() == 2


def test_leaving_the_waitlist_never_blocks_or_strikes(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(minutes=30)
    enroll(engine, "ana", session, now)
    enroll(engine, "beto", session, now)

    engine.handle_command(LeaveWaitlistCommand(user_id="beto", class_id=session.pk, now=now))
    again = enroll(engine, "beto", session, now)
    result = cancel(engine, "beto", session, now)

    assert again.waitlisted and again.position == 1
    assert result.strike_alert is None and result.promotion is None
    assert enrolled(session) == 1
    assert not WaitlistEntry.objects.exists()
    with pytest.raises(NotEnrolled):
        engine.handle_command(LeaveWaitlistCommand(user_id="beto", class_id=session.pk, now=now))


def test_reservation_cannot_be_cancelled_once_started(engine, make_session):
    from apps.bookings.domain.exceptions import InvalidStatusTransition

    session = make_session(capacity=1)
    enroll(engine, "ana", session, session.starts_at - timedelta(hours=1))

    with pytest.raises(InvalidStatusTransition):
        cancel(engine, "ana", session, session.starts_at + timedelta(minutes=5))
    assert enrolled(session) == 1


def test_late_cancellation_scenario(engine, make_session):
    session = make_session(capacity=1)
    early = session.starts_at - timedelta(hours=5)

    a = enroll(engine, "A", session, early)
    b = enroll(engine, "B", session, early)
    assert a.booking.status == BookingStatus.RESERVED and enrolled(session) == 1
    assert b.waitlisted and b.position == 1

    result = cancel(engine, "A", session, session.starts_at - timedelta(minutes=10))

    assert result.booking.status == BookingStatus.CANCELLED
    assert result.strike_alert.to_dict()["type"] == "LATE_CANCELLATION_STRIKE"
    assert result.strike_alert.strikes == 1
    assert not result.strike_alert.is_restricted
    assert result.promotion.promoted_user_id == "B"
    assert Booking.objects.get(user_id="B").status == Booking.Status.RESERVED
    assert enrolled(session) == 1
    payload = result.to_dict()
    assert set(payload) == {"booking", "waitlistPromotion", "strikeAlert"}


def test_cancelling_outside_cutoff_records_no_strike(engine, make_session):
    session = make_session(capacity=1)
    enroll(engine, "A", session, session.starts_at - timedelta(days=1))

    result = cancel(engine, "A", session, session.starts_at - timedelta(minutes=121))

    assert result.strike_alert is None
    assert enrolled(session) == 0


# ===== Attendance and strikes =====

def test_three_absences_restrict_the_user(engine, make_session):
    base = make_session(capacity=5).starts_at
    sessions = [make_session(capacity=5, starts_at=base + timedelta(days=d)) for d in (1, 5, 9)]
    for s in sessions:
        enroll(engine, "U", s, s.starts_at - timedelta(hours=1))

    alerts = []
    for s in sessions:
        booking = Booking.objects.get(class_session=s, user_id="U")
        marked_at = s.starts_at + timedelta(hours=2)
        result = engine.handle_command(MarkAttendanceCommand(
            booking_id=booking.pk, status=BookingStatus.ABSENT, now=marked_at,
        ))
        alerts.append((result.strike_alert, marked_at))

    assert [a.strikes for a, _ in alerts] == [1, 2, 3]
    last, marked_at = alerts[-1]
    assert last.is_restricted
    assert last.restriction_until == marked_at + timedelta(minutes=1440)
    assert last.to_dict()["type"] == "ABSENT_STRIKE"

    later = make_session(capacity=5, starts_at=marked_at + timedelta(days=3))
    with pytest.raises(RestrictedUser) as exc_info:
        enroll(engine, "U", later, marked_at + timedelta(hours=1))
    assert exc_info.value.restriction_until == last.restriction_until

    result = enroll(engine, "U", later, last.restriction_until)
    assert result.booking.status == BookingStatus.RESERVED


def test_check_in_and_admin_attendance(engine, make_session):
    session = make_session(capacity=2)
    now = session.starts_at - timedelta(hours=1)
    ana = enroll(engine, "ana", session, now).booking
    beto = enroll(engine, "beto", session, now).booking

    with pytest.raises(BookingNotFound):
        engine.handle_command(CheckInCommand(booking_id=ana.id, user_id="beto", now=now))

    checked = engine.handle_command(CheckInCommand(
        booking_id=ana.id, user_id="ana", now=session.starts_at - timedelta(minutes=5),
    ))
    attended = engine.handle_command(MarkAttendanceCommand(
        booking_id=beto.id, status=BookingStatus.ATTENDED, now=session.starts_at + timedelta(minutes=10),
    ))

    assert checked.booking.status == BookingStatus.ATTENDED
    assert attended.strike_alert is None
    assert Booking.objects.filter(status=Booking.Status.ATTENDED).count() == 2
    with pytest.raises(AlreadyEnrolled):
        enroll(engine, "ana", session, now)


# ===== Idempotency and concurrency =====

def test_enroll_with_same_idempotency_key_books_once(engine, make_session):
    session = make_session(capacity=3)
    now = session.starts_at - timedelta(days=1)

    first = enroll(engine, "ana", session, now, idempotency_key="req-1")
    second = enroll(engine, "ana", session, now, idempotency_key="req-1")

    assert isinstance(second, ReplayedResult)
    assert second.to_dict() == first.to_dict()
    assert Booking.objects.filter(user_id="ana").count() == 1
    assert enrolled(session) == 1


def test_cancel_replay_does_not_release_twice(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    enroll(engine, "beto", session, now)

    first = cancel(engine, "ana", session, now, idempotency_key="c-1")
    second = cancel(engine, "ana", session, now, idempotency_key="c-1")

    assert second.to_dict() == first.to_dict()
    assert enrolled(session) == 1


def test_stale_ledger_write_is_rejected(make_session):
    session = make_session(capacity=2)
    repo = CapacityLedgerRepository()
    ledger = repo.for_session(session)

    ClassSession.objects.filter(pk=session.pk).update(enrolled_count=1)
    ledger.try_admit()

    with pytest.raises(StaleWrite):
        repo.save(ledger)
    assert enrolled(session) == 1


# ===== Promotion failure and reconciliation =====

def test_failed_promotion_leaves_seat_free_and_entry_queued(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    beto = enroll(engine, "beto", session, now).booking
    # Breaks the waiter's booking so its promotion cannot succeed
    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.ATTENDED)

    result = cancel(engine, "ana", session, now)

    assert result.promotion is None
    assert result.booking.status == BookingStatus.CANCELLED
    assert enrolled(session) == 0
    assert WaitlistEntry.objects.filter(user_id="beto").exists()

    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.WAITLIST)
    promotions = engine.handle_command(ReconcileWaitlistCommand(now=now))

    assert [p.promoted_user_id for p in promotions] == ["beto"]
    assert enrolled(session) == 1
    assert not WaitlistEntry.objects.exists()


def test_enroll_seats_existing_waiters_first(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    beto = enroll(engine, "beto", session, now).booking
    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.ATTENDED)
    cancel(engine, "ana", session, now)
    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.WAITLIST)

    result = enroll(engine, "carla", session, now)

    assert [p.promoted_user_id for p in result.promotions] == ["beto"]
    assert result.waitlisted and result.position == 1
    assert enrolled(session) == 1


def test_failed_promotion_passes_the_seat_to_the_next_waiter(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    beto = enroll(engine, "beto", session, now).booking
    enroll(engine, "dani", session, now)
    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.ATTENDED)

    result = cancel(engine, "ana", session, now)
    carla = enroll(engine, "carla", session, now)

    assert result.promotion.promoted_user_id == "dani"
    assert carla.waitlisted and carla.position == 2
    assert enrolled(session) == 1
    assert list(
        WaitlistEntry.objects.filter(class_session=session).order_by("joined_at").values_list("user_id", flat=True)
    ) == ["beto", "carla"]


def test_newcomer_queues_behind_a_stuck_waiter_even_with_a_free_seat(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    beto = enroll(engine, "beto", session, now).booking
    Booking.objects.filter(pk=beto.id).update(status=Booking.Status.ATTENDED)
    cancel(engine, "ana", session, now)

    carla = enroll(engine, "carla", session, now)

    assert carla.waitlisted and carla.position == 2
    assert enrolled(session) == 0
    with pytest.raises(CapacityFull):
        enroll(engine, "dani", session, now, allow_waitlist=False)


def test_reconcile_skips_a_stuck_head_of_queue(engine, make_session):
    session = make_session(capacity=1)
    now = session.starts_at - timedelta(days=1)
    enroll(engine, "ana", session, now)
    beto = enroll(engine, "beto", session, now).booking
    dani = enroll(engine, "dani", session, now).booking
    Booking.objects.filter(pk__in=[beto.id, dani.id]).update(status=Booking.Status.ATTENDED)
    cancel(engine, "ana", session, now)
    Booking.objects.filter(pk=dani.id).update(status=Booking.Status.WAITLIST)

    promotions = engine.handle_command(ReconcileWaitlistCommand(now=now))

    assert [p.promoted_user_id for p in promotions] == ["dani"]
    assert enrolled(session) == 1
    assert list(WaitlistEntry.objects.values_list("user_id", flat=True)) == ["beto"]


# ===== Notifications =====

def test_notifications_are_sent_only_after_commit(engine, make_session, django_capture_on_commit_callbacks):
    session = make_session(capacity=1)
    enroll(engine, "A", session, session.starts_at - timedelta(hours=5))
    enroll(engine, "B", session, session.starts_at - timedelta(hours=5))

    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        cancel(engine, "A", session, session.starts_at - timedelta(minutes=10))

    assert Notification.objects.count() == 0
    assert len(callbacks) == 1

    callbacks[0]()

    promotion = Notification.objects.get(user_id="B")
    assert promotion.kind == Notification.Kind.WAITLIST_PROMOTION
    assert promotion.payload["classId"] == session.pk
    strike = Notification.objects.get(user_id="A")
    assert strike.kind == Notification.Kind.LATE_CANCELLATION_STRIKE
    assert strike.payload["strikes"] == 1
