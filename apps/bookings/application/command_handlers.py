"""
Booking Command Handlers

These are the use cases of the booking engine.
They orchestrate domain operations within transactions.

Commands:
- EnrollCommand: Take a seat, or a waitlist spot when the class is full
- JoinWaitlistCommand: Same as enroll, reached from the waitlist screen
- CancelBookingCommand: Cancel a reservation (promotes the next waiter) or a waitlist spot
- LeaveWaitlistCommand: Give up a waitlist spot
- CheckInCommand: User checks in to their reservation
- MarkAttendanceCommand: Admin marks a reservation ATTENDED or ABSENT
- ReconcileWaitlistCommand: Promote waiters into seats left free

Every handler:
1. Starts a unit of work (transaction)
2. Replays the stored response if the idempotency key was seen before
3. Locks the class session row (per-session critical section)
4. Applies the domain operation and saves with compare-and-set writes
5. Stores the response under the idempotency key
6. Commits; events are published after commit

A lost compare-and-set (StaleWrite) re-runs the whole handler a bounded
number of times before surfacing.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging

from django.conf import settings  # type: ignore
from django.db.models import F  # type: ignore

from shared.application.retry import retry_on
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import utcnow
from apps.bookings.application.results import (
    AttendanceResult,
    CancellationResult,
    EnrollmentResult,
    ReplayedResult,
    WaitlistPromotionInfo,
)
from apps.bookings.domain.entities import BookingRecord, BookingStatus
from apps.bookings.domain.exceptions import (
    AlreadyCancelledOnce,
    AlreadyEnrolled,
    AlreadyWaitlisted,
    BookingNotFound,
    CapacityFull,
    InvalidStatusTransition,
    NotEnrolled,
    RestrictedUser,
    SessionClosed,
    StaleWrite,
)
from apps.strikes.domain.policy import StrikeEventType

logger = logging.getLogger(__name__)


def stale_write_retries() -> int:
    return getattr(settings, 'BOOKING_STALE_WRITE_RETRIES', 3)


# ===== Commands =====

@dataclass
class EnrollCommand:
    """
    Command to enroll a user in a class session

    allow_waitlist=False is the admin enroll-on-behalf path: a full class
    raises CapacityFull instead of queueing.
    """
    user_id: str
    class_id: int
    now: Optional[datetime] = None
    allow_waitlist: bool = True
    idempotency_key: Optional[str] = None


@dataclass
class JoinWaitlistCommand:
    """Command to join a class from the waitlist screen (takes a free seat if any)"""
    user_id: str
    class_id: int
    now: Optional[datetime] = None
    idempotency_key: Optional[str] = None


@dataclass
class CancelBookingCommand:
    """Command to cancel a reservation or a waitlist spot"""
    user_id: str
    class_id: int
    now: Optional[datetime] = None
    reason: str = 'cancelled by user'
    idempotency_key: Optional[str] = None


@dataclass
class LeaveWaitlistCommand:
    user_id: str
    class_id: int
    now: Optional[datetime] = None
    idempotency_key: Optional[str] = None


@dataclass
class CheckInCommand:
    """Command for a user checking in to their own reservation"""
    booking_id: int
    user_id: str
    now: Optional[datetime] = None
    idempotency_key: Optional[str] = None


@dataclass
class MarkAttendanceCommand:
    """Admin command to close a reservation as ATTENDED or ABSENT"""
    booking_id: int
    status: BookingStatus
    now: Optional[datetime] = None
    actor_id: str = ''
    idempotency_key: Optional[str] = None


@dataclass
class ReconcileWaitlistCommand:
    """Promote waiters in sessions that have both free seats and a queue"""
    class_id: Optional[int] = None
    now: Optional[datetime] = None


# ===== Command Handlers =====

class EnrollHandler:
    """
    Handler for Enroll and JoinWaitlist commands

    This implements the critical admission logic: a seat is taken only
    through the capacity ledger while the session row is locked, so
    concurrent enrolls can never jointly exceed capacity.

    Seats that are already free while people wait (a promotion that rolled
    back, a capacity change) go to the waiters first. While anyone is still
    queued the caller is queued behind them, even if a seat is free.
    """

    def __init__(self, session_repo, ledger_repo, waitlist_repo, booking_repo,
                 idempotency_store, strike_service, promoter):
        self.session_repo = session_repo
        self.ledger_repo = ledger_repo
        self.waitlist_repo = waitlist_repo
        self.booking_repo = booking_repo
        self.idempotency = idempotency_store
        self.strikes = strike_service
        self.promoter = promoter

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def handle(self, command):
        """
        Returns: EnrollmentResult, or ReplayedResult for a repeated key

        Raises:
            RestrictedUser, ClassNotFound, SessionClosed, AlreadyEnrolled,
            AlreadyWaitlisted, AlreadyCancelledOnce, CapacityFull
        """
        now = command.now or utcnow()
        allow_waitlist = getattr(command, 'allow_waitlist', True)
        operation = 'join_waitlist' if isinstance(command, JoinWaitlistCommand) else (
            'enroll' if allow_waitlist else 'admin_enroll'
        )

        logger.info(f"Enrolling user {command.user_id} in class {command.class_id} ({operation})")

        with DjangoUnitOfWork() as uow:
            stored = self.idempotency.lookup(command.idempotency_key, operation, command.user_id)
            if stored is not None:
                logger.info(f"Replaying {operation} response for key {command.idempotency_key}")
                return ReplayedResult(stored)

            restriction_until = self.strikes.restriction_until(command.user_id, now)
            if restriction_until is not None:
                raise RestrictedUser(restriction_until)

            session = self.session_repo.get(command.class_id, lock=True)
            if session.schedule.has_started(now):
                raise SessionClosed(f"Class {session.pk} started at {session.starts_at.isoformat()}")

            self._ensure_can_book(command.class_id, command.user_id)

            promotions = self.promoter.fill_free_seats(uow, session.pk, now)

            # Waiters the promoter could not seat still keep their place ahead of the caller
            session = self.session_repo.get(command.class_id, lock=True)
            ledger = self.ledger_repo.for_session(session)
            queue = self.waitlist_repo.for_session(session)
            admitted = queue.peek() is None and ledger.try_admit().admitted

            if admitted:
                booking = BookingRecord.reserve(command.class_id, command.user_id, now)
                self.ledger_repo.save(ledger)
                self.booking_repo.save(booking)
                result = EnrollmentResult(booking=booking, promotions=promotions)
            elif allow_waitlist:
                booking = BookingRecord.waitlist(command.class_id, command.user_id, now)
                self.booking_repo.save(booking)
                queue.enqueue(command.user_id, booking_id=booking.id)
                self.waitlist_repo.save(queue)
                result = EnrollmentResult(
                    booking=booking,
                    waitlisted=True,
                    position=queue.position_of(command.user_id),
                    promotions=promotions,
                )
            else:
                raise CapacityFull(
                    f"Class {command.class_id} is full ({ledger.enrolled_count}/{ledger.capacity}, "
                    f"{len(queue.entries)} waiting)"
                )

            uow.collect_events(ledger)
            uow.collect_events(booking)

            self.idempotency.store(command.idempotency_key, operation, command.user_id, result.to_dict())

        if result.waitlisted:
            logger.info(
                f"Class {command.class_id} full, user {command.user_id} waitlisted "
                f"at position {result.position}"
            )
        else:
            logger.info(
                f"User {command.user_id} reserved class {command.class_id} "
                f"({ledger.enrolled_count}/{ledger.capacity})"
            )
        return result

    def _ensure_can_book(self, class_id: int, user_id: str):
        live = self.booking_repo.find_live(class_id, user_id)
        if live is not None:
            if live.status == BookingStatus.WAITLIST:
                raise AlreadyWaitlisted(f"User {user_id} is already waitlisted for class {class_id}")
            raise AlreadyEnrolled(
                f"User {user_id} already holds booking {live.id} ({live.status.value}) "
                f"for class {class_id}"
            )

        if not self.strikes.config.block_reenrollment_after_cancellation:
            return
        if any(record.blocks_reenrollment() for record in self.booking_repo.find_for_user(class_id, user_id)):
            raise AlreadyCancelledOnce(f"User {user_id} already cancelled a booking for class {class_id}")


class CancelBookingHandler:
    """
    Handler for cancelling a reservation or a waitlist spot

    RESERVED: the booking is cancelled, its seat released and handed to
    the earliest waiter in the same transaction. Cancelling inside the
    late cutoff records a strike.
    WAITLIST: the entry is removed; no seat moves and no strike.
    """

    def __init__(self, session_repo, ledger_repo, waitlist_repo, booking_repo,
                 idempotency_store, strike_service, promoter):
        self.session_repo = session_repo
        self.ledger_repo = ledger_repo
        self.waitlist_repo = waitlist_repo
        self.booking_repo = booking_repo
        self.idempotency = idempotency_store
        self.strikes = strike_service
        self.promoter = promoter

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def handle(self, command: CancelBookingCommand):
        now = command.now or utcnow()
        logger.info(f"Cancelling booking of user {command.user_id} in class {command.class_id}")

        with DjangoUnitOfWork() as uow:
            stored = self.idempotency.lookup(command.idempotency_key, 'cancel', command.user_id)
            if stored is not None:
                return ReplayedResult(stored)

            session = self.session_repo.get(command.class_id, lock=True)
            booking = self.booking_repo.find_live(command.class_id, command.user_id)
            if booking is None or not booking.is_active:
                raise NotEnrolled(f"User {command.user_id} has no active booking for class {command.class_id}")

            if booking.status == BookingStatus.WAITLIST:
                leave_waitlist(self.waitlist_repo, self.booking_repo, uow, session, booking, now)
                result = CancellationResult(booking=booking)
            else:
                result = self._cancel_reservation(uow, session, booking, command.reason, now)

            self.idempotency.store(command.idempotency_key, 'cancel', command.user_id, result.to_dict())

        return result

    def _cancel_reservation(self, uow, session, booking, reason, now) -> CancellationResult:
        schedule = session.schedule
        late = schedule.is_within_cutoff(now, self.strikes.config.late_cancellation_cutoff_minutes)

        booking.cancel(now, reason, schedule=schedule, late=late)
        ledger = self.ledger_repo.for_session(session)
        ledger.release()

        self.booking_repo.save(booking)
        self.ledger_repo.save(ledger)
        uow.collect_events(booking)
        uow.collect_events(ledger)

        promotion = self.promoter.promote_next(uow, session.pk, now)

        alert = None
        if late:
            alert = self.strikes.record_event(
                booking.user_id,
                StrikeEventType.LATE_CANCELLATION,
                now,
                booking_id=booking.id,
                uow=uow,
            )

        logger.info(
            f"Booking {booking.id} cancelled{' late' if late else ''}; "
            f"promoted: {promotion.promoted_user_id if promotion else 'nobody'}"
        )
        return CancellationResult(booking=booking, promotion=promotion, strike_alert=alert)


def leave_waitlist(waitlist_repo, booking_repo, uow, session, booking: BookingRecord, now: datetime):
    """WAITLIST -> CANCELLED and drop the queue entry. Shared by cancel and leave."""
    queue = waitlist_repo.for_session(session)
    queue.remove(booking.user_id)
    booking.cancel(now, 'left waitlist')

    booking_repo.save(booking)
    waitlist_repo.save(queue)
    uow.collect_events(booking)

    logger.info(f"User {booking.user_id} left the waitlist of class {session.pk}")


class LeaveWaitlistHandler:
    """Handler for giving up a waitlist spot (never a strike)"""

    def __init__(self, session_repo, waitlist_repo, booking_repo, idempotency_store):
        self.session_repo = session_repo
        self.waitlist_repo = waitlist_repo
        self.booking_repo = booking_repo
        self.idempotency = idempotency_store

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def handle(self, command: LeaveWaitlistCommand):
        now = command.now or utcnow()

        with DjangoUnitOfWork() as uow:
            stored = self.idempotency.lookup(command.idempotency_key, 'leave_waitlist', command.user_id)
            if stored is not None:
                return ReplayedResult(stored)

            session = self.session_repo.get(command.class_id, lock=True)
            booking = self.booking_repo.find_live(command.class_id, command.user_id)
            if booking is None or booking.status != BookingStatus.WAITLIST:
                raise NotEnrolled(f"User {command.user_id} is not waitlisted for class {command.class_id}")

            leave_waitlist(self.waitlist_repo, self.booking_repo, uow, session, booking, now)
            result = CancellationResult(booking=booking)

            self.idempotency.store(command.idempotency_key, 'leave_waitlist', command.user_id, result.to_dict())

        return result


class _AttendanceHandler:
    """Loads a booking under the session lock, in session -> booking lock order"""

    def __init__(self, session_repo, booking_repo, idempotency_store):
        self.session_repo = session_repo
        self.booking_repo = booking_repo
        self.idempotency = idempotency_store

    def _load(self, booking_id: int):
        class_id = self.booking_repo.get(booking_id).class_id
        session = self.session_repo.get(class_id, lock=True)
        booking = self.booking_repo.get(booking_id, lock=True)
        return session, booking


class CheckInHandler(_AttendanceHandler):
    """Handler for a user checking in (RESERVED -> ATTENDED)"""

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def handle(self, command: CheckInCommand):
        now = command.now or utcnow()
        logger.info(f"Checking in booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            stored = self.idempotency.lookup(command.idempotency_key, 'check_in', command.user_id)
            if stored is not None:
                return ReplayedResult(stored)

            session, booking = self._load(command.booking_id)
            if booking.user_id != command.user_id:
                raise BookingNotFound(f"Booking {command.booking_id} not found")

            booking.mark_attended(now, session.schedule, 'checked in')
            self.booking_repo.save(booking)
            uow.collect_events(booking)

            result = AttendanceResult(booking=booking)
            self.idempotency.store(command.idempotency_key, 'check_in', command.user_id, result.to_dict())

        logger.info(f"Booking {booking.id} checked in")
        return result


class MarkAttendanceHandler(_AttendanceHandler):
    """
    Admin handler closing a reservation

    ABSENT records an absence strike in the same transaction.
    """

    def __init__(self, session_repo, booking_repo, idempotency_store, strike_service):
        super().__init__(session_repo, booking_repo, idempotency_store)
        self.strikes = strike_service

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def handle(self, command: MarkAttendanceCommand):
        now = command.now or utcnow()
        status = BookingStatus(command.status)
        if status not in (BookingStatus.ATTENDED, BookingStatus.ABSENT):
            raise InvalidStatusTransition(None, status.value, "Attendance can only be ATTENDED or ABSENT")

        logger.info(f"Marking booking {command.booking_id} as {status.value}")

        with DjangoUnitOfWork() as uow:
            stored = self.idempotency.lookup(command.idempotency_key, 'mark_attendance', command.actor_id)
            if stored is not None:
                return ReplayedResult(stored)

            session, booking = self._load(command.booking_id)

            alert = None
            if status == BookingStatus.ATTENDED:
                booking.mark_attended(now, session.schedule, 'marked attended')
                self.booking_repo.save(booking)
            else:
                booking.mark_absent(now, session.schedule, 'marked absent')
                self.booking_repo.save(booking)
                alert = self.strikes.record_event(
                    booking.user_id,
                    StrikeEventType.ABSENCE,
                    now,
                    booking_id=booking.id,
                    uow=uow,
                )
            uow.collect_events(booking)

            result = AttendanceResult(booking=booking, strike_alert=alert)
            self.idempotency.store(command.idempotency_key, 'mark_attendance', command.actor_id, result.to_dict())

        return result


class ReconcileWaitlistHandler:
    """
    Handler for the periodic sweep

    Seats can be left free while people wait when a promotion rolled back.
    Each session is reconciled in its own transaction so one failing
    session never blocks the others.
    """

    def __init__(self, promoter):
        self.promoter = promoter

    def handle(self, command: ReconcileWaitlistCommand) -> List[WaitlistPromotionInfo]:
        from apps.classes.models import ClassSession

        now = command.now or utcnow()
        candidates = ClassSession.objects.filter(
            enrolled_count__lt=F('capacity'),
            waitlist_entries__isnull=False,
        ).distinct()
        if command.class_id is not None:
            candidates = candidates.filter(pk=command.class_id)

        promotions = []
        for session in candidates:
            if session.schedule.has_started(now):
                continue
            promotions.extend(self._reconcile(session.pk, now))

        if promotions:
            logger.info(f"Reconciliation promoted {len(promotions)} waitlisted user(s)")
        return promotions

    @retry_on((StaleWrite,), attempts=stale_write_retries)
    def _reconcile(self, class_id: int, now: datetime) -> List[WaitlistPromotionInfo]:
        with DjangoUnitOfWork() as uow:
            return self.promoter.fill_free_seats(uow, class_id, now)
