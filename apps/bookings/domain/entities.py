"""
Booking Domain Entities

Core business entities for the booking domain:
- BookingRecord: Aggregate for one user's booking of one class session
- BookingStatus: FSM states for the booking lifecycle
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from shared.domain.base import Aggregate
from shared.domain.value_objects import SessionSchedule
from apps.bookings.domain.events import (
    AttendanceMarked,
    BookingCancelled,
    BookingReserved,
    BookingWaitlisted,
    WaitlistPromoted,
)
from apps.bookings.domain.exceptions import InvalidStatusTransition


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - (new) -> RESERVED (seat admitted)
    - (new) -> WAITLIST (class full)
    - RESERVED -> ATTENDED (check-in or admin mark, before the session ends)
    - RESERVED -> ABSENT (admin mark, after the session started)
    - RESERVED -> CANCELLED (before the session starts)
    - WAITLIST -> RESERVED (promotion)
    - WAITLIST -> CANCELLED (left the waitlist)
    """
    RESERVED = 'RESERVED'
    ATTENDED = 'ATTENDED'
    ABSENT = 'ABSENT'
    CANCELLED = 'CANCELLED'
    WAITLIST = 'WAITLIST'


ALLOWED_TRANSITIONS: dict[BookingStatus | None, frozenset[BookingStatus]] = {
    None: frozenset({BookingStatus.RESERVED, BookingStatus.WAITLIST}),
    BookingStatus.RESERVED: frozenset({
        BookingStatus.ATTENDED,
        BookingStatus.ABSENT,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.WAITLIST: frozenset({
        BookingStatus.RESERVED,
        BookingStatus.CANCELLED,
    }),
    BookingStatus.ATTENDED: frozenset(),
    BookingStatus.ABSENT: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

ACTIVE_STATUSES = frozenset({BookingStatus.RESERVED, BookingStatus.WAITLIST})


@dataclass(kw_only=True, eq=False)
class BookingRecord(Aggregate):
    """
    BookingRecord Aggregate Root

    Key invariants:
    - Only transitions listed in ALLOWED_TRANSITIONS succeed
    - Every transition stamps status_changed_at and bumps version
    - CANCELLED records are kept as tombstones, never deleted
    """

    class_id: int
    user_id: str
    status: BookingStatus
    status_changed_at: datetime
    last_status_reason: str = ''
    cancelled_from: BookingStatus | None = None
    version: int = 0
    loaded_version: int | None = None

    def __post_init__(self):
        if self.loaded_version is None:
            self.loaded_version = self.version

    # ===== Creation =====

    @classmethod
    def reserve(cls, class_id: int, user_id: str, now: datetime, reason: str = 'enrolled') -> 'BookingRecord':
        """Create a RESERVED booking for an admitted seat"""
        booking = cls(
            class_id=class_id,
            user_id=user_id,
            status=BookingStatus.RESERVED,
            created_at=now,
            status_changed_at=now,
            last_status_reason=reason,
        )
        booking.add_event(BookingReserved(
            aggregate_id=None,
            booking_id=None,
            class_id=class_id,
            user_id=user_id,
        ))
        return booking

    @classmethod
    def waitlist(cls, class_id: int, user_id: str, now: datetime) -> 'BookingRecord':
        """Create a WAITLIST booking for a full class"""
        booking = cls(
            class_id=class_id,
            user_id=user_id,
            status=BookingStatus.WAITLIST,
            created_at=now,
            status_changed_at=now,
            last_status_reason='class full',
        )
        booking.add_event(BookingWaitlisted(
            aggregate_id=None,
            booking_id=None,
            class_id=class_id,
            user_id=user_id,
        ))
        return booking

    # ===== Transitions =====

    def promote(self, now: datetime):
        """
        Promote from the waitlist (WAITLIST -> RESERVED)

        The caller must already hold the admitted seat.
        Events: WaitlistPromoted
        """
        self._transition(BookingStatus.RESERVED, now, 'promoted from waitlist')
        self.add_event(WaitlistPromoted(
            aggregate_id=self.id,
            booking_id=self.id,
            class_id=self.class_id,
            promoted_user_id=self.user_id,
        ))

    def cancel(self, now: datetime, reason: str, *, schedule: SessionSchedule | None = None, late: bool = False):
        """
        Cancel a reservation or leave the waitlist (-> CANCELLED)

        Reservations can only be cancelled before the session starts.
        Events: BookingCancelled
        """
        old_status = self.status
        if (
            old_status == BookingStatus.RESERVED
            and schedule is not None
            and schedule.has_started(now)
        ):
            raise InvalidStatusTransition(
                old_status.value,
                BookingStatus.CANCELLED.value,
                "Cannot cancel a reservation once the class has started",
            )

        self._transition(BookingStatus.CANCELLED, now, reason)
        self.cancelled_from = old_status
        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            class_id=self.class_id,
            user_id=self.user_id,
            old_status=old_status.value,
            late=late,
        ))

    def mark_attended(self, now: datetime, schedule: SessionSchedule, reason: str = 'checked in'):
        """
        Check in (RESERVED -> ATTENDED)

        Allowed before or during the session, never after it ended.
        Events: AttendanceMarked
        """
        if schedule.has_ended(now):
            raise InvalidStatusTransition(
                self.status.value,
                BookingStatus.ATTENDED.value,
                "Cannot check in after the class has ended",
            )
        self._transition(BookingStatus.ATTENDED, now, reason)
        self._attendance_event()

    def mark_absent(self, now: datetime, schedule: SessionSchedule, reason: str = 'marked absent'):
        """
        No-show (RESERVED -> ABSENT)

        Only once the session start has passed.
        Events: AttendanceMarked
        """
        if not schedule.has_started(now):
            raise InvalidStatusTransition(
                self.status.value,
                BookingStatus.ABSENT.value,
                "Cannot mark absence before the class has started",
            )
        self._transition(BookingStatus.ABSENT, now, reason)
        self._attendance_event()

    def _transition(self, target: BookingStatus, now: datetime, reason: str):
        allowed = ALLOWED_TRANSITIONS[self.status]
        if target not in allowed:
            raise InvalidStatusTransition(self.status.value, target.value)
        self.status = target
        self.status_changed_at = now
        self.last_status_reason = reason
        self.version += 1

    def _attendance_event(self):
        self.add_event(AttendanceMarked(
            aggregate_id=self.id,
            booking_id=self.id,
            class_id=self.class_id,
            user_id=self.user_id,
            status=self.status.value,
        ))

    # ===== Queries =====

    @property
    def is_active(self) -> bool:
        """RESERVED or WAITLIST"""
        return self.status in ACTIVE_STATUSES

    def blocks_reenrollment(self) -> bool:
        """
        Tombstone check: a cancelled reservation counts as the one
        booking attempt for this class. Leaving the waitlist does not.
        """
        return (
            self.status == BookingStatus.CANCELLED
            and self.cancelled_from == BookingStatus.RESERVED
        )

    def __str__(self):
        return f"Booking {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"BookingRecord(id={self.id}, class_id={self.class_id}, "
            f"user_id={self.user_id}, status={self.status.value}, version={self.version})"
        )
