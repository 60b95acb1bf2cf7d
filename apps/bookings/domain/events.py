"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


# ===== Booking Events =====

@dataclass(kw_only=True)
class BookingReserved(DomainEvent):
    """
    Event: A seat was reserved for a user (direct enroll or promotion)

    Triggers:
    - Update class listing caches
    """
    booking_id: int | None
    class_id: int
    user_id: str
    promoted: bool = False


@dataclass(kw_only=True)
class BookingWaitlisted(DomainEvent):
    """Event: Class was full and the user was queued"""
    booking_id: int | None
    class_id: int
    user_id: str


@dataclass(kw_only=True)
class BookingCancelled(DomainEvent):
    """
    Event: A reservation or waitlist spot was cancelled

    Triggers:
    - Free the seat (RESERVED only)
    - Late cancellation strike, when inside the cutoff
    """
    booking_id: int | None
    class_id: int
    user_id: str
    old_status: str
    late: bool = False


@dataclass(kw_only=True)
class WaitlistPromoted(DomainEvent):
    """
    Event: Earliest waitlisted user was moved into a freed seat

    Triggers:
    - Notify the promoted user (async, after commit)
    """
    booking_id: int | None
    class_id: int
    promoted_user_id: str


@dataclass(kw_only=True)
class AttendanceMarked(DomainEvent):
    """Event: Reservation reached ATTENDED or ABSENT"""
    booking_id: int | None
    class_id: int
    user_id: str
    status: str


# ===== Capacity Ledger Events =====

@dataclass(kw_only=True)
class SeatAdmitted(DomainEvent):
    """Event: enrolled count went up by one"""
    class_id: int
    enrolled_count: int
    capacity: int


@dataclass(kw_only=True)
class SeatReleased(DomainEvent):
    """Event: enrolled count went down by one"""
    class_id: int
    enrolled_count: int
    capacity: int

