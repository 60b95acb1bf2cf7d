"""
Wiring of the booking engine

Builds the handlers with their repositories and registers them on the
message bus. Called from BookingsConfig.ready().
"""

from shared.application.message_bus import MessageBus
from apps.bookings.application.command_handlers import (
    CancelBookingCommand,
    CancelBookingHandler,
    CheckInCommand,
    CheckInHandler,
    EnrollCommand,
    EnrollHandler,
    JoinWaitlistCommand,
    LeaveWaitlistCommand,
    LeaveWaitlistHandler,
    MarkAttendanceCommand,
    MarkAttendanceHandler,
    ReconcileWaitlistCommand,
    ReconcileWaitlistHandler,
)
from apps.bookings.application.promotion import WaitlistPromoter
from apps.bookings.repositories import (
    BookingRepository,
    CapacityLedgerRepository,
    ClassSessionRepository,
    IdempotencyStore,
    WaitlistRepository,
)
from apps.strikes.services import StrikePolicyService


def bootstrap(bus: MessageBus, strike_service: StrikePolicyService | None = None) -> MessageBus:
    """
    Register every booking command handler on `bus`

    Re-running replaces the previous handlers, so tests can rebuild the
    engine after overriding BOOKING_POLICY.
    """
    sessions = ClassSessionRepository()
    ledgers = CapacityLedgerRepository()
    waitlists = WaitlistRepository()
    bookings = BookingRepository()
    idempotency = IdempotencyStore()
    strikes = strike_service or StrikePolicyService()
    promoter = WaitlistPromoter(sessions, ledgers, waitlists, bookings)

    enroll = EnrollHandler(sessions, ledgers, waitlists, bookings, idempotency, strikes, promoter)
    handlers = {
        EnrollCommand: enroll.handle,
        JoinWaitlistCommand: enroll.handle,
        CancelBookingCommand: CancelBookingHandler(
            sessions, ledgers, waitlists, bookings, idempotency, strikes, promoter
        ).handle,
        LeaveWaitlistCommand: LeaveWaitlistHandler(sessions, waitlists, bookings, idempotency).handle,
        CheckInCommand: CheckInHandler(sessions, bookings, idempotency).handle,
        MarkAttendanceCommand: MarkAttendanceHandler(sessions, bookings, idempotency, strikes).handle,
        ReconcileWaitlistCommand: ReconcileWaitlistHandler(promoter).handle,
    }
    for command_type, handler in handlers.items():
        bus.register_command_handler(command_type, handler, replace=True)
    return bus
