"""
Booking Domain Errors

A small tagged error type with a fixed set of kinds. Every error carries a
stable machine-readable `code`, an HTTP-equivalent status and optional
structured `extra` fields, so the API layer can render it without
inspecting messages.

None of these are fatal to the process; all are surfaced to the caller.
"""

from datetime import datetime


class BookingError(Exception):
    """Base class for all booking engine errors."""

    code = 'BOOKING_ERROR'
    http_status = 400
    default_message = 'Booking operation failed'

    def __init__(self, message: str | None = None, **extra):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {'code': self.code, 'detail': self.message}
        for key, value in self.extra.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class ClassNotFound(BookingError):
    code = 'CLASS_NOT_FOUND'
    http_status = 404
    default_message = 'Class session not found'


class BookingNotFound(BookingError):
    code = 'BOOKING_NOT_FOUND'
    http_status = 404
    default_message = 'Booking not found'


class AlreadyEnrolled(BookingError):
    code = 'ALREADY_ENROLLED'
    http_status = 409
    default_message = 'User already holds a booking for this class'


class AlreadyCancelledOnce(BookingError):
    """A cancelled reservation blocks booking the same class again."""

    code = 'ALREADY_CANCELLED_ONCE'
    http_status = 409
    default_message = 'Booking for this class was already cancelled and cannot be made again'


class NotEnrolled(BookingError):
    code = 'NOT_ENROLLED'
    http_status = 409
    default_message = 'User has no active booking for this class'


class RestrictedUser(BookingError):
    """Raised while a strike restriction is active. Carries restrictionUntil."""

    code = 'RESTRICTED'
    http_status = 421
    default_message = 'User is temporarily restricted from booking classes'

    def __init__(self, restriction_until: datetime, message: str | None = None):
        self.restriction_until = restriction_until
        super().__init__(message, restrictionUntil=restriction_until)


class CapacityFull(BookingError):
    """Class is full. On regular enroll this routes to the waitlist instead."""

    code = 'CAPACITY_FULL'
    http_status = 409
    default_message = 'Class is full'


class InvalidStatusTransition(BookingError):
    code = 'INVALID_STATUS_TRANSITION'
    http_status = 409
    default_message = 'Booking status transition is not allowed'

    def __init__(self, from_status: str | None, to_status: str, message: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            message or f"Cannot move booking from {from_status} to {to_status}",
            **{'from': from_status, 'to': to_status},
        )


class AlreadyWaitlisted(BookingError):
    code = 'ALREADY_WAITLISTED'
    http_status = 409
    default_message = 'User is already on the waitlist for this class'


class SessionClosed(BookingError):
    code = 'SESSION_CLOSED'
    http_status = 409
    default_message = 'Class session has already started'


class StaleWrite(BookingError):
    """Concurrent modification detected; the caller should retry."""

    code = 'STALE_WRITE'
    http_status = 409
    default_message = 'Concurrent modification detected, please retry'
