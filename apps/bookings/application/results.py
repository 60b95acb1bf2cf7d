"""
Command results

Every result renders to the camelCase payload the API returns, and the
same payload is what the idempotency store keeps for replays.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from apps.bookings.domain.entities import BookingRecord
from apps.strikes.domain.policy import StrikeAlert


def _iso(value):
    return value.isoformat() if value is not None else None


def booking_to_dict(booking: BookingRecord) -> dict:
    return {
        'id': booking.id,
        'classId': booking.class_id,
        'userId': booking.user_id,
        'status': booking.status.value,
        'createdAt': _iso(booking.created_at),
        'statusChangedAt': _iso(booking.status_changed_at),
        'lastStatusReason': booking.last_status_reason,
    }


@dataclass(frozen=True)
class WaitlistPromotionInfo:
    """Who got the freed seat, so the caller can tell them"""
    class_id: int
    promoted_user_id: str
    booking_id: int
    promoted: bool = True

    def to_dict(self) -> dict:
        return {
            'promoted': self.promoted,
            'classId': self.class_id,
            'promotedUserId': self.promoted_user_id,
        }


@dataclass
class EnrollmentResult:
    booking: BookingRecord
    waitlisted: bool = False
    position: Optional[int] = None
    # Waiters seated ahead of this request, never the caller
    promotions: List[WaitlistPromotionInfo] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'booking': booking_to_dict(self.booking),
            'waitlisted': self.waitlisted,
            'position': self.position,
        }


@dataclass
class CancellationResult:
    booking: BookingRecord
    promotion: Optional[WaitlistPromotionInfo] = None
    strike_alert: Optional[StrikeAlert] = None

    def to_dict(self) -> dict:
        payload = {'booking': booking_to_dict(self.booking)}
        if self.promotion is not None:
            payload['waitlistPromotion'] = self.promotion.to_dict()
        if self.strike_alert is not None:
            payload['strikeAlert'] = self.strike_alert.to_dict()
        return payload


@dataclass
class AttendanceResult:
    booking: BookingRecord
    strike_alert: Optional[StrikeAlert] = None

    def to_dict(self) -> dict:
        payload = {'booking': booking_to_dict(self.booking)}
        if self.strike_alert is not None:
            payload['strikeAlert'] = self.strike_alert.to_dict()
        return payload


@dataclass
class ReplayedResult:
    """Stored response of an earlier request with the same idempotency key"""
    payload: dict

    @property
    def waitlisted(self) -> bool:
        return bool(self.payload.get('waitlisted'))

    def to_dict(self) -> dict:
        return dict(self.payload)
