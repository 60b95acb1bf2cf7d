"""
Domain event handlers for notifications

Registered on the message bus at startup. They run after commit and only
enqueue Celery tasks, so delivery never holds a booking transaction open.
"""

import logging

from apps.bookings.domain.events import WaitlistPromoted
from apps.strikes.domain.events import StrikeRecorded
from apps.strikes.domain.policy import StrikeEventType

logger = logging.getLogger(__name__)


def notify_waitlist_promotion(event: WaitlistPromoted):
    from .tasks import deliver_waitlist_promotion

    deliver_waitlist_promotion.delay(event.promoted_user_id, event.class_id, event.booking_id)


def notify_strike(event: StrikeRecorded):
    from .tasks import deliver_strike_alert

    alert = {
        "type": StrikeEventType(event.event_type).alert_type,
        "userId": event.user_id,
        "strikes": event.strikes,
        "threshold": event.threshold,
        "isRestricted": event.is_restricted,
        "restrictionUntil": event.restriction_until.isoformat() if event.restriction_until else None,
    }
    deliver_strike_alert.delay(alert)


def register(bus):
    bus.register_event_handler(WaitlistPromoted, notify_waitlist_promotion)
    bus.register_event_handler(StrikeRecorded, notify_strike)
    logger.debug("Notification event handlers registered")
