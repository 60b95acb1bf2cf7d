"""Notification service.

Turns engine payloads (promotion info, strike alerts) into stored
notifications. Called from Celery tasks, never from inside the engine's
transaction.
"""

from __future__ import annotations

import logging

from .models import Notification

logger = logging.getLogger(__name__)


TEMPLATES = {
    Notification.Kind.WAITLIST_PROMOTION: {
        "title": "You got a spot in {class_name}",
        "message": (
            "A seat freed up in {class_name} on {date} at {time} and you were "
            "next on the waitlist. Your booking is now reserved."
        ),
    },
    Notification.Kind.LATE_CANCELLATION_STRIKE: {
        "title": "Late cancellation recorded",
        "message": (
            "You cancelled inside the late cancellation window. "
            "Strikes: {strikes}/{threshold}.{restriction}"
        ),
    },
    Notification.Kind.ABSENT_STRIKE: {
        "title": "Absence recorded",
        "message": (
            "You were marked absent from a class you reserved. "
            "Strikes: {strikes}/{threshold}.{restriction}"
        ),
    },
}


class NotificationService:
    """Creates inbox notifications from engine payloads"""

    @staticmethod
    def create(user_id: str, kind: str, context: dict, payload: dict | None = None) -> Notification:
        template = TEMPLATES[Notification.Kind(kind)]
        notification = Notification.objects.create(
            user_id=user_id,
            kind=kind,
            title=template["title"].format(**context),
            message=template["message"].format(**context),
            payload=payload or {},
        )
        logger.info(f"Notification {notification.pk} ({kind}) created for user {user_id}")
        return notification

    @classmethod
    def waitlist_promotion(cls, user_id: str, class_id: int, booking_id: int | None) -> Notification:
        from apps.classes.models import ClassSession

        session = ClassSession.objects.filter(pk=class_id).first()
        context = {
            "class_name": session.name if session else f"class {class_id}",
            "date": session.date.isoformat() if session else "",
            "time": session.time.strftime("%H:%M") if session else "",
        }
        payload = {
            "promoted": True,
            "classId": class_id,
            "promotedUserId": user_id,
            "bookingId": booking_id,
        }
        return cls.create(user_id, Notification.Kind.WAITLIST_PROMOTION, context, payload)

    @classmethod
    def strike_alert(cls, alert: dict) -> Notification:
        """`alert` is a StrikeAlert rendered with to_dict()"""
        restriction = ""
        if alert.get("isRestricted"):
            restriction = f" Booking is restricted until {alert.get('restrictionUntil')}."
        context = {
            "strikes": alert.get("strikes"),
            "threshold": alert.get("threshold"),
            "restriction": restriction,
        }
        return cls.create(alert["userId"], alert["type"], context, alert)
