"""Celery tasks delivering engine notifications.

Enqueued by the domain event handlers after the engine's transaction has
committed. Failures here never touch booking state.
"""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(name="notifications.deliver_waitlist_promotion")
def deliver_waitlist_promotion(user_id: str, class_id: int, booking_id: int | None = None):
    """Tell a user they were moved from the waitlist into a seat"""
    from .services import NotificationService

    notification = NotificationService.waitlist_promotion(user_id, class_id, booking_id)
    logger.info(f"Delivered waitlist promotion for class {class_id} to user {user_id}")
    return notification.pk


@shared_task(name="notifications.deliver_strike_alert")
def deliver_strike_alert(alert: dict):
    """Tell a user a strike was recorded (and whether they are now restricted)"""
    from .services import NotificationService

    notification = NotificationService.strike_alert(alert)
    logger.info(f"Delivered {alert.get('type')} alert to user {alert.get('userId')}")
    return notification.pk
