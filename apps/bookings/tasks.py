"""Celery tasks for the booking engine."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.reconcile_waitlists")
def reconcile_waitlists(class_id: int | None = None) -> dict[str, int]:
    """
    Promote waiters into seats that are free while people wait.

    A promotion that rolled back leaves its seat free and its entry queued;
    this sweep hands such seats out. Runs every minute via Celery Beat.

    Returns:
        dict: {"promoted": number of promotions}
    """
    from shared.application.message_bus import message_bus
    from .application.command_handlers import ReconcileWaitlistCommand

    promotions = message_bus.handle_command(ReconcileWaitlistCommand(class_id=class_id))
    if promotions:
        logger.info(f"Reconciled waitlists: {len(promotions)} promotion(s)")
    return {"promoted": len(promotions)}
