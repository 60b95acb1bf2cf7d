"""Notification model.

A message stored for a user about something the booking engine did to
them: a waitlist promotion, a strike, a restriction. Rows are written by
Celery tasks after the engine's transaction has committed and are read
through the inbox endpoint, where they can be marked as read.
"""

from __future__ import annotations

from django.db import models  # type: ignore


class Notification(models.Model):
    """A message sent to a user about some event."""

    class Kind(models.TextChoices):
        WAITLIST_PROMOTION = 'WAITLIST_PROMOTION', 'Waitlist promotion'
        LATE_CANCELLATION_STRIKE = 'LATE_CANCELLATION_STRIKE', 'Late cancellation strike'
        ABSENT_STRIKE = 'ABSENT_STRIKE', 'Absence strike'

    user_id = models.CharField(max_length=64, db_index=True)
    kind = models.CharField(max_length=32, choices=Kind.choices)
    title = models.CharField(max_length=255)
    message = models.TextField()
    payload = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"Notification to {self.user_id}: {self.title}"
