"""Strike persistence models.

``StrikeEvent`` is the append-only history; ``StrikeStatus`` holds the one
value that must not be recomputed from history: the end of the current
restriction. Counts and window bounds are derived on read.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class StrikeEvent(models.Model):
    """A qualifying negative event counted against a user."""

    class EventType(models.TextChoices):
        LATE_CANCELLATION = "LATE_CANCELLATION", _("Late cancellation")
        ABSENCE = "ABSENCE", _("Absence")

    user_id = models.CharField(max_length=64)
    event_type = models.CharField(max_length=32, choices=EventType.choices)
    occurred_at = models.DateTimeField()
    booking_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text=_("Booking that caused the strike, if any."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Strike event")
        verbose_name_plural = _("Strike events")
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["user_id", "occurred_at"], name="strike_user_occurred_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.user_id} at {self.occurred_at:%Y-%m-%d %H:%M}"


class StrikeStatus(models.Model):
    """Per-user restriction state. The row doubles as the per-user lock."""

    user_id = models.CharField(max_length=64, unique=True)
    restriction_until = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Strike status")
        verbose_name_plural = _("Strike statuses")

    def __str__(self) -> str:
        return f"StrikeStatus {self.user_id} (until {self.restriction_until})"
