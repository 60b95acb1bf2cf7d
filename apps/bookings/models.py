"""Booking persistence models.

Rows here are the durable form of the booking aggregates. Domain rules live
in ``apps.bookings.domain``; the repositories translate between the two.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Booking(models.Model):
    """A user's booking of a class session (reservation or waitlist spot)."""

    class Status(models.TextChoices):
        RESERVED = "RESERVED", _("Reserved")
        ATTENDED = "ATTENDED", _("Attended")
        ABSENT = "ABSENT", _("Absent")
        CANCELLED = "CANCELLED", _("Cancelled")
        WAITLIST = "WAITLIST", _("Waitlist")

    class_session = models.ForeignKey(
        "classes.ClassSession",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    user_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text=_("Opaque user identifier issued by the identity provider."),
    )
    status = models.CharField(max_length=16, choices=Status.choices)
    cancelled_from = models.CharField(max_length=16, choices=Status.choices, blank=True)
    last_status_reason = models.CharField(max_length=255, blank=True)
    status_changed_at = models.DateTimeField()
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["class_session", "user_id"],
                condition=~models.Q(status="CANCELLED"),
                name="booking_one_live_record_per_user_and_class",
            ),
        ]
        indexes = [
            models.Index(fields=["class_session", "status"], name="booking_class_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.pk} {self.user_id} @ {self.class_session_id} ({self.status})"


class WaitlistEntry(models.Model):
    """A queued user. Position is derived from (joined_at, id) at read time."""

    class_session = models.ForeignKey(
        "classes.ClassSession",
        on_delete=models.CASCADE,
        related_name="waitlist_entries",
    )
    user_id = models.CharField(max_length=64)
    booking = models.OneToOneField(
        Booking,
        on_delete=models.CASCADE,
        related_name="waitlist_entry",
    )
    joined_at = models.PositiveBigIntegerField(
        help_text=_("Value of the session waitlist clock when the user joined."),
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Waitlist entry")
        verbose_name_plural = _("Waitlist entries")
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["class_session", "user_id"],
                name="waitlist_one_entry_per_user_and_class",
            ),
        ]

    def __str__(self) -> str:
        return f"Waitlist {self.user_id} @ {self.class_session_id} (t={self.joined_at})"


class IdempotencyRecord(models.Model):
    """Stored response of a mutating request, replayed on retries."""

    key = models.CharField(max_length=128)
    operation = models.CharField(max_length=32)
    user_id = models.CharField(max_length=64)
    response = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Idempotency record")
        verbose_name_plural = _("Idempotency records")
        constraints = [
            models.UniqueConstraint(
                fields=["key", "operation", "user_id"],
                name="idempotency_key_per_operation_and_user",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.operation}:{self.key} ({self.user_id})"
