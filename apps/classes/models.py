"""Class session models.

Sessions are created by the scheduling side of the portal (the Django
admin stands in for it here). The booking engine only ever touches the
seat counter and the waitlist clock, and always through the capacity
ledger repository.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import SessionSchedule


class ClassSession(models.Model):
    """One scheduled instance of a gym class with fixed capacity."""

    name = models.CharField(max_length=120)
    site_id = models.PositiveIntegerField(
        db_index=True,
        help_text=_("Site (sede) hosting the class."),
    )
    date = models.DateField()
    time = models.TimeField()
    duration_minutes = models.PositiveSmallIntegerField(default=60)
    capacity = models.PositiveIntegerField()
    enrolled_count = models.PositiveIntegerField(default=0, editable=False)
    waitlist_clock = models.PositiveBigIntegerField(
        default=0,
        editable=False,
        help_text=_("Logical clock used to order waitlist entries."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Class session")
        verbose_name_plural = _("Class sessions")
        ordering = ["date", "time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(capacity__gte=1),
                name="class_session_positive_capacity",
            ),
            models.CheckConstraint(
                condition=models.Q(enrolled_count__lte=models.F("capacity")),
                name="class_session_enrolled_within_capacity",
            ),
        ]
        indexes = [
            models.Index(fields=["site_id", "date"], name="class_session_site_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.name} {self.date} {self.time:%H:%M} ({self.enrolled_count}/{self.capacity})"

    @property
    def available(self) -> int:
        return max(self.capacity - self.enrolled_count, 0)

    @property
    def starts_at(self) -> datetime:
        naive = datetime.combine(self.date, self.time)
        return timezone.make_aware(naive, timezone.get_default_timezone())

    @property
    def schedule(self) -> SessionSchedule:
        return SessionSchedule(
            starts_at=self.starts_at,
            duration=timedelta(minutes=self.duration_minutes),
        )
