"""Read-side services for booking listings."""

from __future__ import annotations

from django.db.models import QuerySet  # type: ignore

from .models import Booking, WaitlistEntry


def bookings_for_user(user_id: str, *, site_id: int | None = None, status: str | None = None) -> QuerySet:
    """A user's bookings, newest class first, optionally narrowed to one site"""

    queryset = Booking.objects.select_related("class_session").filter(user_id=user_id)
    if site_id is not None:
        queryset = queryset.filter(class_session__site_id=site_id)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by("-class_session__date", "-class_session__time", "-id")


def waitlist_positions(entries) -> dict[int, int]:
    """
    Map booking id -> 1-based queue position for the given entries

    Positions are derived at read time: entries ahead are those of the
    same class with a smaller joined_at.
    """

    positions: dict[int, int] = {}
    for entry in entries:
        ahead = WaitlistEntry.objects.filter(
            class_session_id=entry.class_session_id,
            joined_at__lt=entry.joined_at,
        ).count()
        positions[entry.booking_id] = ahead + 1
    return positions


def waitlists_for_user(user_id: str, *, site_id: int | None = None) -> tuple[QuerySet, dict[int, int]]:
    """WAITLIST bookings of a user together with their positions"""

    bookings = bookings_for_user(user_id, site_id=site_id, status=Booking.Status.WAITLIST)
    entries = WaitlistEntry.objects.filter(booking__in=bookings)
    return bookings, waitlist_positions(entries)


def roster_for_class(class_id: int, *, status: str | None = None) -> QuerySet:
    """All bookings of a class (tombstones included unless filtered out)"""

    queryset = Booking.objects.filter(class_session_id=class_id)
    if status:
        queryset = queryset.filter(status=status)
    return queryset.order_by("created_at", "id")
