"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, IdempotencyRecord, WaitlistEntry


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "class_session",
        "user_id",
        "status",
        "cancelled_from",
        "status_changed_at",
        "created_at",
    )
    list_filter = ("status", "class_session__site_id", "class_session__date")
    search_fields = ("user_id", "class_session__name")
    # State changes go through the engine so seats and waitlists stay consistent
    readonly_fields = (
        "class_session",
        "user_id",
        "status",
        "cancelled_from",
        "last_status_reason",
        "status_changed_at",
        "version",
        "created_at",
    )


@admin.register(WaitlistEntry)
class WaitlistEntryAdmin(admin.ModelAdmin):
    list_display = ("class_session", "user_id", "joined_at", "booking", "created_at")
    list_filter = ("class_session__site_id",)
    search_fields = ("user_id",)
    readonly_fields = ("class_session", "user_id", "joined_at", "booking", "created_at")


@admin.register(IdempotencyRecord)
class IdempotencyRecordAdmin(admin.ModelAdmin):
    list_display = ("key", "operation", "user_id", "created_at")
    search_fields = ("key", "user_id")
    readonly_fields = ("key", "operation", "user_id", "response", "created_at")
