"""Admin registration for strikes."""

from __future__ import annotations

from django.contrib import admin

from .models import StrikeEvent, StrikeStatus


@admin.register(StrikeEvent)
class StrikeEventAdmin(admin.ModelAdmin):
    list_display = ("user_id", "event_type", "occurred_at", "booking_id")
    list_filter = ("event_type",)
    search_fields = ("user_id",)


@admin.register(StrikeStatus)
class StrikeStatusAdmin(admin.ModelAdmin):
    list_display = ("user_id", "restriction_until", "updated_at")
    search_fields = ("user_id",)
