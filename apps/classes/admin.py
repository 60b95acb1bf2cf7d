"""Admin registration for class sessions."""

from __future__ import annotations

from django.contrib import admin

from .models import ClassSession


@admin.register(ClassSession)
class ClassSessionAdmin(admin.ModelAdmin):
    list_display = ("name", "site_id", "date", "time", "capacity", "enrolled_count", "created_at")
    list_filter = ("site_id", "date")
    search_fields = ("name",)
    readonly_fields = ("enrolled_count", "waitlist_clock", "created_at", "updated_at")
