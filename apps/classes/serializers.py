"""Serializers for class sessions."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import ClassSession


class ClassSessionSerializer(serializers.ModelSerializer):
    """Session as listed to users; availability is also computed client-side."""

    siteId = serializers.ReadOnlyField(source="site_id")
    enrolled = serializers.ReadOnlyField(source="enrolled_count")
    available = serializers.ReadOnlyField()
    time = serializers.TimeField(format="%H:%M", read_only=True)
    durationMinutes = serializers.ReadOnlyField(source="duration_minutes")

    class Meta:
        model = ClassSession
        fields = [
            "id",
            "name",
            "siteId",
            "capacity",
            "enrolled",
            "available",
            "date",
            "time",
            "durationMinutes",
        ]
        read_only_fields = fields
