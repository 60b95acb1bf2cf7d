"""Serializers for the booking API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class ClassRefSerializer(serializers.Serializer):
    """Body of the user-facing enroll, unenroll and waitlist calls."""

    classId = serializers.IntegerField(min_value=1)


class AdminEnrollSerializer(serializers.Serializer):
    """Admin acting on behalf of a user."""

    userId = serializers.CharField(max_length=64)


class AttendanceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Booking.Status.ATTENDED, Booking.Status.ABSENT])


class BookingSerializer(serializers.ModelSerializer):
    """Booking as shown in listings."""

    classId = serializers.ReadOnlyField(source="class_session_id")
    userId = serializers.ReadOnlyField(source="user_id")
    className = serializers.ReadOnlyField(source="class_session.name")
    date = serializers.ReadOnlyField(source="class_session.date")
    time = serializers.TimeField(source="class_session.time", format="%H:%M", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    statusChangedAt = serializers.DateTimeField(source="status_changed_at", read_only=True)
    lastStatusReason = serializers.ReadOnlyField(source="last_status_reason")

    class Meta:
        model = Booking
        fields = [
            "id",
            "classId",
            "userId",
            "className",
            "date",
            "time",
            "status",
            "createdAt",
            "statusChangedAt",
            "lastStatusReason",
        ]
        read_only_fields = fields


class WaitlistBookingSerializer(BookingSerializer):
    """WAITLIST booking with its current queue position."""

    position = serializers.SerializerMethodField()

    class Meta(BookingSerializer.Meta):
        fields = BookingSerializer.Meta.fields + ["position"]
        read_only_fields = fields

    def get_position(self, obj: Booking) -> int | None:
        return self.context.get("positions", {}).get(obj.pk)
