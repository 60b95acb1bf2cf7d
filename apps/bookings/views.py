"""API views for the booking engine."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.api.identity import caller_id
from shared.application.message_bus import message_bus
from .application.command_handlers import (
    CancelBookingCommand,
    CheckInCommand,
    EnrollCommand,
    JoinWaitlistCommand,
    LeaveWaitlistCommand,
    MarkAttendanceCommand,
)
from .domain.entities import BookingStatus
from .serializers import (
    AdminEnrollSerializer,
    AttendanceStatusSerializer,
    BookingSerializer,
    ClassRefSerializer,
    WaitlistBookingSerializer,
)
from .services import bookings_for_user, roster_for_class, waitlists_for_user


def idempotency_key(request) -> str | None:
    return request.headers.get("Idempotency-Key") or None


def enrollment_response(result) -> Response:
    """201 for a reserved seat, 202 for a waitlist placement"""
    payload = result.to_dict()
    code = status.HTTP_202_ACCEPTED if payload.get("waitlisted") else status.HTTP_201_CREATED
    return Response(payload, status=code)


def _site_filter(request) -> int | None:
    """`sedeId` as the portal sends it, `site_id` accepted as an alias"""
    site_id = request.query_params.get("sedeId") or request.query_params.get("site_id")
    return int(site_id) if site_id and site_id.isdigit() else None


class BookingViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """The caller's own bookings and the user-facing engine operations."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):  # type: ignore
        return bookings_for_user(
            caller_id(self.request),
            site_id=_site_filter(self.request),
            status=self.request.query_params.get("status"),
        )

    @action(detail=False, methods=["post"])
    def enroll(self, request):  # type: ignore
        body = ClassRefSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(EnrollCommand(
            user_id=caller_id(request),
            class_id=body.validated_data["classId"],
            idempotency_key=idempotency_key(request),
        ))
        return enrollment_response(result)

    @action(detail=False, methods=["post"])
    def unenroll(self, request):  # type: ignore
        body = ClassRefSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(CancelBookingCommand(
            user_id=caller_id(request),
            class_id=body.validated_data["classId"],
            idempotency_key=idempotency_key(request),
        ))
        return Response(result.to_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        result = message_bus.handle_command(CheckInCommand(
            booking_id=int(pk),
            user_id=caller_id(request),
            idempotency_key=idempotency_key(request),
        ))
        return Response(result.to_dict(), status=status.HTTP_200_OK)

    @action(detail=False, methods=["get", "post"])
    def waitlist(self, request):  # type: ignore
        if request.method == "GET":
            bookings, positions = waitlists_for_user(caller_id(request), site_id=_site_filter(request))
            serializer = WaitlistBookingSerializer(bookings, many=True, context={"positions": positions})
            return Response({"bookings": serializer.data})

        body = ClassRefSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(JoinWaitlistCommand(
            user_id=caller_id(request),
            class_id=body.validated_data["classId"],
            idempotency_key=idempotency_key(request),
        ))
        return enrollment_response(result)

    @action(detail=False, methods=["delete"], url_path=r"waitlist/(?P<class_id>\d+)")
    def leave_waitlist(self, request, class_id=None):  # type: ignore
        message_bus.handle_command(LeaveWaitlistCommand(
            user_id=caller_id(request),
            class_id=int(class_id),
            idempotency_key=idempotency_key(request),
        ))
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminClassViewSet(viewsets.GenericViewSet):
    """Staff operations on one class: enroll or cancel on behalf of a user, roster."""

    permission_classes = [permissions.IsAdminUser]
    serializer_class = BookingSerializer
    lookup_value_regex = r"\d+"

    @action(detail=True, methods=["post"])
    def enroll(self, request, pk=None):  # type: ignore
        body = AdminEnrollSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(EnrollCommand(
            user_id=body.validated_data["userId"],
            class_id=int(pk),
            allow_waitlist=False,
            idempotency_key=idempotency_key(request),
        ))
        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def unenroll(self, request, pk=None):  # type: ignore
        body = AdminEnrollSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(CancelBookingCommand(
            user_id=body.validated_data["userId"],
            class_id=int(pk),
            reason=f"cancelled by admin {caller_id(request)}",
            idempotency_key=idempotency_key(request),
        ))
        return Response(result.to_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=["get"])
    def bookings(self, request, pk=None):  # type: ignore
        queryset = roster_for_class(int(pk), status=request.query_params.get("status"))
        return Response({"bookings": BookingSerializer(queryset.select_related("class_session"), many=True).data})


class AdminBookingViewSet(viewsets.GenericViewSet):
    """Staff marking attendance on a reservation."""

    permission_classes = [permissions.IsAdminUser]
    serializer_class = AttendanceStatusSerializer
    lookup_value_regex = r"\d+"

    @action(detail=True, methods=["put"], url_path="status")
    def set_status(self, request, pk=None):  # type: ignore
        body = AttendanceStatusSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        result = message_bus.handle_command(MarkAttendanceCommand(
            booking_id=int(pk),
            status=BookingStatus(body.validated_data["status"]),
            actor_id=caller_id(request),
            idempotency_key=idempotency_key(request),
        ))
        return Response(result.to_dict(), status=status.HTTP_200_OK)
