"""URL routing for staff operations (mounted under /api/v1/admin/)."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import AdminBookingViewSet, AdminClassViewSet

router = SimpleRouter()
router.register(r"class", AdminClassViewSet, basename="admin-class")
router.register(r"bookings", AdminBookingViewSet, basename="admin-booking")

urlpatterns = [
    path("", include(router.urls)),
]
