"""API views for class sessions."""

from __future__ import annotations

from rest_framework import permissions, viewsets  # type: ignore

from .filters import ClassSessionFilterSet
from .models import ClassSession
from .serializers import ClassSessionSerializer


class ClassSessionViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only class listing. Sessions are created by the scheduling side."""

    queryset = ClassSession.objects.all()
    serializer_class = ClassSessionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = ClassSessionFilterSet
