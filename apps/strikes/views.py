"""API views for the no-show policy."""

from __future__ import annotations

from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from shared.api.identity import caller_id
from shared.domain.base import utcnow
from .domain.policy import StrikeWindow
from .services import StrikePolicyService


def policy_payload(window: StrikeWindow, service: StrikePolicyService) -> dict:
    until = window.restriction_until.isoformat() if window.is_restricted else None
    return {
        "isRestricted": window.is_restricted,
        "currentWindow": {
            "noShows": window.strike_count,
            "threshold": window.threshold,
            "restricted": window.is_restricted,
            "restrictionUntil": until,
            "minutes": service.config.restriction_duration_minutes,
            "windowStart": window.window_start.isoformat(),
            "windowEnd": window.window_end.isoformat(),
        },
        "config": service.config.as_dict(),
    }


class NoShowPolicyView(APIView):
    """The caller's strike window and restriction, recomputed at request time."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        service = StrikePolicyService()
        window = service.get_policy(caller_id(request), utcnow())
        return Response({"policy": policy_payload(window, service)}, status=status.HTTP_200_OK)
