"""Strike policy service.

Entry points used by the booking engine (inside its unit of work) and by
the policy query endpoint (read-only).
"""

from __future__ import annotations

import logging
from datetime import datetime

from shared.application.uow import DjangoUnitOfWork
from apps.strikes.domain.policy import (
    StrikeAlert,
    StrikeEventType,
    StrikePolicyConfig,
    StrikeWindow,
)
from apps.strikes.repositories import StrikeHistoryRepository

logger = logging.getLogger(__name__)


class StrikePolicyService:
    def __init__(self, config: StrikePolicyConfig | None = None):
        self.config = config or StrikePolicyConfig.from_settings()
        self.repo = StrikeHistoryRepository(self.config)

    def record_event(
        self,
        user_id: str,
        event_type: StrikeEventType,
        at: datetime,
        *,
        booking_id: int | None = None,
        uow: DjangoUnitOfWork | None = None,
    ) -> StrikeAlert:
        """
        Append a strike and apply the restriction rule

        Joins the caller's unit of work when given one, otherwise runs in
        its own.
        """
        if uow is None:
            with DjangoUnitOfWork() as own_uow:
                return self._record(user_id, event_type, at, booking_id, own_uow)
        return self._record(user_id, event_type, at, booking_id, uow)

    def _record(self, user_id, event_type, at, booking_id, uow) -> StrikeAlert:
        history = self.repo.get(user_id, at, lock=True)
        alert = history.record(event_type, at, booking_id=booking_id)
        self.repo.save(history)
        uow.collect_events(history)

        logger.info(
            f"Strike {event_type.value} recorded for user {user_id}: "
            f"{alert.strikes}/{alert.threshold}, restricted={alert.is_restricted}"
        )
        return alert

    def is_restricted(self, user_id: str, now: datetime) -> bool:
        return self.restriction_until(user_id, now) is not None

    def restriction_until(self, user_id: str, now: datetime) -> datetime | None:
        """End of the active restriction, or None when not restricted"""
        from apps.strikes.models import StrikeStatus

        until = (
            StrikeStatus.objects.filter(user_id=user_id)
            .values_list("restriction_until", flat=True)
            .first()
        )
        if until is not None and now < until:
            return until
        return None

    def get_policy(self, user_id: str, now: datetime) -> StrikeWindow:
        """Policy snapshot for display (window recomputed at `now`)"""
        return self.repo.get(user_id, now).window_at(now)
