"""Repository translating strike rows to the StrikeHistory aggregate."""

from __future__ import annotations

from datetime import datetime

from shared.infrastructure.locking import lock_queryset_if_possible
from apps.strikes.domain.policy import (
    StrikeEventType,
    StrikeHistory,
    StrikeOccurrence,
    StrikePolicyConfig,
)
from apps.strikes.models import StrikeEvent, StrikeStatus


class StrikeHistoryRepository:
    """Loads the part of a user's history relevant to one rolling window."""

    def __init__(self, config: StrikePolicyConfig):
        self.config = config

    def get(self, user_id: str, reference: datetime, *, lock: bool = False) -> StrikeHistory:
        """
        Load history for the window ending at `reference`

        With lock=True the user's StrikeStatus row is locked (and created if
        missing) so concurrent strike recordings for one user serialize.
        """
        if lock:
            StrikeStatus.objects.get_or_create(user_id=user_id)
            status = lock_queryset_if_possible(
                StrikeStatus.objects.filter(user_id=user_id)
            ).get()
        else:
            status = StrikeStatus.objects.filter(user_id=user_id).first()

        window_start = reference - self.config.window_length
        rows = StrikeEvent.objects.filter(
            user_id=user_id,
            occurred_at__gte=window_start,
        ).order_by("occurred_at", "id")

        occurrences = [
            StrikeOccurrence(
                id=row.id,
                event_type=StrikeEventType(row.event_type),
                occurred_at=row.occurred_at,
                booking_id=row.booking_id,
            )
            for row in rows
        ]
        return StrikeHistory(
            id=status.id if status else None,
            user_id=user_id,
            config=self.config,
            occurrences=occurrences,
            restriction_until=status.restriction_until if status else None,
        )

    def save(self, history: StrikeHistory) -> None:
        if history.new_occurrences:
            StrikeEvent.objects.bulk_create([
                StrikeEvent(
                    user_id=history.user_id,
                    event_type=occurrence.event_type.value,
                    occurred_at=occurrence.occurred_at,
                    booking_id=occurrence.booking_id,
                )
                for occurrence in history.new_occurrences
            ])
            history.new_occurrences.clear()

        status, _ = StrikeStatus.objects.update_or_create(
            user_id=history.user_id,
            defaults={"restriction_until": history.restriction_until},
        )
        history.id = status.id
