"""
Strike Policy

Rolling-window strike accrual and restriction computation.

A strike is a late cancellation or an absence. Strikes are counted over a
rolling window ending at the moment of evaluation. When a new strike brings
the count to the threshold and the user is not already restricted, booking
privileges are suspended for a fixed duration. The restriction end is fixed
at that moment and does not move when the window is recomputed later.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List

from shared.domain.base import Aggregate
from shared.domain.value_objects import TimeWindow
from apps.strikes.domain.events import StrikeRecorded, UserRestricted


class StrikeEventType(Enum):
    LATE_CANCELLATION = 'LATE_CANCELLATION'
    ABSENCE = 'ABSENCE'

    @property
    def alert_type(self) -> str:
        """Name used in the alert payload shown to users"""
        return {
            StrikeEventType.LATE_CANCELLATION: 'LATE_CANCELLATION_STRIKE',
            StrikeEventType.ABSENCE: 'ABSENT_STRIKE',
        }[self]


@dataclass(frozen=True)
class StrikePolicyConfig:
    """
    Tunable policy values

    Loaded from settings.BOOKING_POLICY; see StrikePolicyConfig.from_settings().
    """
    late_cancellation_cutoff_minutes: int = 120
    restriction_duration_minutes: int = 1440
    strike_threshold: int = 3
    rolling_window_days: int = 30
    block_reenrollment_after_cancellation: bool = True

    def __post_init__(self):
        if self.strike_threshold < 1:
            raise ValueError("Strike threshold must be at least 1")
        if self.rolling_window_days < 1:
            raise ValueError("Rolling window must be at least one day")
        if self.restriction_duration_minutes < 1:
            raise ValueError("Restriction duration must be positive")
        if self.late_cancellation_cutoff_minutes < 0:
            raise ValueError("Late cancellation cutoff cannot be negative")

    @classmethod
    def from_settings(cls) -> 'StrikePolicyConfig':
        from django.conf import settings

        raw = getattr(settings, 'BOOKING_POLICY', {})
        return cls(
            late_cancellation_cutoff_minutes=int(raw.get('LATE_CANCELLATION_CUTOFF_MINUTES', 120)),
            restriction_duration_minutes=int(raw.get('RESTRICTION_DURATION_MINUTES', 1440)),
            strike_threshold=int(raw.get('STRIKE_THRESHOLD', 3)),
            rolling_window_days=int(raw.get('ROLLING_WINDOW_DAYS', 30)),
            block_reenrollment_after_cancellation=bool(
                raw.get('BLOCK_REENROLLMENT_AFTER_CANCELLATION', True)
            ),
        )

    @property
    def window_length(self) -> timedelta:
        return timedelta(days=self.rolling_window_days)

    @property
    def restriction_duration(self) -> timedelta:
        return timedelta(minutes=self.restriction_duration_minutes)

    def as_dict(self) -> dict:
        return {
            'lateCancellationCutoffMinutes': self.late_cancellation_cutoff_minutes,
            'restrictionDurationMinutes': self.restriction_duration_minutes,
            'strikeThreshold': self.strike_threshold,
            'rollingWindowDays': self.rolling_window_days,
            'blockReenrollmentAfterCancellation': self.block_reenrollment_after_cancellation,
        }


@dataclass(frozen=True)
class StrikeOccurrence:
    """One entry of a user's strike history"""
    event_type: StrikeEventType
    occurred_at: datetime
    id: int | None = None
    booking_id: int | None = None


@dataclass(frozen=True)
class StrikeAlert:
    """Payload surfaced to callers so they can notify the user"""
    type: StrikeEventType
    user_id: str
    strikes: int
    threshold: int
    is_restricted: bool
    restriction_until: datetime | None

    def to_dict(self) -> dict:
        return {
            'type': self.type.alert_type,
            'userId': self.user_id,
            'strikes': self.strikes,
            'threshold': self.threshold,
            'isRestricted': self.is_restricted,
            'restrictionUntil': self.restriction_until.isoformat() if self.restriction_until else None,
        }


@dataclass(frozen=True)
class StrikeWindow:
    """Read-only snapshot of a user's policy state at `as_of`"""
    user_id: str
    window: TimeWindow
    strike_count: int
    threshold: int
    restriction_until: datetime | None
    as_of: datetime

    @property
    def window_start(self) -> datetime:
        return self.window.start

    @property
    def window_end(self) -> datetime:
        return self.window.end

    @property
    def is_restricted(self) -> bool:
        return self.restriction_until is not None and self.as_of < self.restriction_until


@dataclass(kw_only=True, eq=False)
class StrikeHistory(Aggregate):
    """
    Strike History Aggregate Root (one per user)

    Holds the strike occurrences relevant to the window being evaluated and
    the current restriction end. `new_occurrences` are the ones the
    repository still has to persist.

    Key invariants:
    - restriction active iff now < restriction_until
    - restriction_until only set when no restriction is active
    """

    user_id: str
    config: StrikePolicyConfig
    occurrences: List[StrikeOccurrence] = field(default_factory=list)
    restriction_until: datetime | None = None
    new_occurrences: List[StrikeOccurrence] = field(default_factory=list, repr=False)

    def is_restricted(self, now: datetime) -> bool:
        return self.restriction_until is not None and now < self.restriction_until

    def count_in_window(self, window: TimeWindow) -> int:
        return sum(1 for o in self.occurrences if window.contains(o.occurred_at))

    def window_at(self, now: datetime) -> StrikeWindow:
        """Recompute the rolling window ending at `now`"""
        window = TimeWindow.ending_at(now, self.config.window_length)
        return StrikeWindow(
            user_id=self.user_id,
            window=window,
            strike_count=self.count_in_window(window),
            threshold=self.config.strike_threshold,
            restriction_until=self.restriction_until,
            as_of=now,
        )

    def record(self, event_type: StrikeEventType, at: datetime, booking_id: int | None = None) -> StrikeAlert:
        """
        Record a strike and apply the restriction rule

        Events: StrikeRecorded, plus UserRestricted when the threshold is reached
        """
        occurrence = StrikeOccurrence(event_type=event_type, occurred_at=at, booking_id=booking_id)
        self.occurrences.append(occurrence)
        self.new_occurrences.append(occurrence)

        snapshot = self.window_at(at)
        newly_restricted = False
        if snapshot.strike_count >= self.config.strike_threshold and not self.is_restricted(at):
            self.restriction_until = at + self.config.restriction_duration
            newly_restricted = True

        alert = StrikeAlert(
            type=event_type,
            user_id=self.user_id,
            strikes=snapshot.strike_count,
            threshold=self.config.strike_threshold,
            is_restricted=self.is_restricted(at),
            restriction_until=self.restriction_until if self.is_restricted(at) else None,
        )

        self.add_event(StrikeRecorded(
            aggregate_id=self.id,
            user_id=self.user_id,
            event_type=event_type.value,
            strikes=alert.strikes,
            threshold=alert.threshold,
            is_restricted=alert.is_restricted,
            restriction_until=alert.restriction_until,
        ))
        if newly_restricted:
            self.add_event(UserRestricted(
                aggregate_id=self.id,
                user_id=self.user_id,
                restriction_until=self.restriction_until,
            ))
        return alert

    def __str__(self):
        return f"StrikeHistory(user={self.user_id}, strikes={len(self.occurrences)})"
