"""
Common Value Objects

Value objects used across multiple domains:
- SessionSchedule: When a class session starts and how long it runs
- TimeWindow: A closed time interval (used for rolling strike windows)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class SessionSchedule(ValueObject):
    """
    SessionSchedule value object

    Represents the scheduled start of a class session and its duration.
    Immutable and timezone-aware.
    """
    starts_at: datetime
    duration: timedelta = timedelta(minutes=60)

    def __post_init__(self):
        if self.starts_at.tzinfo is None:
            raise ValueError("Session start must be timezone-aware")
        if self.duration <= timedelta(0):
            raise ValueError("Session duration must be positive")

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + self.duration

    def has_started(self, now: datetime) -> bool:
        """Check if the session start time has been reached"""
        return now >= self.starts_at

    def has_ended(self, now: datetime) -> bool:
        return now >= self.ends_at

    def is_within_cutoff(self, now: datetime, cutoff_minutes: int) -> bool:
        """
        Check if `now` falls inside the cutoff before the session starts

        True for the interval [starts_at - cutoff, starts_at).
        """
        if self.has_started(now):
            return False
        return self.starts_at - timedelta(minutes=cutoff_minutes) <= now

    def __str__(self):
        return f"{self.starts_at.isoformat()} ({int(self.duration.total_seconds() // 60)} min)"


@dataclass(frozen=True)
class TimeWindow(ValueObject):
    """
    TimeWindow value object

    Represents a closed interval [start, end].
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Window start ({self.start}) must not be after end ({self.end})"
            )

    @classmethod
    def ending_at(cls, end: datetime, length: timedelta) -> 'TimeWindow':
        """Build the rolling window of `length` that ends at `end`"""
        return cls(start=end - length, end=end)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def __str__(self):
        return f"{self.start.isoformat()} - {self.end.isoformat()}"
