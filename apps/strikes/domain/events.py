"""
Strike Domain Events

Published after commit; the notifications app turns them into alerts.
"""

from dataclasses import dataclass
from datetime import datetime

from shared.domain.base import DomainEvent


@dataclass(kw_only=True)
class StrikeRecorded(DomainEvent):
    """
    Event: A late cancellation or absence was counted against a user

    Triggers:
    - Strike alert notification
    """
    user_id: str
    event_type: str
    strikes: int
    threshold: int
    is_restricted: bool
    restriction_until: datetime | None


@dataclass(kw_only=True)
class UserRestricted(DomainEvent):
    """
    Event: Strike threshold reached, booking privileges suspended

    Triggers:
    - Restriction notification
    """
    user_id: str
    restriction_until: datetime
