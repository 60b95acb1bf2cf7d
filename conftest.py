"""Shared pytest fixtures."""

from datetime import datetime, timedelta

import pytest
from django.utils import timezone

from shared.application.message_bus import MessageBus
from apps.bookings.application.bootstrap import bootstrap
from apps.strikes.domain.policy import StrikePolicyConfig
from apps.strikes.services import StrikePolicyService


@pytest.fixture
def make_session(db):
    """Create a class session starting at a given local wall-clock moment."""
    from apps.classes.models import ClassSession

    def factory(*, capacity=1, starts_at: datetime | None = None, site_id=1, name="Spinning", duration_minutes=60):
        if starts_at is None:
            starts_at = timezone.now() + timedelta(days=2)
        local = timezone.localtime(starts_at).replace(second=0, microsecond=0)
        return ClassSession.objects.create(
            name=name,
            site_id=site_id,
            date=local.date(),
            time=local.time(),
            duration_minutes=duration_minutes,
            capacity=capacity,
        )

    return factory


@pytest.fixture
def policy_config():
    return StrikePolicyConfig()


@pytest.fixture
def engine(db, policy_config):
    """A message bus wired with the booking handlers and the given policy."""
    return bootstrap(MessageBus(), StrikePolicyService(policy_config))
