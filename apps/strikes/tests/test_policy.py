"""Tests for strike accrual and restrictions."""

from datetime import datetime, timedelta, timezone

import pytest

from apps.strikes.domain.events import StrikeRecorded, UserRestricted
from apps.strikes.domain.policy import (
    StrikeEventType,
    StrikeHistory,
    StrikePolicyConfig,
)
from apps.strikes.models import StrikeEvent, StrikeStatus
from apps.strikes.services import StrikePolicyService

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def history(**config):
    return StrikeHistory(user_id="u1", config=StrikePolicyConfig(**config))


def test_threshold_crossing_sets_restriction_from_event_time():
    h = history(strike_threshold=2, restriction_duration_minutes=90)

    first = h.record(StrikeEventType.ABSENCE, T0)
    assert (first.strikes, first.is_restricted, first.restriction_until) == (1, False, None)

    at = T0 + timedelta(days=1)
    second = h.record(StrikeEventType.LATE_CANCELLATION, at)

    assert second.is_restricted
    assert second.restriction_until == at + timedelta(minutes=90)
    assert second.to_dict()["type"] == "LATE_CANCELLATION_STRIKE"
    assert h.is_restricted(second.restriction_until - timedelta(seconds=1))
    assert not h.is_restricted(second.restriction_until)
    assert [type(e) for e in h.events] == [StrikeRecorded, StrikeRecorded, UserRestricted]


def test_strikes_outside_rolling_window_do_not_count():
    h = history(strike_threshold=2, rolling_window_days=30)

    h.record(StrikeEventType.ABSENCE, T0)
    alert = h.record(StrikeEventType.ABSENCE, T0 + timedelta(days=31))

    assert alert.strikes == 1
    assert not alert.is_restricted


def test_active_restriction_is_not_extended_by_further_strikes():
    h = history(strike_threshold=1, restriction_duration_minutes=60)

    first = h.record(StrikeEventType.ABSENCE, T0)
    second = h.record(StrikeEventType.ABSENCE, T0 + timedelta(minutes=30))

    assert second.restriction_until == first.restriction_until == T0 + timedelta(minutes=60)


def test_restriction_end_survives_window_recomputation():
    h = history(strike_threshold=1, rolling_window_days=1, restriction_duration_minutes=3 * 24 * 60)
    alert = h.record(StrikeEventType.ABSENCE, T0)

    later = T0 + timedelta(days=2)
    snapshot = h.window_at(later)

    assert snapshot.strike_count == 0
    assert snapshot.is_restricted
    assert snapshot.restriction_until == alert.restriction_until


def test_config_validation_and_enumeration():
    with pytest.raises(ValueError):
        StrikePolicyConfig(strike_threshold=0)

    assert StrikePolicyConfig().as_dict() == {
        "lateCancellationCutoffMinutes": 120,
        "restrictionDurationMinutes": 1440,
        "strikeThreshold": 3,
        "rollingWindowDays": 30,
        "blockReenrollmentAfterCancellation": True,
    }


def test_config_reads_settings(settings):
    settings.BOOKING_POLICY = {"STRIKE_THRESHOLD": 5, "ROLLING_WINDOW_DAYS": 7}

    config = StrikePolicyConfig.from_settings()

    assert config.strike_threshold == 5
    assert config.rolling_window_days == 7
    assert config.late_cancellation_cutoff_minutes == 120


@pytest.mark.django_db
def test_service_persists_history_and_restriction():
    service = StrikePolicyService(StrikePolicyConfig(strike_threshold=3))

    alerts = [
        service.record_event("u9", StrikeEventType.ABSENCE, T0 + timedelta(days=day))
        for day in (0, 4, 9)
    ]

    assert [a.strikes for a in alerts] == [1, 2, 3]
    assert alerts[-1].is_restricted
    assert alerts[-1].restriction_until == T0 + timedelta(days=9, minutes=1440)
    assert StrikeEvent.objects.filter(user_id="u9").count() == 3
    assert StrikeStatus.objects.get(user_id="u9").restriction_until == alerts[-1].restriction_until

    until = alerts[-1].restriction_until
    assert service.is_restricted("u9", until - timedelta(seconds=1))
    assert not service.is_restricted("u9", until)
    assert service.restriction_until("u9", until) is None


@pytest.mark.django_db
def test_policy_snapshot_for_unknown_user():
    service = StrikePolicyService(StrikePolicyConfig())

    window = service.get_policy("nobody", T0)

    assert window.strike_count == 0
    assert not window.is_restricted
    assert window.window_end == T0
    assert window.window_start == T0 - timedelta(days=30)
