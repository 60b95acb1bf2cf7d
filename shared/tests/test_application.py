"""Tests for the shared application layer: retry, unit of work, message bus."""

from dataclasses import dataclass

import pytest

from shared.application.message_bus import MessageBus
from shared.application.retry import retry_on
from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import Aggregate, DomainEvent


class Conflict(Exception):
    pass


@dataclass(kw_only=True)
class Pinged(DomainEvent):
    name: str


@dataclass(kw_only=True, eq=False)
class Counter(Aggregate):
    value: int = 0

    def bump(self, name):
        self.value += 1
        self.add_event(Pinged(aggregate_id=self.id, name=name))


# ===== retry_on =====

def test_retry_reruns_until_success():
    calls = []

    @retry_on((Conflict,), attempts=3)
    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise Conflict()
        return "ok"

    assert flaky() == "ok"
    assert len(calls) == 3


def test_retry_gives_up_after_bound():
    calls = []

    @retry_on((Conflict,), attempts=lambda: 2)
    def always_conflicts():
        calls.append(1)
        raise Conflict()

    with pytest.raises(Conflict):
        always_conflicts()
    assert len(calls) == 2


def test_retry_ignores_other_errors():
    calls = []

    @retry_on((Conflict,), attempts=5)
    def broken():
        calls.append(1)
        raise ValueError("nope")

    with pytest.raises(ValueError):
        broken()
    assert len(calls) == 1


# ===== Message bus =====

def test_command_handler_is_unique_unless_replaced():
    bus = MessageBus()
    bus.register_command_handler(Counter, lambda c: "first")

    with pytest.raises(ValueError):
        bus.register_command_handler(Counter, lambda c: "second")

    bus.register_command_handler(Counter, lambda c: "second", replace=True)
    assert bus.handle_command(Counter()) == "second"


def test_unknown_command_raises():
    with pytest.raises(ValueError):
        MessageBus().handle_command(object())


def test_failing_event_handler_does_not_stop_others():
    bus = MessageBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    def recorder(event):
        seen.append(event.name)

    bus.register_event_handler(Pinged, broken)
    bus.register_event_handler(Pinged, recorder)
    bus.register_event_handler(Pinged, recorder)

    bus.publish_events([Pinged(aggregate_id=1, name="a")])

    assert seen == ["a"]


# ===== Unit of work =====

@pytest.mark.django_db
def test_events_are_published_after_commit(django_capture_on_commit_callbacks, monkeypatch):
    from shared.application import message_bus as bus_module

    published = []
    monkeypatch.setattr(bus_module.message_bus, "publish_events", lambda events: published.extend(events))
    counter = Counter(id=1)

    with django_capture_on_commit_callbacks(execute=True):
        with DjangoUnitOfWork() as uow:
            counter.bump("x")
            uow.collect_events(counter)
            assert published == []

    assert [e.name for e in published] == ["x"]
    assert counter.events == []


@pytest.mark.django_db
def test_rollback_discards_events(django_capture_on_commit_callbacks):
    counter = Counter(id=1)

    with django_capture_on_commit_callbacks() as callbacks:
        with pytest.raises(RuntimeError):
            with DjangoUnitOfWork() as uow:
                counter.bump("x")
                uow.collect_events(counter)
                raise RuntimeError("fail")

    assert callbacks == []


@pytest.mark.django_db
def test_savepoint_failure_drops_only_its_events():
    counter = Counter(id=1)

    with DjangoUnitOfWork() as uow:
        counter.bump("kept")
        uow.collect_events(counter)

        with pytest.raises(RuntimeError):
            with uow.savepoint():
                counter.bump("dropped")
                uow.collect_events(counter)
                raise RuntimeError("fail")

        assert [e.name for e in uow.pending_events] == ["kept"]
