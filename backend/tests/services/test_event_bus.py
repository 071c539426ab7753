from contextlib import contextmanager
from dataclasses import dataclass
from typing import ClassVar
from unittest.mock import MagicMock, patch

from app.events.base import DomainEvent
from app.events.bus import EventBus


@dataclass
class SampleHappened(DomainEvent):
    name: ClassVar[str] = "sample.happened"

    sample_id: str


@contextmanager
def fake_session():
    yield MagicMock(name="session")


def test_failing_handler_does_not_stop_others():
    bus = EventBus(session_factory=fake_session, mode="inline")
    seen = []

    def broken(payload, db):
        raise RuntimeError("boom")

    def recorder(payload, db):
        seen.append(payload["sample_id"])

    bus.subscribe("sample.happened", broken)
    bus.subscribe("sample.happened", recorder)

    assert bus.dispatch("sample.happened", {"sample_id": "s1"}) == 1
    assert seen == ["s1"]


def test_subscribe_is_idempotent_and_publish_runs_inline():
    bus = EventBus(session_factory=fake_session, mode="inline")
    seen = []

    def recorder(payload, db):
        seen.append(payload)

    bus.subscribe("sample.happened", recorder)
    bus.subscribe("sample.happened", recorder)
    bus.publish(SampleHappened(sample_id="s2"))

    assert seen == [{"sample_id": "s2"}]

    bus.unsubscribe("sample.happened", recorder)
    assert bus.dispatch("sample.happened", {"sample_id": "s3"}) == 0


def test_celery_mode_queues_task():
    bus = EventBus(session_factory=fake_session, mode="celery")
    handler = MagicMock()
    bus.subscribe("sample.happened", handler)

    with patch("app.tasks.events.dispatch_event") as task:
        bus.publish(SampleHappened(sample_id="s4"))

    task.delay.assert_called_once_with("sample.happened", {"sample_id": "s4"})
    handler.assert_not_called()
