"""Test the notification relay and emitters."""

import pytest

from control_panel.core.events import (
    MultiEventEmitter, NotificationRelay, NullEventEmitter, RelayEventEmitter
)
from control_panel.core.events_model import PanelEvent


def system_event():
    return PanelEvent.system_update_start("1.0.0")


class TestNotificationRelay:

    def test_topic_pattern_matching(self):
        relay = NotificationRelay()
        everything, system_only, instances = [], [], []
        relay.subscribe("*", everything.append)
        relay.subscribe("system", system_only.append)
        relay.subscribe("instances/*", instances.append)

        delivered = relay.publish(system_event())

        assert delivered == 2
        assert len(everything) == 1
        assert len(system_only) == 1
        assert instances == []

    def test_unsubscribed_observer_misses_events(self):
        relay = NotificationRelay()
        received = []
        subscription = relay.subscribe("*", received.append)
        relay.unsubscribe(subscription)

        relay.publish(system_event())

        assert received == []
        assert relay.subscriber_count == 0

    def test_failing_subscriber_does_not_block_others(self):
        relay = NotificationRelay()
        received = []

        def broken(event):
            raise RuntimeError("socket closed")

        relay.subscribe("*", broken)
        relay.subscribe("*", received.append)

        assert relay.publish(system_event()) == 1
        assert len(received) == 1

    def test_event_to_dict(self):
        data = PanelEvent.docker_pull_complete("nginx:alpine").to_dict()
        assert data["event"] == "docker:pull:complete"
        assert data["topic"] == "docker"
        assert data["data"] == {"image": "nginx:alpine"}
        assert "timestamp" in data


class TestEmitters:

    def test_relay_emitter_rejects_unknown_events(self):
        emitter = RelayEventEmitter(NotificationRelay())
        with pytest.raises(ValueError):
            emitter.emit([PanelEvent("app:exploded", "system")])

    def test_multi_emitter_fans_out(self):
        first, second = NotificationRelay(), NotificationRelay()
        a, b = [], []
        first.subscribe("*", a.append)
        second.subscribe("*", b.append)

        MultiEventEmitter([RelayEventEmitter(first), RelayEventEmitter(second), NullEventEmitter()]).emit(
            [system_event(), PanelEvent.system_update_complete("1.0.0")]
        )

        assert len(a) == 2
        assert len(b) == 2
