"""Tests for per-session event delivery."""

import pytest

from ghostguard.services.event_channel import EventChannel, EventType


class TestEventChannel:
    def test_subscriber_receives_in_order(self):
        channel = EventChannel("s1", maxsize=10)
        sub = channel.subscribe()
        channel.publish(EventType.NEW_MESSAGE, item_id="a")
        channel.publish(EventType.THREAT_DETECTED, threat_id="t")

        events = sub.drain()
        assert [e.type for e in events] == [EventType.NEW_MESSAGE, EventType.THREAT_DETECTED]
        assert events[0].session_id == "s1"
        assert events[1].data == {"threat_id": "t"}

    def test_every_subscriber_gets_every_event(self):
        channel = EventChannel("s1", maxsize=10)
        first, second = channel.subscribe(), channel.subscribe()
        channel.publish(EventType.SCAN_COMPLETED, item_id="a")
        assert len(first.drain()) == 1
        assert len(second.drain()) == 1

    def test_events_before_subscribe_not_replayed(self):
        channel = EventChannel("s1", maxsize=10)
        channel.publish(EventType.NEW_MESSAGE, item_id="early")
        sub = channel.subscribe()
        assert sub.get() is None

    def test_slow_subscriber_drops_oldest(self):
        channel = EventChannel("s1", maxsize=2)
        sub = channel.subscribe()
        for i in range(4):
            channel.publish(EventType.NEW_MESSAGE, item_id=str(i))

        assert [e.data["item_id"] for e in sub.drain()] == ["2", "3"]
        assert sub.dropped == 2

    def test_unsubscribe(self):
        channel = EventChannel("s1", maxsize=10)
        sub = channel.subscribe()
        sub.unsubscribe()
        channel.publish(EventType.NEW_MESSAGE)
        assert sub.closed is True
        assert sub.drain() == []
        assert channel.subscriber_count == 0

    def test_close(self):
        channel = EventChannel("s1", maxsize=10)
        sub = channel.subscribe()
        channel.close()
        assert sub.closed is True
        with pytest.raises(RuntimeError):
            channel.subscribe()
        # Publishing after close is a no-op
        channel.publish(EventType.NEW_MESSAGE)
        assert sub.drain() == []

    def test_get_with_timeout_returns_none(self):
        sub = EventChannel("s1", maxsize=1).subscribe()
        assert sub.get(timeout=0.01) is None
