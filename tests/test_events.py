"""
Tests for the engine event bus.
"""

from unittest.mock import Mock

import pytest

from webtest.orchestration.events import (
    EngineEventType,
    EventBus,
    NotificationSeverity,
)


@pytest.fixture
def bus():
    """Create an EventBus instance for testing."""
    return EventBus(history_limit=5)


class TestEventBus:
    """Test cases for EventBus."""

    def test_subscribe_unsubscribe(self, bus):
        handler = Mock()

        bus.subscribe(EngineEventType.SEQUENCE_CHANGED, handler)
        bus.publish(EngineEventType.SEQUENCE_CHANGED, {"steps": []})
        bus.unsubscribe(EngineEventType.SEQUENCE_CHANGED, handler)
        bus.publish(EngineEventType.SEQUENCE_CHANGED, {"steps": []})

        assert handler.call_count == 1
        event = handler.call_args.args[0]
        assert event.type == EngineEventType.SEQUENCE_CHANGED
        assert event.payload == {"steps": []}

    def test_only_matching_type_delivered(self, bus):
        handler = Mock()
        bus.subscribe(EngineEventType.PLAYBACK_FINISHED, handler)

        bus.publish(EngineEventType.PLAYBACK_PROGRESS, {"index": 0})

        handler.assert_not_called()

    def test_subscribe_all(self, bus):
        handler = Mock()
        bus.subscribe_all(handler)

        bus.publish(EngineEventType.PLAYBACK_PROGRESS)
        bus.publish(EngineEventType.PLAYBACK_FINISHED)
        bus.unsubscribe(None, handler)
        bus.publish(EngineEventType.PLAYBACK_FINISHED)

        assert [c.args[0].type for c in handler.call_args_list] == [
            EngineEventType.PLAYBACK_PROGRESS,
            EngineEventType.PLAYBACK_FINISHED,
        ]

    def test_failing_handler_does_not_stop_delivery(self, bus):
        broken = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        bus.subscribe(EngineEventType.NOTIFICATION, broken)
        bus.subscribe(EngineEventType.NOTIFICATION, healthy)

        bus.publish(EngineEventType.NOTIFICATION, {"title": "x"})

        healthy.assert_called_once()

    def test_notify(self, bus):
        event = bus.notify(NotificationSeverity.WARNING, "Heads up", "Something happened")

        assert event.type == EngineEventType.NOTIFICATION
        assert event.payload == {
            "severity": "warning",
            "title": "Heads up",
            "message": "Something happened",
        }

    def test_history_is_bounded_and_filterable(self, bus):
        for i in range(4):
            bus.publish(EngineEventType.PLAYBACK_PROGRESS, {"index": i})
        for _ in range(3):
            bus.publish(EngineEventType.HIGHLIGHT_CHANGED)

        history = bus.get_history()
        assert len(history) == 5

        progress = bus.get_history(EngineEventType.PLAYBACK_PROGRESS)
        assert [e.payload["index"] for e in progress] == [2, 3]
        assert len(bus.get_history(limit=2)) == 2

        bus.clear_history()
        assert bus.get_history() == []

    def test_old_screenshots_stripped_from_history(self):
        bus = EventBus(history_limit=50, screenshot_history_limit=2)
        received = []
        bus.subscribe(EngineEventType.SCREENSHOT_CHANGED, received.append)

        for i in range(4):
            bus.publish(
                EngineEventType.SCREENSHOT_CHANGED,
                {"screenshot": f"shot-{i}", "source": "playback", "step_index": i},
            )

        shots = bus.get_history(EngineEventType.SCREENSHOT_CHANGED)
        assert [e.payload["screenshot"] for e in shots] == [None, None, "shot-2", "shot-3"]
        assert shots[0].payload["screenshot_stripped"] is True
        assert shots[0].payload["step_index"] == 0
        # Subscribers always get the full payload
        assert [e.payload["screenshot"] for e in received] == [
            "shot-0", "shot-1", "shot-2", "shot-3",
        ]
