"""Tests for the event bus."""

import logging

import pytest

from infiltrator.events import EventBus, GameEvent, MessageEvent, MissionFailedEvent


class TestEventBus:
    def test_handler_exception_does_not_crash_event_bus(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A failing handler is logged and the remaining handlers still run."""
        bus = EventBus()
        handler_calls: list[str] = []

        def failing_handler(event: GameEvent) -> None:
            handler_calls.append("failing")
            raise ValueError("Handler failed!")

        def succeeding_handler(event: GameEvent) -> None:
            handler_calls.append("succeeding")

        bus.subscribe(MessageEvent, failing_handler)
        bus.subscribe(MessageEvent, succeeding_handler)

        with caplog.at_level(logging.ERROR):
            bus.publish(MessageEvent(text="Test message"))

        assert handler_calls == ["failing", "succeeding"]
        assert "Error handling event MessageEvent" in caplog.text
        assert "Handler failed!" in caplog.text

    def test_events_only_reach_their_own_subscribers(self) -> None:
        bus = EventBus()
        messages: list[MessageEvent] = []
        bus.subscribe(MessageEvent, messages.append)

        bus.publish(MissionFailedEvent(reason="caught"))
        bus.publish(MessageEvent(text="Hello"))

        assert [event.text for event in messages] == ["Hello"]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        messages: list[MessageEvent] = []
        bus.subscribe(MessageEvent, messages.append)
        bus.unsubscribe(MessageEvent, messages.append)
        # Unknown handlers are ignored.
        bus.unsubscribe(MessageEvent, print)

        bus.publish(MessageEvent(text="Hello"))

        assert messages == []

    def test_handler_may_unsubscribe_during_dispatch(self) -> None:
        bus = EventBus()
        calls: list[str] = []

        def once(event: GameEvent) -> None:
            calls.append("once")
            bus.unsubscribe(MessageEvent, once)

        bus.subscribe(MessageEvent, once)
        bus.subscribe(MessageEvent, lambda e: calls.append("always"))

        bus.publish(MessageEvent(text="a"))
        bus.publish(MessageEvent(text="b"))

        assert calls == ["once", "always", "always"]
