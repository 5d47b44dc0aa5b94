"""
Tests for Event Bus - Diagnostic notifications.

This test suite covers:
1. Dispatch order verification
2. Subscriber error isolation
3. Glob pattern matching
4. Priority tie-breaking
5. Unsubscribing
"""

import pytest

from modloader.core.events import EventBus, SubscriptionError


class TestEventDispatch:
    """Test event dispatch (uninterruptible notification)."""

    def test_dispatch_order(self):
        """Events should dispatch to all subscribers in priority order."""
        bus = EventBus()
        order = []

        bus.subscribe("loader.error", lambda event: order.append(("low", event)), priority=5)
        bus.subscribe("loader.error", lambda event: order.append(("high", event)), priority=20)
        bus.subscribe("loader.error", lambda event: order.append(("mid", event)), priority=10)

        delivered = bus.emit("loader.error", "data")

        assert delivered == 3
        assert order == [("high", "data"), ("mid", "data"), ("low", "data")]

    def test_same_priority_uses_registration_order(self):
        """Subscribers with equal priority run in registration order."""
        bus = EventBus()
        order = []

        @bus.on("loader.module.linked")
        def first(event):
            order.append("first")

        @bus.on("loader.module.linked")
        def second(event):
            order.append("second")

        bus.emit("loader.module.linked", None)

        assert order == ["first", "second"]

    def test_subscriber_error_doesnt_stop_others(self):
        """A failing subscriber is skipped; the rest still run."""
        bus = EventBus()
        order = []

        def failing(event):
            order.append("failing")
            raise ValueError("subscriber error")

        bus.subscribe("loader.error", failing, priority=10)
        bus.subscribe("loader.error", lambda event: order.append("after"))

        delivered = bus.emit("loader.error", None)

        assert order == ["failing", "after"]
        assert delivered == 1

    def test_emit_without_subscribers(self):
        """Emitting an event nobody listens to delivers nothing."""
        assert EventBus().emit("nothing.here", None) == 0

    def test_non_callable_subscriber_rejected(self):
        with pytest.raises(SubscriptionError):
            EventBus().subscribe("loader.error", "not callable")


class TestEventPatternMatching:
    """Test glob pattern subscriptions."""

    def test_pattern_matches_event_ids(self):
        """A pattern subscriber receives the event id as src."""
        bus = EventBus()
        received = []

        def handler(src, event):
            received.append((src, event))

        bus.subscribe_re("loader.*", handler)

        bus.emit("loader.error", 1)
        bus.emit("loader.module.linked", 2)
        bus.emit("plugin.error", 3)

        # * does not cross dots
        assert received == [("loader.error", 1)]

    def test_pattern_requires_src_parameter(self):
        """Pattern subscribers must take src as first parameter."""
        bus = EventBus()

        with pytest.raises(SubscriptionError):
            bus.subscribe_re("loader.*", lambda event: None)

    def test_exact_and_pattern_both_match(self):
        """Exact and pattern subscribers both run, by priority."""
        bus = EventBus()
        order = []

        def pattern_handler(src, event):
            order.append("pattern")

        bus.subscribe("loader.error", lambda event: order.append("exact"), priority=1)
        bus.subscribe_re("loader.*", pattern_handler, priority=2)

        bus.emit("loader.error", None)

        assert order == ["pattern", "exact"]


class TestUnsubscribe:
    """Test removing subscribers."""

    def test_unsubscribe_removes_every_subscription(self):
        bus = EventBus()
        calls = []

        def handler(src, event):
            calls.append(src)

        def exact(event):
            calls.append("exact")

        bus.subscribe_re("loader.*", handler)
        bus.subscribe("loader.error", exact)
        bus.subscribe("loader.module.linked", exact)

        assert bus.unsubscribe(exact) == 2
        assert bus.unsubscribe(handler) == 1

        bus.emit("loader.error", None)
        assert calls == []
