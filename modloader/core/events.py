"""
Event Bus - Diagnostic notifications for hosts.

The loader never writes diagnostics to a hard-coded stream. It emits typed
events that a host may subscribe to:
- Exact subscriptions match one event id
- Pattern subscriptions match event ids with a glob (* within a segment)
- Subscribers run in priority order (higher first, ties by registration)
- Dispatch is uninterruptible: a failing subscriber is logged and skipped
"""

import inspect
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class EventBusError(Exception):
    """Base exception for event bus errors."""

    pass


class SubscriptionError(EventBusError):
    """Raised when subscriber registration fails."""

    pass


@dataclass
class Subscriber:
    """
    Represents a registered event subscriber.

    Attributes:
        callback: The subscriber function
        priority: Higher priority executes first
        registration_order: Tie-breaker for same priority (lower = earlier)
        requires_src: Whether the subscriber expects the event id as 'src'
    """

    callback: Callable
    priority: int
    registration_order: int
    requires_src: bool = False

    def __call__(self, event_id: str, event: Any) -> None:
        """Execute the subscriber."""
        if self.requires_src:
            self.callback(event_id, event)
        else:
            self.callback(event)


class EventBus:
    """
    Registry and dispatcher for diagnostic events.

    Example:
        bus = EventBus()
        bus.subscribe("loader.error", lambda event: print(event.name))
        bus.emit("loader.error", LoadFailure("a", error))
    """

    def __init__(self):
        self._routes: dict[str, list[Subscriber]] = {}
        self._patterns: list[tuple[re.Pattern, Subscriber]] = []
        self._registration_counter = 0

    def _next_registration_order(self) -> int:
        order = self._registration_counter
        self._registration_counter += 1
        return order

    def _glob_to_regex(self, pattern: str) -> re.Pattern:
        """
        Convert an event id glob to a compiled regex.

        * matches any characters within a segment (not across dots).
        """
        escaped = re.escape(pattern)
        return re.compile("^" + escaped.replace(r"\*", "[^.]*") + "$")

    def subscribe(self, event_id: str, callback: Callable, priority: int = 0) -> Callable:
        """
        Subscribe to an exact event id.

        Args:
            event_id: Event id to match
            callback: Function taking (event)
            priority: Execution priority (higher = earlier)

        Returns:
            The callback, so this can be used as a decorator body
        """
        if not callable(callback):
            raise SubscriptionError(f"Subscriber must be callable. Got: {callback!r}")

        subscriber = Subscriber(
            callback=callback,
            priority=priority,
            registration_order=self._next_registration_order(),
        )
        self._routes.setdefault(event_id, []).append(subscriber)
        return callback

    def subscribe_re(self, pattern: str, callback: Callable, priority: int = 0) -> Callable:
        """
        Subscribe to every event id matching a glob pattern.

        Args:
            pattern: Glob pattern for event ids
            callback: Function taking (src, event)
            priority: Execution priority (higher = earlier)

        Raises:
            SubscriptionError: If callback doesn't take 'src' as first parameter
        """
        params = list(inspect.signature(callback).parameters.keys())
        if len(params) < 1 or params[0] != "src":
            raise SubscriptionError(
                f"Pattern-based subscriber must have 'src' as first parameter. Got: {params}"
            )

        subscriber = Subscriber(
            callback=callback,
            priority=priority,
            registration_order=self._next_registration_order(),
            requires_src=True,
        )
        self._patterns.append((self._glob_to_regex(pattern), subscriber))
        return callback

    def unsubscribe(self, callback: Callable) -> int:
        """Remove every subscription of a callback. Returns how many were removed."""
        removed = 0
        for event_id, subscribers in list(self._routes.items()):
            kept = [s for s in subscribers if s.callback is not callback]
            removed += len(subscribers) - len(kept)
            self._routes[event_id] = kept

        before = len(self._patterns)
        self._patterns = [(p, s) for p, s in self._patterns if s.callback is not callback]
        return removed + before - len(self._patterns)

    def _find_subscribers(self, event_id: str) -> list[Subscriber]:
        subscribers = list(self._routes.get(event_id, []))
        for pattern, subscriber in self._patterns:
            if pattern.match(event_id):
                subscribers.append(subscriber)

        return sorted(subscribers, key=lambda s: (-s.priority, s.registration_order))

    def emit(self, event_id: str, event: Any) -> int:
        """
        Dispatch an event to all matching subscribers.

        Args:
            event_id: The event identifier
            event: The event payload

        Returns:
            Number of subscribers that ran without error
        """
        delivered = 0
        for subscriber in self._find_subscribers(event_id):
            try:
                subscriber(event_id, event)
                delivered += 1
            except Exception:
                logger.exception("events.subscriber_failed", event_id=event_id)

        return delivered

    def on(self, event_id: str, priority: int = 0):
        """
        Decorator form of subscribe().

        Example:
            @bus.on("loader.register.dynamic")
            def warn(event):
                ...
        """

        def decorator(func: Callable) -> Callable:
            return self.subscribe(event_id, func, priority)

        return decorator
