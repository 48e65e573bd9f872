"""
hireflow Event Bus — publish/subscribe for engine notifications.

The engine, dispatcher and scheduler announce what they did here; the
audit log and any external observers listen. Subscriber failures are
logged and never reach the emitter, so a broken observer cannot stop
event processing.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
from typing import Awaitable, Callable

from hireflow.core.events import Event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """
    Publish/subscribe event bus.

    Usage:
        bus = EventBus()

        bus.on("action:failed", alert_operator)
        bus.on("action:*", count_actions)
        bus.on("*", audit_logger.handle)

        await bus.emit(Event(type="action:failed", data={...}))
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = {}

    def on(self, pattern: str, handler: EventHandler) -> None:
        """Subscribe to an event type. Supports wildcards: 'action:*', '*'."""
        self._subscribers.setdefault(pattern, []).append(handler)

    def off(self, pattern: str, handler: EventHandler) -> None:
        """Unsubscribe a handler from a pattern."""
        handlers = [h for h in self._subscribers.get(pattern, []) if h is not handler]
        if handlers:
            self._subscribers[pattern] = handlers
        else:
            self._subscribers.pop(pattern, None)

    async def emit(self, event: Event) -> Event:
        """
        Deliver an event to every matching subscriber.

        Subscribers run concurrently. Their exceptions are logged, not raised.
        """
        handlers = self._handlers_for(event.type)
        if not handlers:
            return event

        results = await asyncio.gather(
            *(handler(event) for handler in handlers),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    f"Subscriber error for {event.type}: {result}",
                    exc_info=result,
                )
        return event

    def _handlers_for(self, event_type: str) -> list[EventHandler]:
        matched: list[EventHandler] = []
        for pattern, handlers in self._subscribers.items():
            if pattern == event_type or pattern == "*":
                matched.extend(handlers)
            elif "*" in pattern and fnmatch.fnmatch(event_type, pattern):
                matched.extend(handlers)
        return matched
