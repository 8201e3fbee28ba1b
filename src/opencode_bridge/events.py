"""
Event records and the collaborator-facing publish interface.

Every decoded stream frame becomes an ``Event`` and is published on the
``EventBus`` under its ``type``. The streaming client also publishes three
lifecycle events (connected, connection lost, disconnected) and a decode
error event through the same bus.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from .async_helpers import safely_schedule_coroutine

logger = logging.getLogger(__name__)

CLIENT_CONNECTED = "client.connected"
CLIENT_CONNECTION_LOST = "client.connection_lost"
CLIENT_DISCONNECTED = "client.disconnected"
CLIENT_DECODE_ERROR = "client.decode_error"
SERVER_HEARTBEAT = "server.heartbeat"

LIFECYCLE_EVENT_TYPES = (CLIENT_CONNECTED, CLIENT_CONNECTION_LOST, CLIENT_DISCONNECTED)


@dataclass(frozen=True)
class Event:
    """One decoded event record."""

    type: str
    properties: Mapping[str, Any] = field(default_factory=dict)
    port: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "properties": dict(self.properties)}


EventHandler = Callable[[Event], Any]


class EventBus:
    """Type-keyed publish/subscribe channel for events."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._wildcard_handlers: List[EventHandler] = []

    def subscribe(self, event_type: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``; returns a function that unregisters it."""
        self._handlers[event_type].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def subscribe_all(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for every event type."""
        self._wildcard_handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._wildcard_handlers:
                self._wildcard_handlers.remove(handler)

        return _unsubscribe

    def handler_count(self, event_type: Optional[str] = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values()) + len(self._wildcard_handlers)
        return len(self._handlers.get(event_type, []))

    def publish(self, event: Event) -> None:
        """
        Deliver ``event`` to typed handlers, then wildcard handlers.

        Handlers run synchronously in registration order. A handler returning a
        coroutine has it scheduled on the running loop. Handler failures are
        logged and never propagate to the publisher.
        """
        handlers = list(self._handlers.get(event.type, [])) + list(self._wildcard_handlers)
        for handler in handlers:
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    safely_schedule_coroutine(result, name=f"event-handler:{event.type}")
            except Exception:
                logger.exception("Event handler failed for %s", event.type)


__all__ = [
    "CLIENT_CONNECTED",
    "CLIENT_CONNECTION_LOST",
    "CLIENT_DECODE_ERROR",
    "CLIENT_DISCONNECTED",
    "Event",
    "EventBus",
    "EventHandler",
    "LIFECYCLE_EVENT_TYPES",
    "SERVER_HEARTBEAT",
]
