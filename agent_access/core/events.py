"""Orchestration events and a typed subscription registry."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

EventListener = Callable[..., Any]


class OrchestrationEvent(Enum):
    """Events emitted by the orchestrator."""

    AGENT_REGISTERED = "agent_registered"
    AGENT_UNREGISTERED = "agent_unregistered"
    REQUEST_RECEIVED = "request_received"
    REQUEST_ROUTED = "request_routed"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_FAILED = "request_failed"
    PERMISSION_DENIED = "permission_denied"
    TOOL_ACCESS_GRANTED = "tool_access_granted"
    TOOL_ACCESS_DENIED = "tool_access_denied"


class EventBus:
    """Per-event listener lists.

    Listeners are called synchronously in subscription order. A listener
    that raises is logged and skipped; it never affects the emitter or
    other listeners.

    Example:
        bus = EventBus()
        bus.on(OrchestrationEvent.PERMISSION_DENIED, lambda request, result: print(result))
    """

    def __init__(self):
        self._listeners: dict[OrchestrationEvent, list[EventListener]] = defaultdict(list)

    def on(self, event: OrchestrationEvent, listener: EventListener) -> None:
        self._listeners[event].append(listener)

    def off(self, event: OrchestrationEvent, listener: EventListener) -> bool:
        """Unsubscribe a listener. Returns False if it was not subscribed."""
        try:
            self._listeners[event].remove(listener)
        except ValueError:
            return False
        return True

    def emit(self, event: OrchestrationEvent, *args: Any) -> None:
        for listener in list(self._listeners[event]):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener for {event.value} failed")

    def listener_count(self, event: OrchestrationEvent) -> int:
        return len(self._listeners[event])
