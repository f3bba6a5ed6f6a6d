"""Simple in-process event bus for decoupled event emission."""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

EventHandler = Callable[[dict[str, Any]], "None | Awaitable[None]"]

logger = logging.getLogger("na.event_bus")


class EventBus:
    """Dispatches events to subscribers by event name.

    Handlers may be plain callables or coroutine functions; a failing handler
    is logged and does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """Register a callback for an event."""
        self._handlers[event_name].append(handler)

    async def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        """Emit an event to all subscribers."""
        for handler in self._handlers.get(event_name, []):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event_name)
