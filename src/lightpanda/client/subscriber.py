"""Event subscriptions for one connection.

Handlers are kept per event name in insertion order. Dispatch iterates over a
snapshot taken under the lock, so handlers may subscribe or unsubscribe while
an event is being delivered. Handlers added meanwhile wait for the next event;
handlers removed meanwhile are skipped.
"""

from __future__ import annotations

import inspect
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

# Handlers receive the event params; coroutine functions are awaited
EventHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


class EventSubscriber:
    """Maps event names to ordered handler lists."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: EventHandler) -> EventHandler:
        """Register ``handler`` for ``event``.

        Returns:
            The handler itself, to pass back to unsubscribe()
        """
        with self._lock:
            self._subscriptions.setdefault(event, []).append(handler)
        return handler

    def unsubscribe(self, event: str, handler: EventHandler | None = None) -> None:
        """Remove one handler, or every handler for ``event`` when None."""
        with self._lock:
            if handler is None:
                self._subscriptions.pop(event, None)
                return
            handlers = self._subscriptions.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._subscriptions[event]

    def subscribed(self, event: str) -> bool:
        """True if at least one handler is registered for ``event``."""
        with self._lock:
            return bool(self._subscriptions.get(event))

    def clear(self) -> None:
        with self._lock:
            self._subscriptions.clear()

    async def dispatch(self, event: str, params: dict[str, Any]) -> int:
        """Deliver an event to every handler registered when it arrived.

        A handler that raises is logged and skipped; the others still run.

        Returns:
            Number of handlers invoked
        """
        with self._lock:
            handlers = list(self._subscriptions.get(event, ()))

        delivered = 0
        for handler in handlers:
            if not self._still_subscribed(event, handler):
                continue
            delivered += 1
            try:
                result = handler(params)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Error in handler for {event}")

        return delivered

    def _still_subscribed(self, event: str, handler: EventHandler) -> bool:
        with self._lock:
            return any(h is handler for h in self._subscriptions.get(event, ()))
