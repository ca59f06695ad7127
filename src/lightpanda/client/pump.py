"""Message pump: the single consumer of a transport's frame queue.

Frames are taken in arrival order and routed without reordering: responses to
the CommandRegistry, events to the EventSubscriber. Handlers run on the pump
task, so a slow handler delays every frame behind it, responses included.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from ..protocol import Event, Response, decode_message
from ..transport import BaseTransport
from .commands import CommandRegistry
from .subscriber import EventSubscriber

logger = logging.getLogger(__name__)


class MessagePump:
    """Background task draining frames from a transport."""

    def __init__(
        self,
        transport: BaseTransport,
        registry: CommandRegistry,
        subscriber: EventSubscriber,
    ):
        self._transport = transport
        self._registry = registry
        self._subscriber = subscriber
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self, timeout: float = 1.0) -> None:
        """Wait for the pump to drain to the end marker, cancelling if it does not."""
        task = self._task
        if task is None:
            return
        if task is asyncio.current_task():
            # Called from a handler running on the pump; it ends at the end marker
            self._task = None
            return
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except TimeoutError:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._task = None

    async def _run(self) -> None:
        queue = self._transport.messages
        while True:
            frame = await queue.get()
            if frame is None:
                self._registry.fail_all("Connection closed")
                logger.debug("Message pump reached end of stream")
                return
            try:
                await self.route(frame)
            except Exception:
                logger.exception("Error routing frame")

    async def route(self, frame: dict[str, Any]) -> None:
        """Route one decoded frame to the registry or the subscriber."""
        message = decode_message(frame)
        if isinstance(message, Response):
            self._registry.resolve(message)
        elif isinstance(message, Event):
            await self._subscriber.dispatch(message.method, message.params)
