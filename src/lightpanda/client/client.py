"""Per-connection client session.

A Client owns one transport together with the command registry, the event
subscriber and the message pump that serve it. Nothing here is process-wide:
two clients never share ids, pending commands or handlers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from ..errors import EventTimeoutError
from ..options import Options
from ..transport import BaseTransport, WebSocketTransport
from .commands import CommandRegistry
from .pump import MessagePump
from .subscriber import EventHandler, EventSubscriber

logger = logging.getLogger(__name__)


class Client:
    """CDP client over one transport.

    Usage:
        async with await Client.connect("ws://127.0.0.1:9222/") as client:
            version = await client.command("Browser.getVersion")
            client.on("Target.targetCreated", print)
    """

    def __init__(self, transport: BaseTransport, options: Options | None = None):
        self.options = options or Options()
        self.transport = transport
        self.commands = CommandRegistry(transport, default_timeout=self.options.timeout)
        self.subscriber = EventSubscriber()
        self.pump = MessagePump(transport, self.commands, self.subscriber)
        self._closed = False

    @classmethod
    async def connect(cls, ws_url: str, options: Options | None = None) -> Client:
        """Open a WebSocket to ``ws_url`` and start pumping messages."""
        options = options or Options()
        client = cls(WebSocketTransport.from_options(ws_url, options), options)
        await client.start()
        return client

    @property
    def ws_url(self) -> str:
        return self.transport.endpoint

    @property
    def closed(self) -> bool:
        return self._closed or self.transport.closed

    async def start(self) -> None:
        await self.transport.connect()
        self.pump.start()

    async def command(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        session_id: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a command and return its result.

        Args:
            method: Domain-qualified method, e.g. "Page.navigate"
            params: Command parameters
            session_id: Attached session to target instead of the root connection
            timeout: Seconds to wait (defaults to options.timeout)
        """
        return await self.commands.issue(method, params, session_id=session_id, timeout=timeout)

    async def command_nowait(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        session_id: str | None = None,
    ) -> int:
        """Send a command without waiting for (or surfacing) its response."""
        return await self.commands.issue_nowait(method, params, session_id=session_id)

    def on(self, event: str, handler: EventHandler) -> EventHandler:
        return self.subscriber.subscribe(event, handler)

    def off(self, event: str, handler: EventHandler | None = None) -> None:
        self.subscriber.unsubscribe(event, handler)

    def expect_event(
        self,
        event: str,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
    ) -> asyncio.Future[dict[str, Any]]:
        """Return a future for the next ``event`` matching ``predicate``.

        The handler is registered before this returns, so an event triggered
        by a command sent afterwards cannot be missed. It unregisters itself
        once the future is done (resolved or cancelled).
        """
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()

        def handler(params: dict[str, Any]) -> None:
            if future.done():
                return
            if predicate is None or predicate(params):
                future.set_result(params)

        self.on(event, handler)
        future.add_done_callback(lambda _: self.off(event, handler))
        return future

    async def wait_for_event(
        self,
        event: str,
        *,
        timeout: float | None = None,
        predicate: Callable[[dict[str, Any]], bool] | None = None,
    ) -> dict[str, Any]:
        """Wait for the next ``event`` and return its params.

        Raises:
            EventTimeoutError: If it does not arrive within the timeout
        """
        bound = self.options.timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self.expect_event(event, predicate), timeout=bound)
        except TimeoutError:
            raise EventTimeoutError(event, bound) from None

    async def close(self) -> None:
        """Close the connection and fail anything still waiting on it."""
        if self._closed:
            return
        self._closed = True

        await self.transport.close()
        await self.pump.stop()
        self.commands.fail_all("Client closed")
        self.subscriber.clear()
        logger.debug(f"Client for {self.ws_url} closed")

    async def __aenter__(self) -> Client:
        if not self.transport.is_open:
            await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
