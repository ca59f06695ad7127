"""Command/response correlation.

Every command gets the next integer id (1, 2, 3, ...) and, unless sent with
issue_nowait(), a single-resolution future keyed by that id. The pump hands
each response to resolve(), which pops the future and resolves it in one step,
so a response and a timeout can never both complete the same command.
Responses for ids that are no longer pending are discarded.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

from ..errors import CommandTimeoutError, ConnectionClosedError, classify_protocol_error
from ..protocol import Command, Response
from ..transport import BaseTransport

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Assigns command ids and tracks the commands awaiting a response."""

    def __init__(self, transport: BaseTransport, default_timeout: float = 5.0):
        self._transport = transport
        self.default_timeout = default_timeout
        self._last_id = 0
        self._pending: dict[int, asyncio.Future[Response]] = {}
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def is_pending(self, command_id: int) -> bool:
        with self._lock:
            return command_id in self._pending

    def build(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Command:
        """Create a command carrying the next id."""
        with self._lock:
            self._last_id += 1
            command_id = self._last_id
        return Command(id=command_id, method=method, params=params or {}, session_id=session_id)

    async def issue(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send a command and wait for its response.

        Returns:
            The response ``result`` ({} when the engine sent none)

        Raises:
            TransportClosedError: If the transport is not open
            CommandTimeoutError: If no response arrives within the timeout
            ConnectionClosedError: If the connection closes while waiting
            ProtocolError: If the engine answered with an error
        """
        command = self.build(method, params, session_id)
        bound = self.default_timeout if timeout is None else timeout

        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        with self._lock:
            self._pending[command.id] = future

        try:
            await self._transport.send(command.to_json())
            try:
                response = await asyncio.wait_for(future, timeout=bound)
            except TimeoutError:
                raise CommandTimeoutError(method, bound) from None
        finally:
            self._discard(command.id)

        if response.error is not None:
            raise classify_protocol_error(response.error.model_dump(exclude_none=True), method)
        return response.result or {}

    async def issue_nowait(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> int:
        """Send a command without waiting; its response will be discarded.

        Returns:
            The id the command was sent with
        """
        command = self.build(method, params, session_id)
        await self._transport.send(command.to_json())
        return command.id

    def resolve(self, response: Response) -> bool:
        """Complete the command matching ``response.id``.

        Returns:
            True if a waiting command was resolved
        """
        with self._lock:
            future = self._pending.pop(response.id, None)

        if future is None or future.done():
            logger.debug(f"Discarding response for command {response.id} (not pending)")
            return False

        future.set_result(response)
        return True

    def fail_all(self, reason: str) -> int:
        """Fail every pending command with ConnectionClosedError.

        Returns:
            Number of commands failed
        """
        with self._lock:
            pending = list(self._pending.items())
            self._pending.clear()

        failed = 0
        for command_id, future in pending:
            if not future.done():
                future.set_exception(ConnectionClosedError(f"{reason} (command {command_id})"))
                failed += 1
        if failed:
            logger.info(f"Failed {failed} pending command(s): {reason}")
        return failed

    def _discard(self, command_id: int) -> None:
        with self._lock:
            self._pending.pop(command_id, None)
