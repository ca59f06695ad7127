"""WebSocket transport to the engine's CDP endpoint.

Wire format:
- One JSON object per text frame, both directions
- No subprotocol, no compression (the engine speaks plain RFC 6455)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from ..errors import ConnectionTimeoutError, DeadBrowserError, TransportClosedError
from ..options import Options
from .base import BaseTransport, TransportState

logger = logging.getLogger(__name__)


class WebSocketTransport(BaseTransport):
    """Transport over a single WebSocket connection.

    connect() retries refused connections a fixed number of times with a fixed
    delay, which absorbs the short window where a freshly spawned engine has
    announced its address but is not accepting yet. The whole attempt,
    handshake included, is bounded by ``handshake_timeout``.
    """

    def __init__(
        self,
        endpoint: str,
        handshake_timeout: float = 5.0,
        connect_retries: int = 10,
        connect_retry_delay: float = 0.1,
        close_timeout: float = 2.0,
    ):
        super().__init__(endpoint)
        self.handshake_timeout = handshake_timeout
        self.connect_retries = max(1, connect_retries)
        self.connect_retry_delay = connect_retry_delay
        self.close_timeout = close_timeout
        self._ws: Any = None  # websockets ClientConnection

    @classmethod
    def from_options(cls, endpoint: str, options: Options) -> WebSocketTransport:
        return cls(
            endpoint,
            handshake_timeout=options.timeout,
            connect_retries=options.connect_retries,
            connect_retry_delay=options.connect_retry_delay,
        )

    async def _do_connect(self) -> None:
        try:
            self._ws = await asyncio.wait_for(
                self._open_with_retry(),
                timeout=self.handshake_timeout,
            )
        except TimeoutError as e:
            raise ConnectionTimeoutError(
                f"WebSocket connection to {self.endpoint} timed out after "
                f"{self.handshake_timeout}s"
            ) from e

    async def _open_with_retry(self) -> Any:
        for attempt in range(1, self.connect_retries + 1):
            try:
                return await websockets.connect(
                    self.endpoint,
                    max_size=None,
                    ping_interval=None,
                    close_timeout=self.close_timeout,
                )
            except ConnectionRefusedError as e:
                if attempt == self.connect_retries:
                    raise DeadBrowserError(
                        f"Connection to {self.endpoint} refused after {attempt} attempts"
                    ) from e
                logger.debug(f"Connection refused, retrying ({attempt}/{self.connect_retries})")
                await asyncio.sleep(self.connect_retry_delay)
            except (InvalidURI, InvalidHandshake, OSError) as e:
                raise DeadBrowserError(f"Failed to connect to {self.endpoint}: {e}") from e
        raise DeadBrowserError(f"Failed to connect to {self.endpoint}")

    async def _do_close(self) -> None:
        if self._ws is not None:
            await self._ws.close()
            self._ws = None

    async def _do_send(self, message: str) -> None:
        if self._ws is None:
            raise TransportClosedError("WebSocket is not open")
        try:
            await self._ws.send(message)
        except ConnectionClosed as e:
            self._set_state(TransportState.CLOSED)
            raise TransportClosedError(f"WebSocket closed: {e}") from e

    async def _receive(self) -> AsyncIterator[str | bytes]:
        if self._ws is None:
            raise TransportClosedError("WebSocket is not open")

        try:
            async for data in self._ws:
                yield data
        except ConnectionClosed as e:
            logger.warning(f"WebSocket closed abnormally: {e}")
            self._set_state(TransportState.ERROR)
