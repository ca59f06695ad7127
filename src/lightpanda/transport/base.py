"""Transport abstraction for the driver.

A transport owns exactly one duplex connection to the engine. It moves text
frames in both directions and nothing more: correlation and dispatch live in
the client.

Architecture:
- BaseTransport implements the state machine, the background reader task and
  the frame queue
- Subclasses implement the wire (_do_connect/_do_close/_do_send/_receive)
- The reader decodes each frame as JSON and enqueues it; malformed frames are
  logged and dropped, never fatal
- When the stream ends the reader enqueues a single ``None`` end marker
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from ..errors import TransportClosedError

logger = logging.getLogger(__name__)


class TransportState(str, Enum):
    """Connection state machine."""

    CLOSED = "closed"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    ERROR = "error"  # Terminal, treated as closed for writes


class BaseTransport(ABC):
    """Base class for transports with common functionality.

    Provides:
    - State management
    - Background reader task feeding an ordered, unbounded frame queue
    - Idempotent close
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint
        self._state = TransportState.CLOSED
        self.messages: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._reader_task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == TransportState.OPEN

    @property
    def closed(self) -> bool:
        return self._state in (TransportState.CLOSED, TransportState.ERROR)

    def _set_state(self, state: TransportState) -> None:
        if state != self._state:
            logger.debug(f"{self.__class__.__name__} {self._state.value} -> {state.value}")
            self._state = state

    async def connect(self) -> None:
        """Open the connection and start the background reader."""
        async with self._lock:
            if self._state == TransportState.OPEN:
                return

            self._set_state(TransportState.CONNECTING)
            try:
                await self._do_connect()
            except BaseException:
                self._set_state(TransportState.CLOSED)
                raise

            self._set_state(TransportState.OPEN)
            self._reader_task = asyncio.create_task(self._read_loop())
            logger.info(f"{self.__class__.__name__} connected to {self.endpoint}")

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        async with self._lock:
            if self._state == TransportState.CLOSED and self._reader_task is None:
                return

            if self._state != TransportState.ERROR:
                self._set_state(TransportState.CLOSING)

            if self._reader_task:
                self._reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self._reader_task
                self._reader_task = None

            await self._do_close()
            self._set_state(TransportState.CLOSED)
            logger.info(f"{self.__class__.__name__} closed")

    async def send(self, message: str) -> None:
        """Write one text frame.

        Raises:
            TransportClosedError: If the transport is not open
        """
        if self._state != TransportState.OPEN:
            raise TransportClosedError(f"Transport is not open (state: {self._state.value})")
        await self._do_send(message)

    async def _read_loop(self) -> None:
        """Background task decoding frames onto the queue in arrival order."""
        try:
            async for data in self._receive():
                frame = self._decode(data)
                if frame is not None:
                    self.messages.put_nowait(frame)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Read loop error: {e}")
            self._set_state(TransportState.ERROR)
        finally:
            if self._state == TransportState.OPEN:
                self._set_state(TransportState.CLOSED)
            self.messages.put_nowait(None)

    def _decode(self, data: str | bytes) -> dict[str, Any] | None:
        try:
            frame = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to parse message: {e}")
            return None
        if not isinstance(frame, dict):
            logger.warning(f"Ignoring non-object message: {str(data)[:50]}")
            return None
        return frame

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> None:
        """Implementation-specific connection logic, including the handshake."""
        ...

    @abstractmethod
    async def _do_close(self) -> None:
        """Implementation-specific disconnection logic."""
        ...

    @abstractmethod
    async def _do_send(self, message: str) -> None:
        """Implementation-specific send logic."""
        ...

    @abstractmethod
    def _receive(self) -> AsyncIterator[str | bytes]:
        """Implementation-specific receive logic. Must be an async generator."""
        ...

    async def __aenter__(self) -> BaseTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
