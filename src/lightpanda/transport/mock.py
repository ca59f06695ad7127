"""In-memory transport for tests.

Records every command written to it and answers from canned responses. No
actual I/O - everything is in-memory.

Usage:
    transport = MockTransport()
    transport.set_response("Target.createTarget", {"targetId": "FID-1"})

    client = Client(transport)
    await client.start()
    result = await client.command("Target.createTarget", {"url": "about:blank"})

    assert transport.sent[0]["method"] == "Target.createTarget"
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any

from .base import BaseTransport

_STOP = object()


class MockTransport(BaseTransport):
    """Mock transport with canned responses and injectable frames.

    Methods without a canned response are answered with ``{}`` unless
    ``auto_respond`` is False, in which case tests answer explicitly with
    respond() or inject().
    """

    def __init__(self, endpoint: str = "ws://mock/", auto_respond: bool = True):
        super().__init__(endpoint)
        self.auto_respond = auto_respond
        self._responses: dict[str, dict[str, Any]] = {}
        self._sent: list[dict[str, Any]] = []
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    @property
    def sent(self) -> list[dict[str, Any]]:
        """Decoded copies of every message written so far."""
        return list(self._sent)

    def set_response(self, method: str, result: dict[str, Any]) -> None:
        """Answer ``method`` with a successful result."""
        self._responses[method] = {"result": result}

    def set_error(self, method: str, message: str, code: int | None = None) -> None:
        """Answer ``method`` with an error object."""
        error: dict[str, Any] = {"message": message}
        if code is not None:
            error["code"] = code
        self._responses[method] = {"error": error}

    def inject(self, frame: dict[str, Any] | str) -> None:
        """Deliver a frame as if it came from the engine.

        Strings are delivered verbatim, which allows malformed frames.
        """
        self._incoming.put_nowait(frame if isinstance(frame, str) else json.dumps(frame))

    def respond(self, command_id: int, result: dict[str, Any] | None = None) -> None:
        self.inject({"id": command_id, "result": result or {}})

    def emit(self, method: str, params: dict[str, Any] | None = None, **extra: Any) -> None:
        self.inject({"method": method, "params": params or {}, **extra})

    def disconnect(self) -> None:
        """Simulate the engine dropping the connection."""
        self._incoming.put_nowait(_STOP)

    async def _do_connect(self) -> None:
        pass

    async def _do_close(self) -> None:
        pass

    async def _do_send(self, message: str) -> None:
        command = json.loads(message)
        self._sent.append(command)

        canned = self._responses.get(command["method"])
        if canned is not None:
            self.inject({"id": command["id"], **canned})
        elif self.auto_respond:
            self.respond(command["id"])

    async def _receive(self) -> AsyncIterator[str | bytes]:
        while True:
            data = await self._incoming.get()
            if data is _STOP:
                return
            yield data
