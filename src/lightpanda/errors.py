"""Error hierarchy for the Lightpanda driver.

Every error raised by the library derives from LightpandaError. Timeouts also
derive from the builtin TimeoutError and connection failures from the builtin
ConnectionError, so callers can catch them either way.

Protocol errors (responses carrying an ``error`` object) are classified by
classify_protocol_error():
- Numeric codes are authoritative when they identify a condition
- Otherwise the message text is matched against an ordered pattern table
- Anything unmatched becomes a plain ProtocolError
"""

from __future__ import annotations

import re
from typing import Any


class LightpandaError(Exception):
    """Base class for all driver errors."""


class LightpandaTimeoutError(LightpandaError, TimeoutError):
    """Base class for all bounded waits that ran out of time."""


# =============================================================================
# Process supervision
# =============================================================================


class ProcessError(LightpandaError):
    """The supervised engine process could not be started or managed."""


class ProcessNotFoundError(ProcessError):
    """No usable engine executable is available."""


class ProcessStartTimeoutError(ProcessError, LightpandaTimeoutError):
    """The engine did not report it was listening within the startup timeout.

    ``output`` holds everything the process wrote to stdout/stderr before it
    was stopped.
    """

    def __init__(self, message: str, output: str = ""):
        super().__init__(message)
        self.output = output


# =============================================================================
# Connection
# =============================================================================


class DeadBrowserError(LightpandaError, ConnectionError):
    """The connection to the engine is unusable."""


class ConnectionTimeoutError(DeadBrowserError, LightpandaTimeoutError):
    """The WebSocket handshake did not complete in time."""


class TransportClosedError(DeadBrowserError):
    """A write was attempted while the transport is not open."""


class ConnectionClosedError(DeadBrowserError):
    """The connection closed while a command was waiting for its response."""


# =============================================================================
# Commands and events
# =============================================================================


class CommandTimeoutError(LightpandaTimeoutError):
    """No response arrived for a command within its timeout."""

    def __init__(self, method: str, timeout: float):
        super().__init__(f"Command {method} timed out after {timeout}s")
        self.method = method
        self.timeout = timeout


class EventTimeoutError(LightpandaTimeoutError):
    """An awaited event was not received within its timeout."""

    def __init__(self, event: str, timeout: float):
        super().__init__(f"Event {event} not received within {timeout}s")
        self.event = event
        self.timeout = timeout


class ProtocolError(LightpandaError):
    """The engine answered a command with an error object."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        data: Any = None,
        method: str | None = None,
        response: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data
        self.method = method
        self.response = response or {}

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"{self.message} (code {self.code})"


class NodeNotFoundError(ProtocolError):
    """The referenced DOM node no longer exists."""


class NoExecutionContextError(ProtocolError):
    """The JavaScript execution context is gone (navigation, frame detach)."""


class MethodNotFoundError(ProtocolError):
    """The engine does not implement the requested method."""


class InvalidParamsError(ProtocolError):
    """The engine rejected the command parameters."""


# JSON-RPC style codes used by CDP servers
ERROR_CODES: dict[int, type[ProtocolError]] = {
    -32601: MethodNotFoundError,
    -32602: InvalidParamsError,
}

# Heuristic fallback, first match wins
ERROR_PATTERNS: list[tuple[re.Pattern[str], type[ProtocolError]]] = [
    (re.compile(r"No node with given id found", re.IGNORECASE), NodeNotFoundError),
    (re.compile(r"Could not find node with given id", re.IGNORECASE), NodeNotFoundError),
    (re.compile(r"Cannot find context with specified id", re.IGNORECASE), NoExecutionContextError),
    (re.compile(r"Execution context was destroyed", re.IGNORECASE), NoExecutionContextError),
]


def classify_protocol_error(
    error: dict[str, Any],
    method: str | None = None,
) -> ProtocolError:
    """Build the most specific ProtocolError for a response ``error`` object.

    Args:
        error: The ``error`` member of a response (``message``, ``code``, ``data``)
        method: The command method that produced it, for context

    Returns:
        An exception instance ready to be raised
    """
    message = str(error.get("message") or "Unknown protocol error")
    code = error.get("code")
    if not isinstance(code, int):
        code = None

    error_cls: type[ProtocolError] = ProtocolError
    if code is not None and code in ERROR_CODES:
        error_cls = ERROR_CODES[code]
    else:
        for pattern, candidate in ERROR_PATTERNS:
            if pattern.search(message):
                error_cls = candidate
                break

    return error_cls(
        message,
        code=code,
        data=error.get("data"),
        method=method,
        response=error,
    )
