"""Lightpanda driver core.

Drives the Lightpanda browser engine over the Chrome DevTools Protocol:
- process.py    spawn the engine and detect its listen address
- transport/    one WebSocket carrying JSON frames
- client/       command/response correlation, event dispatch, message pump
- browser.py    supervised or attached engine with a default page session
"""

from .browser import Browser
from .client import Client, EventSubscriber
from .errors import (
    CommandTimeoutError,
    ConnectionClosedError,
    ConnectionTimeoutError,
    DeadBrowserError,
    EventTimeoutError,
    InvalidParamsError,
    LightpandaError,
    LightpandaTimeoutError,
    MethodNotFoundError,
    NodeNotFoundError,
    NoExecutionContextError,
    ProcessError,
    ProcessNotFoundError,
    ProcessStartTimeoutError,
    ProtocolError,
    TransportClosedError,
)
from .options import Options
from .process import ProcessState, ProcessSupervisor, find_binary
from .transport import MockTransport, TransportState, WebSocketTransport

__all__ = [
    "Browser",
    "Client",
    "EventSubscriber",
    "Options",
    "ProcessState",
    "ProcessSupervisor",
    "find_binary",
    "MockTransport",
    "TransportState",
    "WebSocketTransport",
    # Errors
    "LightpandaError",
    "LightpandaTimeoutError",
    "ProcessError",
    "ProcessNotFoundError",
    "ProcessStartTimeoutError",
    "DeadBrowserError",
    "ConnectionTimeoutError",
    "TransportClosedError",
    "ConnectionClosedError",
    "CommandTimeoutError",
    "EventTimeoutError",
    "ProtocolError",
    "NodeNotFoundError",
    "NoExecutionContextError",
    "MethodNotFoundError",
    "InvalidParamsError",
]

__version__ = "0.1.0"
