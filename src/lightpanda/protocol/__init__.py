"""Chrome DevTools Protocol message layer.

Defines the wire messages exchanged with the engine over one WebSocket:
- Commands: driver -> engine requests with integer ids
- Responses: engine -> driver replies echoing a command id
- Events: engine -> driver notifications without an id

Correlation is purely by id; events are routed by method name.
"""

from .commands import Command, Response, ResponseError
from .events import Event
from .frames import decode_message

__all__ = [
    "Command",
    "Response",
    "ResponseError",
    "Event",
    "decode_message",
]
