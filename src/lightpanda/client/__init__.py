"""CDP client: command correlation, event dispatch and the message pump."""

from .client import Client
from .commands import CommandRegistry
from .pump import MessagePump
from .subscriber import EventHandler, EventSubscriber

__all__ = [
    "Client",
    "CommandRegistry",
    "MessagePump",
    "EventHandler",
    "EventSubscriber",
]
