"""Transports carrying CDP frames between the driver and the engine."""

from .base import BaseTransport, TransportState
from .mock import MockTransport
from .websocket import WebSocketTransport

__all__ = [
    "BaseTransport",
    "TransportState",
    "MockTransport",
    "WebSocketTransport",
]
