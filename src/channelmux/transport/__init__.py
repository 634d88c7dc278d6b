"""Transport abstraction layer.

Provides the duplex transports a Channel runs over:
- WebSocket - JSON text frames over one persistent connection
- Memory - in-process loopback for tests and embedding

The channel only talks to the ChannelTransport protocol, so transports can
be swapped without code changes.
"""

from .base import BaseTransport, ChannelTransport, InboundHandler, TransportState
from .memory import MemoryTransport
from .websocket import WebSocketTransport, decode_frame, encode_frame

__all__ = [
    # Base abstractions
    "ChannelTransport",
    "BaseTransport",
    "InboundHandler",
    "TransportState",
    # Implementations
    "MemoryTransport",
    "WebSocketTransport",
    # Wire helpers
    "encode_frame",
    "decode_frame",
]
