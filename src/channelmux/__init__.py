"""channelmux - request/response and pub/sub over one duplex channel.

Many concurrent request/response exchanges and long-lived subscriptions
share a single persistent connection. Outbound envelopes carry a requestId;
one dispatcher per channel-event-name routes every inbound message back to
the caller or subscribers waiting for it.

Operations:
- Channel.emit: register a listener and send an envelope
- Channel.request: one response per request (GET/POST/PUT/PATCH/DELETE)
- Channel.subscribe: every push on an action until cancelled
- Channel.listen: fetch once, then subscribe filtered to the fetched keys
"""

from .channel import (
    Channel,
    RequestHandle,
    SubscriptionHandle,
    create_channel,
    create_memory_channel,
    create_websocket_channel,
    default_selectors,
)
from .config import ChannelConfig
from .dispatcher import Dispatcher
from .errors import (
    ChannelClosedError,
    ChannelError,
    InvalidEnvelopeError,
    InvalidListenerError,
    ResponseError,
)
from .protocol import REQUEST_VERBS, Envelope, Response, Verb, new_request_id
from .registry import Registry, ResultHandler
from .transport import (
    BaseTransport,
    ChannelTransport,
    MemoryTransport,
    TransportState,
    WebSocketTransport,
)
from .verbs import VerbClient

__all__ = [
    # Channel
    "Channel",
    "RequestHandle",
    "SubscriptionHandle",
    "VerbClient",
    "default_selectors",
    # Factory functions
    "create_channel",
    "create_memory_channel",
    "create_websocket_channel",
    # Configuration
    "ChannelConfig",
    # Protocol
    "Envelope",
    "Response",
    "Verb",
    "REQUEST_VERBS",
    "new_request_id",
    # Internals
    "Dispatcher",
    "Registry",
    "ResultHandler",
    # Transports
    "ChannelTransport",
    "BaseTransport",
    "MemoryTransport",
    "WebSocketTransport",
    "TransportState",
    # Errors
    "ChannelError",
    "ChannelClosedError",
    "InvalidEnvelopeError",
    "InvalidListenerError",
    "ResponseError",
]
