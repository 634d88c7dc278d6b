"""Wire protocol for the multiplexed channel.

Defines the envelope/response pair that travels over one channel-event-name:
- Envelopes: client -> peer, carrying a requestId, a verb and an action
- Responses: peer -> client, either correlated (same requestId) or pushes

This enables:
- Request/response patterns (GET/POST/PUT/PATCH/DELETE, one response each)
- Streaming patterns (SUBSCRIPTION, any number of pushes per action)
"""

from .envelope import REQUEST_VERBS, Envelope, Verb, new_request_id
from .response import Response

__all__ = [
    "Envelope",
    "Response",
    "Verb",
    "REQUEST_VERBS",
    "new_request_id",
]
