"""Outbound envelope definitions for the protocol layer.

Envelopes are requests from the client to the remote peer. Each envelope
carries a `requestId` so the peer's response can be routed back to the
caller that is waiting for it.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def new_request_id() -> str:
    """Generate a fresh correlation id."""
    return str(uuid.uuid4())


class Verb(str, Enum):
    """Operation kind of an exchange."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    SUBSCRIPTION = "SUBSCRIPTION"

    @property
    def is_subscription(self) -> bool:
        """True for the stream-style verb (zero or more pushes)."""
        return self is Verb.SUBSCRIPTION

    @property
    def is_request_style(self) -> bool:
        """True for verbs that expect exactly one response per requestId."""
        return self is not Verb.SUBSCRIPTION


REQUEST_VERBS = (Verb.GET, Verb.POST, Verb.PUT, Verb.PATCH, Verb.DELETE)


class Envelope(BaseModel):
    """An envelope from client to peer.

    Example:
        {
            "requestId": "6f1c...",
            "method": "GET",
            "data": {"id": "T-1"},
            "query": {},
            "action": "ticket.fetch"
        }

    The peer answers request-style envelopes with a Response carrying the
    same `requestId`. Subscription envelopes still carry an id, but pushes
    are routed by action only.
    """

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(default_factory=new_request_id, alias="requestId")
    method: Verb
    data: dict[str, Any] = Field(default_factory=dict)
    query: dict[str, Any] = Field(default_factory=dict)
    action: str

    @classmethod
    def create(
        cls,
        method: str | Verb,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> Envelope:
        """Factory method for creating envelopes."""
        return cls(
            request_id=request_id or new_request_id(),
            method=Verb(method),
            data=data or {},
            query=query or {},
            action=action,
        )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase dict sent over the transport."""
        return self.model_dump(mode="json", by_alias=True)
