"""Inbound response definitions for the protocol layer.

Responses are what the peer sends back. They can be:
- Correlated: the single answer to a request-style envelope (same requestId)
- Pushes: SUBSCRIPTION messages routed by action, any number per action

`status` follows the HTTP convention: 2xx is success, anything else (including
a missing status) is failure. Pushes are delivered whatever their status.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import InvalidEnvelopeError
from .envelope import Verb


class Response(BaseModel):
    """A message from peer to client.

    Example (correlated response):
        {
            "method": "GET",
            "action": "ticket.fetch",
            "requestId": "6f1c...",
            "status": 200,
            "data": {"id": "T-1", "title": "Fix bug"}
        }

    Example (push):
        {
            "method": "SUBSCRIPTION",
            "action": "ticket.updated",
            "status": 200,
            "data": {"id": "T-1", "title": "Fix the bug"}
        }
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    method: Verb
    action: str
    request_id: str = Field(default="", alias="requestId")
    status: int | None = None
    data: Any = None

    def is_success(self) -> bool:
        """Check if status is in [200, 300); a missing status is a failure."""
        return self.status is not None and 200 <= self.status < 300

    def is_push(self) -> bool:
        """Check if this is a subscription push."""
        return self.method.is_subscription

    @classmethod
    def parse(cls, payload: Any) -> Response:
        """Validate a raw inbound payload.

        Raises:
            InvalidEnvelopeError: If the payload is not a valid response
        """
        if isinstance(payload, Response):
            return payload
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InvalidEnvelopeError(f"Invalid response envelope: {e}") from e

    @classmethod
    def reply(
        cls,
        envelope: dict[str, Any],
        data: Any = None,
        status: int = 200,
    ) -> Response:
        """Build the response a peer would send for an outbound envelope."""
        return cls(
            method=Verb(envelope["method"]),
            action=envelope["action"],
            request_id=envelope.get("requestId", ""),
            status=status,
            data=data,
        )

    @classmethod
    def push(cls, action: str, data: Any = None, status: int = 200) -> Response:
        """Build a subscription push for an action."""
        return cls(method=Verb.SUBSCRIPTION, action=action, status=status, data=data)

    def to_wire(self) -> dict[str, Any]:
        """Dump to the camelCase dict carried by the transport."""
        return self.model_dump(mode="json", by_alias=True)
