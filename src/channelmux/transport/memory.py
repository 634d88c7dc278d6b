"""In-memory loopback transport.

Allows injecting inbound messages and canned replies, and records every
envelope sent. No actual I/O - everything is in-memory.

Usage:
    transport = MemoryTransport()
    transport.set_responder(
        "ticket.fetch",
        lambda envelope: Response.reply(envelope, {"id": "T-1"}),
    )

    channel = Channel(transport)
    response = await channel.request("jira", Verb.GET, "ticket.fetch")

    assert transport.sent[0][1]["action"] == "ticket.fetch"
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from ..protocol import Response
from .base import BaseTransport, TransportState

Reply = Response | dict[str, Any]
Responder = Callable[[dict[str, Any]], Reply | list[Reply] | None]


class MemoryTransport(BaseTransport):
    """Loopback transport for tests and embedding.

    Starts connected. Replies produced by responders are delivered on the
    next loop iteration, after `send` has returned, like a network peer.
    """

    def __init__(self) -> None:
        super().__init__()
        self._state = TransportState.CONNECTED
        self._sent: list[tuple[str, dict[str, Any]]] = []
        self._responders: dict[str, Responder] = {}

    @property
    def sent(self) -> list[tuple[str, dict[str, Any]]]:
        """All (event, envelope) pairs sent through this transport."""
        return self._sent.copy()

    def last_sent(self) -> dict[str, Any]:
        """The most recently sent envelope."""
        if not self._sent:
            raise LookupError("Nothing has been sent")
        return self._sent[-1][1]

    def set_responder(self, action: str, responder: Responder) -> None:
        """Set a canned reply factory for envelopes sent to an action.

        Args:
            action: Action name to answer
            responder: Called with the sent envelope, returns a reply, a list
                of replies, or None for no reply
        """
        self._responders[action] = responder

    def deliver(self, event: str, payload: Reply) -> None:
        """Inject an inbound message, routing it synchronously."""
        if isinstance(payload, Response):
            payload = payload.to_wire()
        self._route(event, payload)

    def clear(self) -> None:
        """Clear recorded envelopes and responders."""
        self._sent.clear()
        self._responders.clear()

    async def _do_connect(self) -> None:
        """No-op for loopback."""
        pass

    async def _do_disconnect(self) -> None:
        """No-op for loopback."""
        pass

    async def _do_send(self, event: str, envelope: dict[str, Any]) -> None:
        """Record the envelope and schedule any canned reply."""
        self._sent.append((event, envelope))

        responder = self._responders.get(envelope["action"])
        if responder is None:
            return

        replies = responder(envelope)
        if replies is None:
            return
        if not isinstance(replies, list):
            replies = [replies]

        loop = asyncio.get_running_loop()
        for reply in replies:
            loop.call_soon(self.deliver, event, reply)
