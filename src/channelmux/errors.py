"""Exceptions raised by the channel layer.

Transport failures are not wrapped here: transports raise the builtin
ConnectionError and it propagates unchanged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .protocol.response import Response


class ChannelError(Exception):
    """Base class for channel errors."""


class ResponseError(ChannelError):
    """The peer answered a request with a non-2xx status."""

    def __init__(self, response: Response):
        self.response = response
        super().__init__(
            f"{response.method.value} {response.action} failed with status {response.status}"
        )

    @property
    def status(self) -> int | None:
        return self.response.status


class InvalidListenerError(ChannelError, TypeError):
    """Listener shape does not match the verb kind."""


class InvalidEnvelopeError(ChannelError, ValueError):
    """Inbound payload is not a valid response envelope."""


class ChannelClosedError(ChannelError):
    """The channel was closed before the exchange completed."""
