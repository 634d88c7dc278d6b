"""Transport abstraction for the channel layer.

A transport moves JSON-ready envelopes over one full-duplex connection,
multiplexed by channel-event-name. The channel only needs:
- send(event, envelope): fire an envelope at the peer
- on/off/has_listener: one inbound handler per event name

Implementations handle wire format and connection management. Reconnection,
retry and backpressure are deliberately left to the transport owner.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

InboundHandler = Callable[[Any], None]


class TransportState(str, Enum):
    """Connection state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


@runtime_checkable
class ChannelTransport(Protocol):
    """Protocol for channel transports.

    `on` registers exactly one handler per event name; registering again
    overwrites the previous handler, which is why the channel checks
    `has_listener` before installing its dispatcher.
    """

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        ...

    @property
    def is_connected(self) -> bool:
        """Check if transport is connected."""
        ...

    async def connect(self) -> None:
        """Establish the connection.

        Raises:
            ConnectionError: If connection fails
        """
        ...

    async def disconnect(self) -> None:
        """Close the connection gracefully."""
        ...

    async def send(self, event: str, envelope: dict[str, Any]) -> None:
        """Send an envelope on an event name.

        Raises:
            ConnectionError: If not connected
        """
        ...

    def on(self, event: str, handler: InboundHandler) -> None:
        """Install the inbound handler for an event name."""
        ...

    def off(self, event: str) -> None:
        """Remove the inbound handler for an event name."""
        ...

    def has_listener(self, event: str) -> bool:
        """Check whether an inbound handler is installed for an event name."""
        ...


class BaseTransport(ABC):
    """Base class for transports with common functionality.

    Provides:
    - State management
    - Inbound handler table and routing
    - Connect/disconnect serialization
    """

    def __init__(self) -> None:
        self._state = TransportState.DISCONNECTED
        self._handlers: dict[str, InboundHandler] = {}
        self._lock = asyncio.Lock()

    @property
    def state(self) -> TransportState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Check if transport is connected."""
        return self._state == TransportState.CONNECTED

    async def connect(self) -> None:
        """Establish connection."""
        async with self._lock:
            if self._state == TransportState.CONNECTED:
                return

            self._state = TransportState.CONNECTING
            try:
                await self._do_connect()
                self._state = TransportState.CONNECTED
                logger.info(f"{self.__class__.__name__} connected")
            except Exception as e:
                self._state = TransportState.DISCONNECTED
                raise ConnectionError(f"Failed to connect: {e}") from e

    async def disconnect(self) -> None:
        """Close the connection."""
        async with self._lock:
            if self._state in (TransportState.DISCONNECTED, TransportState.CLOSED):
                return

            self._state = TransportState.CLOSED
            await self._do_disconnect()
            self._state = TransportState.DISCONNECTED
            logger.info(f"{self.__class__.__name__} disconnected")

    async def send(self, event: str, envelope: dict[str, Any]) -> None:
        """Send an envelope on an event name."""
        if not self.is_connected:
            raise ConnectionError("Transport not connected")
        await self._do_send(event, envelope)

    def on(self, event: str, handler: InboundHandler) -> None:
        self._handlers[event] = handler

    def off(self, event: str) -> None:
        self._handlers.pop(event, None)

    def has_listener(self, event: str) -> bool:
        return event in self._handlers

    def _route(self, event: str, payload: Any) -> None:
        """Hand an inbound payload to the handler for its event name."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"No handler for event {event!r}, dropping message")
            return
        handler(payload)

    # Abstract methods for subclasses
    @abstractmethod
    async def _do_connect(self) -> None:
        """Implementation-specific connection logic."""
        ...

    @abstractmethod
    async def _do_disconnect(self) -> None:
        """Implementation-specific disconnection logic."""
        ...

    @abstractmethod
    async def _do_send(self, event: str, envelope: dict[str, Any]) -> None:
        """Implementation-specific send logic."""
        ...

    async def __aenter__(self) -> BaseTransport:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.disconnect()
