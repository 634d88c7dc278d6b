"""WebSocket transport implementation.

Full-duplex transport over a single WebSocket connection. Every frame is a
JSON text message naming the channel-event-name it belongs to:

    {"event": "jira", "data": {"requestId": "...", "method": "GET", ...}}

Inbound frames are routed to the handler installed for their event name.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed

from ..config import ChannelConfig
from .base import BaseTransport, TransportState

logger = logging.getLogger(__name__)


def encode_frame(event: str, envelope: dict[str, Any]) -> str:
    """Serialize an envelope into a text frame."""
    return json.dumps({"event": event, "data": envelope})


def decode_frame(raw: str | bytes) -> tuple[str, Any]:
    """Deserialize a text frame into (event, payload).

    Raises:
        ValueError: If the frame is not a JSON object with an event name
    """
    parsed = json.loads(raw)
    if not isinstance(parsed, dict) or not isinstance(parsed.get("event"), str):
        raise ValueError(f"Frame has no event name: {str(raw)[:50]}")
    return parsed["event"], parsed.get("data")


class WebSocketTransport(BaseTransport):
    """Client-side WebSocket transport.

    Connects to `config.url` and keeps a background task reading frames.
    Reconnection is not handled here; when the socket drops the transport
    goes back to DISCONNECTED and sends raise ConnectionError.
    """

    def __init__(self, config: ChannelConfig | None = None):
        super().__init__()
        self.config = config or ChannelConfig()
        self._ws: Any = None  # websockets ClientConnection
        self._reader_task: asyncio.Task[None] | None = None

    async def _do_connect(self) -> None:
        """Open the WebSocket and start the reader."""
        self._ws = await websockets.connect(
            self.config.url,
            open_timeout=self.config.open_timeout,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
        )
        self._reader_task = asyncio.create_task(self._read_loop())
        logger.info(f"WebSocket connected to {self.config.url}")

    async def _do_disconnect(self) -> None:
        """Stop the reader and close the WebSocket."""
        if self._reader_task:
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
            self._reader_task = None

        if self._ws:
            await self._ws.close()
            self._ws = None

    async def _do_send(self, event: str, envelope: dict[str, Any]) -> None:
        """Send an envelope as a text frame."""
        if not self._ws:
            raise ConnectionError("WebSocket not connected")
        try:
            await self._ws.send(encode_frame(event, envelope))
        except ConnectionClosed as e:
            self._state = TransportState.DISCONNECTED
            raise ConnectionError(f"WebSocket closed: {e}") from e

    async def _read_loop(self) -> None:
        """Background task reading frames and routing them."""
        try:
            async for raw in self._ws:
                try:
                    event, payload = decode_frame(raw)
                except ValueError as e:
                    # JSONDecodeError is a ValueError
                    logger.warning(f"Invalid WebSocket frame: {e}")
                    continue

                try:
                    self._route(event, payload)
                except Exception:
                    logger.exception(f"Error routing frame for event {event!r}")
        except asyncio.CancelledError:
            pass
        except ConnectionClosed as e:
            logger.info(f"WebSocket closed by peer: {e}")
        finally:
            if self._state == TransportState.CONNECTED:
                self._state = TransportState.DISCONNECTED
