"""Channel configuration.

Settings can be given explicitly or read from the environment:
- CHANNELMUX_URL: WebSocket URL of the peer
- CHANNELMUX_EVENT: default channel-event-name
- CHANNELMUX_REQUEST_TIMEOUT: seconds to wait for a response (unset = forever)
- CHANNELMUX_SHARED_SUBSCRIPTION_CANCEL: "1" to make a subscription cancel
  drop every subscriber on its action
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_URL = "ws://localhost:4096/ws"
DEFAULT_EVENT = "message"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ChannelConfig:
    """Configuration for a channel and its WebSocket transport."""

    # Transport
    url: str = DEFAULT_URL
    open_timeout: float = 10.0
    ping_interval: float | None = 30.0
    ping_timeout: float | None = 10.0

    # Protocol
    event: str = DEFAULT_EVENT
    request_timeout: float | None = None
    shared_subscription_cancel: bool = False

    @classmethod
    def from_env(cls) -> ChannelConfig:
        """Build a config from CHANNELMUX_* environment variables."""
        config = cls()
        if url := os.getenv("CHANNELMUX_URL"):
            config.url = url
        if event := os.getenv("CHANNELMUX_EVENT"):
            config.event = event
        if timeout := os.getenv("CHANNELMUX_REQUEST_TIMEOUT"):
            try:
                config.request_timeout = float(timeout)
            except ValueError as e:
                raise ValueError(
                    f"CHANNELMUX_REQUEST_TIMEOUT must be a number: {timeout!r}"
                ) from e
        shared = os.getenv("CHANNELMUX_SHARED_SUBSCRIPTION_CANCEL", "")
        config.shared_subscription_cancel = shared.strip().lower() in _TRUTHY
        return config
