"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from channelmux import Channel, ChannelConfig, MemoryTransport

EVENT = "jira"


@pytest.fixture
def memory_transport() -> MemoryTransport:
    """Loopback transport, already connected."""
    return MemoryTransport()


@pytest.fixture
def channel(memory_transport: MemoryTransport) -> Channel:
    """Channel over the loopback transport with the test event installed."""
    return Channel(memory_transport, ChannelConfig(event=EVENT), events=[EVENT])


@pytest.fixture
def shared_cancel_channel(memory_transport: MemoryTransport) -> Channel:
    """Channel whose subscription cancel drops the whole action bucket."""
    return Channel(
        memory_transport,
        ChannelConfig(event=EVENT, shared_subscription_cancel=True),
        events=[EVENT],
    )
