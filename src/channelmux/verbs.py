"""Verb-specific request helpers.

Each helper fixes the method and delegates to Channel.request.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .channel import Channel
from .protocol import Response, Verb


@dataclass
class VerbClient:
    """REST-style helpers over a channel."""

    channel: Channel

    async def get(
        self,
        event: str,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        return await self.channel.request(event, Verb.GET, action, data=data, query=query)

    async def post(
        self,
        event: str,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        return await self.channel.request(event, Verb.POST, action, data=data, query=query)

    async def put(
        self,
        event: str,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        return await self.channel.request(event, Verb.PUT, action, data=data, query=query)

    async def patch(
        self,
        event: str,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        return await self.channel.request(event, Verb.PATCH, action, data=data, query=query)

    async def delete(
        self,
        event: str,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> Response:
        return await self.channel.request(event, Verb.DELETE, action, data=data, query=query)
