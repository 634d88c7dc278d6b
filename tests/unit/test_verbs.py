"""Unit tests for the verb-specific helpers."""

from __future__ import annotations

import pytest

from channelmux import Channel, Response, ResponseError, VerbClient

EVENT = "jira"


@pytest.fixture
def echo(memory_transport):
    """Answer every ticket action with the method it was called with."""
    actions = ["ticket.fetch", "ticket.create", "ticket.replace", "ticket.edit", "ticket.drop"]
    for action in actions:
        memory_transport.set_responder(
            action,
            lambda envelope: Response.reply(envelope, {"method": envelope["method"]}),
        )
    return memory_transport


class TestVerbClient:
    """Each helper fixes its method and delegates to request()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("helper", "action", "method"),
        [
            ("get", "ticket.fetch", "GET"),
            ("post", "ticket.create", "POST"),
            ("put", "ticket.replace", "PUT"),
            ("patch", "ticket.edit", "PATCH"),
            ("delete", "ticket.drop", "DELETE"),
        ],
    )
    async def test_helper_method(self, channel: Channel, echo, helper, action, method) -> None:
        """The envelope carries the helper's verb."""
        client = VerbClient(channel)

        response = await getattr(client, helper)(EVENT, action, data={"id": "T-1"})

        assert response.data == {"method": method}
        assert echo.last_sent()["method"] == method
        assert echo.last_sent()["data"] == {"id": "T-1"}

    @pytest.mark.asyncio
    async def test_query_forwarded(self, channel: Channel, echo) -> None:
        """Query parameters are sent unchanged."""
        await VerbClient(channel).get(EVENT, "ticket.fetch", query={"fields": "title"})

        assert echo.last_sent()["query"] == {"fields": "title"}

    @pytest.mark.asyncio
    async def test_errors_propagate(self, channel: Channel, memory_transport) -> None:
        """Failures surface as ResponseError like request()."""
        memory_transport.set_responder(
            "ticket.drop", lambda envelope: Response.reply(envelope, {}, status=409)
        )

        with pytest.raises(ResponseError) as exc_info:
            await VerbClient(channel).delete(EVENT, "ticket.drop")

        assert exc_info.value.status == 409
