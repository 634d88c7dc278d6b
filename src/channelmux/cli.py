"""channelmux CLI.

Talks to a WebSocket peer from the command line.

Usage:
    channelmux request GET ticket.fetch --data '{"id": "T-1"}'
    channelmux request POST ticket.create --data '{"title": "Fix bug"}'
    channelmux watch ticket.updated              # Print pushes until Ctrl+C
    channelmux watch ticket.updated --limit 5    # Stop after 5 pushes

    channelmux --url ws://host:4096/ws --event jira request GET ticket.list
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any

import click

from .channel import create_websocket_channel
from .config import ChannelConfig
from .errors import ChannelError, ResponseError
from .protocol import REQUEST_VERBS, Response

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_json_option(
    ctx: click.Context, param: click.Parameter, value: str | None
) -> dict[str, Any] | None:
    """Parse a JSON object passed as an option value."""
    if value is None:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise click.BadParameter("must be a JSON object")
    return parsed


def format_response(response: Response) -> str:
    """Render a response for display."""
    return json.dumps(response.to_wire(), indent=2)


@click.group()
@click.option("--url", help="WebSocket URL of the peer (default: $CHANNELMUX_URL)")
@click.option("--event", help="Channel event name (default: $CHANNELMUX_EVENT)")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging level for stderr output",
)
@click.pass_context
def main(ctx: click.Context, url: str | None, event: str | None, log_level: str) -> None:
    """channelmux - requests and subscriptions over one WebSocket channel."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = ChannelConfig.from_env()
    if url:
        config = replace(config, url=url)
    if event:
        config = replace(config, event=event)
    ctx.obj = config


@main.command("request")
@click.argument(
    "method",
    type=click.Choice([v.value for v in REQUEST_VERBS], case_sensitive=False),
)
@click.argument("action")
@click.option("--data", callback=parse_json_option, help="JSON object sent as data")
@click.option("--query", callback=parse_json_option, help="JSON object sent as query")
@click.option("--timeout", type=float, help="Seconds to wait for the response")
@click.pass_obj
def request_command(
    config: ChannelConfig,
    method: str,
    action: str,
    data: dict[str, Any] | None,
    query: dict[str, Any] | None,
    timeout: float | None,
) -> None:
    """Send one request and print its response.

    Examples:

        # Fetch a ticket
        channelmux request GET ticket.fetch --data '{"id": "T-1"}'

        # Give up after 5 seconds
        channelmux request GET ticket.list --timeout 5
    """

    async def run() -> Response:
        async with create_websocket_channel(config=config) as channel:
            return await channel.request(
                config.event,
                method.upper(),
                action,
                data=data,
                query=query,
                timeout=timeout,
            )

    try:
        response = asyncio.run(run())
    except ResponseError as e:
        click.echo(format_response(e.response), err=True)
        sys.exit(1)
    except TimeoutError:
        click.echo(f"Timed out waiting for {action}", err=True)
        sys.exit(1)
    except (ConnectionError, ChannelError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(format_response(response))


@main.command("watch")
@click.argument("action")
@click.option("--data", callback=parse_json_option, help="JSON object sent as data")
@click.option("--query", callback=parse_json_option, help="JSON object sent as query")
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Stop after N pushes")
@click.pass_obj
def watch_command(
    config: ChannelConfig,
    action: str,
    data: dict[str, Any] | None,
    query: dict[str, Any] | None,
    limit: int | None,
) -> None:
    """Subscribe to an action and print each push as a JSON line."""

    async def run() -> None:
        done = asyncio.Event()
        seen = 0

        def on_push(push: Response) -> None:
            nonlocal seen
            click.echo(json.dumps(push.to_wire()))
            seen += 1
            if limit is not None and seen >= limit:
                done.set()

        async with create_websocket_channel(config=config) as channel:
            await channel.subscribe(config.event, action, on_push, data=data, query=query)
            await done.wait()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        click.echo("\nStopped", err=True)
    except (ConnectionError, ChannelError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
