"""Channel - request/response and pub/sub multiplexed over one transport.

A Channel owns one Registry and one Dispatcher per channel-event-name. Many
concurrent requests and subscriptions share the transport; inbound messages
are routed back by (verb, action, requestId) for requests and by action for
subscription pushes.

Usage:
    channel = create_websocket_channel("ws://localhost:4096/ws")
    async with channel:
        ticket = await channel.request("jira", Verb.GET, "ticket.fetch", {"id": "T-1"})

        handle = await channel.subscribe("jira", "ticket.updated", print)
        ...
        handle.cancel()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable, Mapping
from dataclasses import replace
from typing import Any, cast

from .config import ChannelConfig
from .dispatcher import Dispatcher
from .errors import ChannelClosedError, ChannelError, ResponseError
from .protocol import Envelope, Response, Verb, new_request_id
from .registry import Callback, Registry, ResultHandler
from .transport import ChannelTransport, MemoryTransport, WebSocketTransport

logger = logging.getLogger(__name__)

Selector = Callable[[Any], Hashable]
Selectors = Callable[[Response, Selector], Iterable[Hashable]]


class RequestHandle:
    """Cancels one pending request-style registration."""

    def __init__(self, registry: Registry, method: Verb, action: str, request_id: str):
        self._registry = registry
        self.method = method
        self.action = action
        self.request_id = request_id

    def cancel(self) -> bool:
        """Remove the registration if it is still present."""
        return self._registry.remove(self.method, self.action, self.request_id)

    def __repr__(self) -> str:
        return f"RequestHandle({self.method.value} {self.action} {self.request_id})"


class SubscriptionHandle:
    """Cancels a subscription.

    `cancel()` removes only this subscriber, unless the channel was
    configured with `shared_subscription_cancel`, in which case it drops
    every subscriber on the action. `cancel_action()` always drops the
    whole action bucket.
    """

    def __init__(
        self,
        registry: Registry,
        action: str,
        subscriber_id: str,
        shared_cancel: bool = False,
    ):
        self._registry = registry
        self.action = action
        self.subscriber_id = subscriber_id
        self.shared_cancel = shared_cancel

    def cancel(self) -> bool:
        if self.shared_cancel:
            return self.cancel_action()
        return self._registry.remove(Verb.SUBSCRIPTION, self.action, self.subscriber_id)

    def cancel_action(self) -> bool:
        return self._registry.remove(Verb.SUBSCRIPTION, self.action, None)

    def __repr__(self) -> str:
        return f"SubscriptionHandle({self.action} {self.subscriber_id})"


Handle = RequestHandle | SubscriptionHandle


def default_selectors(response: Response, selector: Selector) -> set[Hashable]:
    """Derive listen keys from the items of an initial response.

    Items are `response.data` when it is a list, or `response.data["results"]`
    when it is a paginated mapping.

    Raises:
        ValueError: If no item list can be found in the response
    """
    data = response.data
    if isinstance(data, Mapping) and isinstance(data.get("results"), list):
        items = data["results"]
    elif isinstance(data, list):
        items = data
    else:
        raise ValueError(
            f"Cannot derive listen keys from {type(data).__name__} data; pass selectors"
        )
    return {selector(item) for item in items}


class Channel:
    """Multiplexes requests and subscriptions over one transport.

    Registries are created per channel-event-name and live as long as the
    channel. They survive transport reconnects; `close()` tears them down.
    """

    def __init__(
        self,
        transport: ChannelTransport,
        config: ChannelConfig | None = None,
        events: Iterable[str] = (),
        owns_transport: bool = False,
    ):
        self.transport = transport
        self.config = config or ChannelConfig()
        self._owns_transport = owns_transport
        self._registries: dict[str, Registry] = {}
        self._dispatchers: dict[str, Dispatcher] = {}
        self._pending: dict[str, asyncio.Future[Response]] = {}
        self._closed = False

        for event in events:
            self.install(event)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def events(self) -> list[str]:
        """Event names with an installed dispatcher."""
        return list(self._dispatchers)

    def registry(self, event: str) -> Registry:
        """Get (or lazily create) the registry for an event name."""
        registry = self._registries.get(event)
        if registry is None:
            registry = self._registries[event] = Registry()
        return registry

    def install(self, event: str) -> bool:
        """Install the dispatcher for an event name, once.

        Returns:
            True if a dispatcher was installed by this call

        Raises:
            ChannelError: If another listener already owns the event name
        """
        self._ensure_open()
        dispatcher = self._dispatchers.get(event)
        if dispatcher is not None and self.transport.has_listener(event):
            return False

        if dispatcher is None:
            if self.transport.has_listener(event):
                raise ChannelError(
                    f"Event {event!r} already has a listener on this transport"
                )
            dispatcher = self._dispatchers[event] = Dispatcher(
                event, self.registry(event), _running_loop()
            )

        self.transport.on(event, dispatcher)
        logger.debug(f"Dispatcher installed for event {event!r}")
        return True

    async def emit(
        self,
        event: str,
        method: str | Verb,
        action: str,
        listener: Any,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> Handle:
        """Register a listener, then send the envelope.

        Request-style verbs take a ResultHandler (or a (success, error) pair);
        SUBSCRIPTION takes a single push callback.

        Raises:
            InvalidListenerError: If the listener shape does not match the verb
            ChannelClosedError: If the channel is closed
            ConnectionError: If the transport fails to send
        """
        self._ensure_open()
        verb = Verb(method)
        envelope = Envelope.create(verb, action, data, query, request_id)
        registry = self.registry(event)

        key = registry.register(verb, action, envelope.request_id, listener)
        handle: Handle
        if verb.is_subscription:
            handle = SubscriptionHandle(
                registry, action, key, self.config.shared_subscription_cancel
            )
        else:
            handle = RequestHandle(registry, verb, action, key)

        try:
            self.install(event)
            dispatcher = self._dispatchers[event]
            if dispatcher.loop is None:
                dispatcher.loop = asyncio.get_running_loop()
            await self.transport.send(event, envelope.to_wire())
        except BaseException:
            # Only undo this call's own registration, never the whole bucket
            registry.remove(verb, action, key)
            raise

        logger.debug(f"Sent {verb.value} {action} ({envelope.request_id}) on {event!r}")
        return handle

    async def request(
        self,
        event: str,
        method: str | Verb,
        action: str,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        request_id: str | None = None,
        timeout: float | None = None,
    ) -> Response:
        """Send a request-style envelope and wait for its single response.

        Args:
            timeout: Seconds to wait; falls back to config.request_timeout,
                and waits forever when both are None

        Returns:
            The 2xx response

        Raises:
            ResponseError: If the response status is not 2xx
            ChannelClosedError: If the channel closes while waiting
            TimeoutError: If the timeout elapses
        """
        verb = Verb(method)
        if verb.is_subscription:
            raise ValueError("SUBSCRIPTION is not a request-style verb; use subscribe()")

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Response] = loop.create_future()
        request_id = request_id or new_request_id()
        registry = self.registry(event)

        def on_success(response: Response) -> None:
            # Single-shot: later duplicates for this id are dropped
            registry.remove(verb, action, request_id)
            _settle(loop, future, response)

        def on_error(response: Response) -> None:
            _settle(loop, future, ResponseError(response))

        handle = await self.emit(
            event,
            verb,
            action,
            ResultHandler(on_success=on_success, on_error=on_error),
            data=data,
            query=query,
            request_id=request_id,
        )
        self._pending[request_id] = future

        if timeout is None:
            timeout = self.config.request_timeout
        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout)
        finally:
            self._pending.pop(request_id, None)
            handle.cancel()

    async def subscribe(
        self,
        event: str,
        action: str,
        on_push: Callback,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> SubscriptionHandle:
        """Subscribe to every push on an action until cancelled."""
        handle = await self.emit(
            event, Verb.SUBSCRIPTION, action, on_push, data=data, query=query
        )
        return cast(SubscriptionHandle, handle)

    async def listen(
        self,
        pending: Awaitable[Response],
        event: str,
        action: str,
        selector: Selector,
        on_push: Callback,
        selectors: Selectors | None = None,
        data: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
    ) -> SubscriptionHandle:
        """Bootstrap a filtered live view.

        Waits for the initial response, derives the keys it owns, then
        subscribes to `action` and only forwards pushes whose
        `selector(push.data)` is one of those keys.

        Args:
            pending: An in-flight request (e.g. `channel.request(...)`)
            selector: Maps one item (or push data) to its key
            selectors: Maps the initial response to its keys; defaults to
                `selector` applied to each item of the response data

        Raises:
            ResponseError: If the initial request fails (nothing is subscribed)
        """
        response = await pending
        derive = selectors or default_selectors
        keys = frozenset(derive(response, selector))
        logger.debug(f"Listening on {action} for {len(keys)} keys")

        def on_filtered(push: Response) -> Any:
            if selector(push.data) in keys:
                return on_push(push)
            return None

        return await self.subscribe(event, action, on_filtered, data=data, query=query)

    async def connect(self) -> None:
        """Connect the underlying transport."""
        await self.transport.connect()

    async def close(self) -> None:
        """Tear down dispatchers and registries.

        Pending requests fail with ChannelClosedError. The transport is
        disconnected too when the channel owns it.
        """
        if self._closed:
            return
        self._closed = True

        for event in self._dispatchers:
            self.transport.off(event)
        self._dispatchers.clear()

        for future in self._pending.values():
            if not future.done():
                future.set_exception(ChannelClosedError("Channel closed"))
        self._pending.clear()

        for registry in self._registries.values():
            registry.clear()
        self._registries.clear()

        if self._owns_transport:
            await self.transport.disconnect()
        logger.debug("Channel closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise ChannelClosedError("Channel is closed")

    async def __aenter__(self) -> Channel:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _settle(
    loop: asyncio.AbstractEventLoop,
    future: asyncio.Future[Response],
    outcome: Response | BaseException,
) -> None:
    """Resolve a future from the loop's thread or from a transport thread."""

    def apply() -> None:
        if future.done():
            return
        if isinstance(outcome, BaseException):
            future.set_exception(outcome)
        else:
            future.set_result(outcome)

    if _running_loop() is loop:
        apply()
    else:
        loop.call_soon_threadsafe(apply)


# Factory functions


def create_channel(
    transport: ChannelTransport,
    config: ChannelConfig | None = None,
    owns_transport: bool = False,
) -> Channel:
    """Create a channel over an existing transport.

    The configured default event is installed eagerly.
    """
    config = config or ChannelConfig()
    return Channel(transport, config, events=[config.event], owns_transport=owns_transport)


def create_memory_channel(config: ChannelConfig | None = None) -> Channel:
    """Create a channel over an in-memory loopback transport.

    Returns:
        Channel whose `transport` is a MemoryTransport
    """
    return create_channel(MemoryTransport(), config, owns_transport=True)


def create_websocket_channel(
    url: str | None = None,
    config: ChannelConfig | None = None,
) -> Channel:
    """Create a channel that talks to a WebSocket peer.

    Connect with `async with channel:` or `await channel.connect()`.

    Args:
        url: Peer URL (overrides config.url)
        config: Channel configuration (default: from environment)

    Returns:
        Channel with a WebSocketTransport it owns
    """
    config = config or ChannelConfig.from_env()
    if url:
        config = replace(config, url=url)
    return create_channel(WebSocketTransport(config), config, owns_transport=True)
