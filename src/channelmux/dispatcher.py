"""Inbound dispatcher - routes responses and pushes to registered callers.

One Dispatcher is installed per channel-event-name. Dispatch is synchronous
and in delivery order. Responses nobody is waiting for (already completed,
cancelled, never registered) and pushes nobody is subscribed to are dropped.

Coroutine listeners run on the loop the dispatcher is bound to, even when a
transport delivers from another thread.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
from collections.abc import Awaitable
from typing import Any

from .errors import InvalidEnvelopeError
from .protocol import Response
from .registry import Callback, Registry

logger = logging.getLogger(__name__)


class Dispatcher:
    """Demultiplexes inbound envelopes for one channel-event-name."""

    def __init__(
        self,
        event: str,
        registry: Registry,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self.event = event
        self.loop = loop
        self._registry = registry
        self._tasks: set[asyncio.Task[Any]] = set()

    def __call__(self, payload: Any) -> None:
        self.dispatch(payload)

    def dispatch(self, payload: Any) -> None:
        """Route one inbound envelope."""
        try:
            response = Response.parse(payload)
        except InvalidEnvelopeError as e:
            logger.warning(f"Dropping malformed message on {self.event}: {e}")
            return

        if response.is_push():
            self._dispatch_push(response)
        else:
            self._dispatch_response(response)

    def _dispatch_push(self, response: Response) -> None:
        subscribers = self._registry.lookup_all(response.method, response.action)
        if not subscribers:
            logger.debug(f"No subscribers for push {response.action} on {self.event}")
            return

        for callback in subscribers:
            self._invoke(callback, response)

    def _dispatch_response(self, response: Response) -> None:
        handler = self._registry.lookup(response.method, response.action, response.request_id)
        if handler is None:
            logger.debug(
                f"Dropping response {response.method.value} {response.action} "
                f"({response.request_id}): no pending request"
            )
            return

        if response.is_success():
            self._invoke(handler.on_success, response)
        else:
            self._invoke(handler.on_error, response)

    def _invoke(self, callback: Callback, response: Response) -> None:
        try:
            result = callback(response)
            if inspect.isawaitable(result):
                self._schedule(result)
        except Exception:
            logger.exception(f"Error in listener for {response.action} on {self.event}")

    def _schedule(self, awaitable: Awaitable[Any]) -> None:
        """Run a listener's awaitable on the owning loop."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None and (self.loop is None or running is self.loop):
            task = asyncio.ensure_future(awaitable)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
            return

        if self.loop is None or self.loop.is_closed():
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError(f"No event loop to run async listener on {self.event}")

        # Delivered from a transport thread
        future = asyncio.run_coroutine_threadsafe(_await(awaitable), self.loop)
        future.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future[Any] | concurrent.futures.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Async listener on {self.event} failed: {exc!r}", exc_info=exc)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
