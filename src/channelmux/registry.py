"""Registration tables for in-flight requests and subscriptions.

Two registries sit behind one facade:
- RequestRegistry: (verb, action) -> {request_id: ResultHandler}
- SubscriptionRegistry: action -> ordered list of Subscriber

The facade serializes all access with a re-entrant lock, so a transport that
delivers on its own thread cannot race a caller registering on another. No
I/O happens here.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import InvalidListenerError
from .protocol import Response, Verb

Callback = Callable[[Response], Any]


@dataclass(frozen=True)
class ResultHandler:
    """Named success/error pair for a request-style exchange."""

    on_success: Callback
    on_error: Callback

    @classmethod
    def coerce(cls, listener: Any) -> ResultHandler:
        """Accept a ResultHandler or a (success, error) pair of callables.

        Raises:
            InvalidListenerError: If the listener has any other shape
        """
        if isinstance(listener, ResultHandler):
            return listener
        if (
            isinstance(listener, Sequence)
            and not isinstance(listener, str)
            and len(listener) == 2
            and all(callable(fn) for fn in listener)
        ):
            return cls(on_success=listener[0], on_error=listener[1])
        raise InvalidListenerError(
            "invalid listener shape for verb: request-style verbs need a "
            f"ResultHandler or a (success, error) pair, got {type(listener).__name__}"
        )


@dataclass(frozen=True)
class Subscriber:
    """One push callback registered on an action."""

    id: str
    callback: Callback


class RequestRegistry:
    """Pending request-style exchanges keyed by (verb, action, request_id)."""

    def __init__(self) -> None:
        self._buckets: dict[tuple[Verb, str], dict[str, ResultHandler]] = {}

    def add(self, verb: Verb, action: str, request_id: str, handler: ResultHandler) -> None:
        # Same id twice overwrites; ids are unique per exchange.
        self._buckets.setdefault((verb, action), {})[request_id] = handler

    def get(self, verb: Verb, action: str, request_id: str) -> ResultHandler | None:
        bucket = self._buckets.get((verb, action))
        if bucket is None:
            return None
        return bucket.get(request_id)

    def remove(self, verb: Verb, action: str, request_id: str) -> bool:
        bucket = self._buckets.get((verb, action))
        if bucket is None or request_id not in bucket:
            return False
        del bucket[request_id]
        if not bucket:
            del self._buckets[(verb, action)]
        return True

    def drain(self) -> list[ResultHandler]:
        """Remove and return every pending handler."""
        handlers = [h for bucket in self._buckets.values() for h in bucket.values()]
        self._buckets.clear()
        return handlers

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())


class SubscriptionRegistry:
    """Push callbacks per action, in registration order."""

    def __init__(self) -> None:
        self._buckets: dict[str, list[Subscriber]] = {}

    def add(self, action: str, callback: Callback) -> str:
        subscriber = Subscriber(id=uuid.uuid4().hex, callback=callback)
        self._buckets.setdefault(action, []).append(subscriber)
        return subscriber.id

    def get_all(self, action: str) -> list[Subscriber]:
        return list(self._buckets.get(action, ()))

    def remove(self, action: str, subscriber_id: str) -> bool:
        bucket = self._buckets.get(action)
        if not bucket:
            return False
        remaining = [s for s in bucket if s.id != subscriber_id]
        if len(remaining) == len(bucket):
            return False
        if remaining:
            self._buckets[action] = remaining
        else:
            del self._buckets[action]
        return True

    def remove_action(self, action: str) -> int:
        """Drop the whole bucket for an action, returning how many were removed."""
        return len(self._buckets.pop(action, ()))

    def count(self, action: str) -> int:
        return len(self._buckets.get(action, ()))

    def clear(self) -> None:
        self._buckets.clear()

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())


class Registry:
    """Facade over the request and subscription registries.

    For request-style verbs `key` is the request id. For SUBSCRIPTION,
    `register` appends and returns a subscriber id, and `remove` drops that
    subscriber (or the whole action bucket when `key` is None).
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._requests = RequestRegistry()
        self._subscriptions = SubscriptionRegistry()

    def register(self, verb: Verb, action: str, key: str | None, callback: Any) -> str:
        """Register a listener and return the key it can be removed with.

        Raises:
            InvalidListenerError: If the listener shape does not match the verb
        """
        if verb.is_subscription:
            if not callable(callback):
                raise InvalidListenerError(
                    "invalid listener shape for verb: SUBSCRIPTION needs a single "
                    f"callable, got {type(callback).__name__}"
                )
            with self._lock:
                return self._subscriptions.add(action, callback)

        handler = ResultHandler.coerce(callback)
        if not key:
            raise ValueError("request-style registrations need a request id")
        with self._lock:
            self._requests.add(verb, action, key, handler)
        return key

    def lookup(self, verb: Verb, action: str, key: str) -> ResultHandler | None:
        with self._lock:
            return self._requests.get(verb, action, key)

    def lookup_all(self, verb: Verb, action: str) -> list[Callback]:
        if not verb.is_subscription:
            return []
        with self._lock:
            return [s.callback for s in self._subscriptions.get_all(action)]

    def remove(self, verb: Verb, action: str, key: str | None = None) -> bool:
        with self._lock:
            if verb.is_subscription:
                if key is None:
                    return self._subscriptions.remove_action(action) > 0
                return self._subscriptions.remove(action, key)
            if key is None:
                return False
            return self._requests.remove(verb, action, key)

    def drain_pending(self) -> list[ResultHandler]:
        """Remove every pending request handler (used when the channel closes)."""
        with self._lock:
            return self._requests.drain()

    def clear(self) -> None:
        with self._lock:
            self._requests.drain()
            self._subscriptions.clear()

    def pending_count(self) -> int:
        with self._lock:
            return len(self._requests)

    def subscriber_count(self, action: str | None = None) -> int:
        with self._lock:
            if action is None:
                return len(self._subscriptions)
            return self._subscriptions.count(action)
