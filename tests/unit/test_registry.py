"""Unit tests for the request and subscription registries."""

from __future__ import annotations

import pytest

from channelmux.errors import InvalidListenerError
from channelmux.protocol import Verb
from channelmux.registry import (
    Registry,
    RequestRegistry,
    ResultHandler,
    SubscriptionRegistry,
)


def noop(response) -> None:
    pass


def other(response) -> None:
    pass


# =============================================================================
# ResultHandler
# =============================================================================


class TestResultHandler:
    """Tests for ResultHandler.coerce()."""

    def test_passthrough(self) -> None:
        """A ResultHandler is returned unchanged."""
        handler = ResultHandler(on_success=noop, on_error=other)
        assert ResultHandler.coerce(handler) is handler

    def test_pair(self) -> None:
        """A (success, error) pair becomes named fields."""
        handler = ResultHandler.coerce((noop, other))
        assert handler.on_success is noop
        assert handler.on_error is other

    @pytest.mark.parametrize(
        "listener",
        [noop, [noop], [noop, other, noop], [noop, "x"], "ab", None],
    )
    def test_invalid_shapes(self, listener) -> None:
        """Anything but a pair of callables is rejected."""
        with pytest.raises(InvalidListenerError, match="invalid listener shape"):
            ResultHandler.coerce(listener)


# =============================================================================
# RequestRegistry / SubscriptionRegistry
# =============================================================================


class TestRequestRegistry:
    """Tests for pending request bookkeeping."""

    def test_add_get_remove(self) -> None:
        """Entries are keyed by verb, action and request id."""
        registry = RequestRegistry()
        handler = ResultHandler(noop, other)
        registry.add(Verb.GET, "ticket.fetch", "r1", handler)

        assert registry.get(Verb.GET, "ticket.fetch", "r1") is handler
        assert registry.get(Verb.POST, "ticket.fetch", "r1") is None
        assert registry.get(Verb.GET, "ticket.list", "r1") is None
        assert registry.remove(Verb.GET, "ticket.fetch", "r1") is True
        assert registry.get(Verb.GET, "ticket.fetch", "r1") is None
        assert len(registry) == 0

    def test_same_id_overwrites(self) -> None:
        """A second registration under the same key replaces the first."""
        registry = RequestRegistry()
        first = ResultHandler(noop, noop)
        second = ResultHandler(other, other)
        registry.add(Verb.GET, "a", "r1", first)
        registry.add(Verb.GET, "a", "r1", second)

        assert registry.get(Verb.GET, "a", "r1") is second
        assert len(registry) == 1

    def test_remove_missing(self) -> None:
        """Removing an unknown entry is a no-op."""
        registry = RequestRegistry()
        assert registry.remove(Verb.GET, "a", "missing") is False

    def test_drain(self) -> None:
        """drain() empties the registry and returns the handlers."""
        registry = RequestRegistry()
        registry.add(Verb.GET, "a", "r1", ResultHandler(noop, noop))
        registry.add(Verb.POST, "b", "r2", ResultHandler(noop, noop))

        assert len(registry.drain()) == 2
        assert len(registry) == 0


class TestSubscriptionRegistry:
    """Tests for per-action subscriber lists."""

    def test_order_is_preserved(self) -> None:
        """Subscribers come back in registration order."""
        registry = SubscriptionRegistry()
        registry.add("ticket.updated", noop)
        registry.add("ticket.updated", other)

        assert [s.callback for s in registry.get_all("ticket.updated")] == [noop, other]

    def test_remove_one(self) -> None:
        """Removing by id leaves the other subscribers."""
        registry = SubscriptionRegistry()
        first = registry.add("a", noop)
        registry.add("a", other)

        assert registry.remove("a", first) is True
        assert [s.callback for s in registry.get_all("a")] == [other]
        assert registry.remove("a", first) is False

    def test_same_callback_twice(self) -> None:
        """The same callable registered twice is two subscribers."""
        registry = SubscriptionRegistry()
        first = registry.add("a", noop)
        registry.add("a", noop)

        registry.remove("a", first)
        assert registry.count("a") == 1

    def test_remove_action(self) -> None:
        """remove_action() drops every subscriber on the action."""
        registry = SubscriptionRegistry()
        registry.add("a", noop)
        registry.add("a", other)
        registry.add("b", noop)

        assert registry.remove_action("a") == 2
        assert registry.count("a") == 0
        assert registry.count("b") == 1

    def test_get_all_returns_copy(self) -> None:
        """Mutating the returned list does not touch the registry."""
        registry = SubscriptionRegistry()
        registry.add("a", noop)
        registry.get_all("a").clear()

        assert registry.count("a") == 1


# =============================================================================
# Registry facade
# =============================================================================


class TestRegistry:
    """Tests for the Registry facade."""

    def test_register_request(self) -> None:
        """Request-style registration is keyed by request id."""
        registry = Registry()
        key = registry.register(Verb.GET, "ticket.fetch", "r1", (noop, other))

        assert key == "r1"
        handler = registry.lookup(Verb.GET, "ticket.fetch", "r1")
        assert handler is not None
        assert handler.on_success is noop
        assert registry.pending_count() == 1

    def test_register_request_requires_key(self) -> None:
        """Request-style registration needs a request id."""
        with pytest.raises(ValueError):
            Registry().register(Verb.GET, "a", None, (noop, other))

    def test_register_request_wrong_shape(self) -> None:
        """A single callable is not a valid request listener."""
        with pytest.raises(InvalidListenerError):
            Registry().register(Verb.POST, "a", "r1", noop)

    def test_register_subscription_wrong_shape(self) -> None:
        """A pair is not a valid subscription listener."""
        with pytest.raises(InvalidListenerError):
            Registry().register(Verb.SUBSCRIPTION, "a", None, (noop, other))

    def test_register_subscription_appends(self) -> None:
        """Subscriptions ignore the key and append."""
        registry = Registry()
        first = registry.register(Verb.SUBSCRIPTION, "a", "ignored", noop)
        second = registry.register(Verb.SUBSCRIPTION, "a", "ignored", other)

        assert first != second
        assert registry.lookup_all(Verb.SUBSCRIPTION, "a") == [noop, other]

    def test_lookup_all_request_verb(self) -> None:
        """lookup_all() only serves the subscription verb."""
        registry = Registry()
        registry.register(Verb.GET, "a", "r1", (noop, other))
        assert registry.lookup_all(Verb.GET, "a") == []

    def test_remove_subscriber_or_bucket(self) -> None:
        """remove() with an id drops one subscriber, without one the bucket."""
        registry = Registry()
        first = registry.register(Verb.SUBSCRIPTION, "a", None, noop)
        registry.register(Verb.SUBSCRIPTION, "a", None, other)

        assert registry.remove(Verb.SUBSCRIPTION, "a", first) is True
        assert registry.subscriber_count("a") == 1
        assert registry.remove(Verb.SUBSCRIPTION, "a") is True
        assert registry.subscriber_count("a") == 0
        assert registry.remove(Verb.SUBSCRIPTION, "a") is False

    def test_remove_request_without_key(self) -> None:
        """A request entry cannot be removed without its id."""
        registry = Registry()
        registry.register(Verb.GET, "a", "r1", (noop, other))
        assert registry.remove(Verb.GET, "a") is False
        assert registry.pending_count() == 1

    def test_empty_lookups(self) -> None:
        """Lookups on an empty registry are safe."""
        registry = Registry()
        assert registry.lookup(Verb.GET, "a", "r1") is None
        assert registry.lookup_all(Verb.SUBSCRIPTION, "a") == []
        assert registry.remove(Verb.DELETE, "a", "r1") is False

    def test_clear(self) -> None:
        """clear() drops requests and subscriptions."""
        registry = Registry()
        registry.register(Verb.GET, "a", "r1", (noop, other))
        registry.register(Verb.SUBSCRIPTION, "a", None, noop)

        registry.clear()
        assert registry.pending_count() == 0
        assert registry.subscriber_count() == 0
