"""In-process delta bus.

:class:`DeltaBus` plays the host side of the combiner: it accepts
subscriptions, fans deltas out to subscribers and receives published
deltas through :meth:`DeltaBus.handle_message`.  It has no network
transport; hosts that speak to a real telemetry server adapt that
server's client to the same two interfaces.

Deliveries are queued and drained in order, so a subscriber always
finishes one delta before it is handed the next, even when its own
published output is routed back onto the bus.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterable, Mapping
from typing import Any

from pycombiner.config import DEFAULT_CONTEXT
from pycombiner.exceptions import CombinerStateError, CombinerSubscriptionError
from pycombiner.ingestion.delta import delta_context
from pycombiner.subscription import DeltaCallback, ErrorCallback, SubscriptionRequest

_SELF = "self"
_ANY = "*"


class BusSubscription:
    """Subscription handle returned by :meth:`DeltaBus.subscribe`."""

    def __init__(
        self,
        bus: DeltaBus,
        request: SubscriptionRequest,
        on_delta: DeltaCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._bus = bus
        self.request = request
        self.paths = frozenset(request.paths)
        self.on_delta = on_delta
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)  # noqa: SLF001


class DeltaBus:
    """Queue-backed fan-out of deltas to path subscriptions."""

    def __init__(
        self,
        *,
        self_context: str = DEFAULT_CONTEXT,
        logger: logging.Logger | None = None,
    ) -> None:
        self._self_context = self_context
        self._logger = logger or logging.getLogger(__name__)
        self._subscriptions: list[BusSubscription] = []
        self._queue: deque[dict[str, Any]] = deque()
        self._draining = False
        self._closed = False
        self.messages: list[tuple[str, dict[str, Any]]] = []
        """Every delta received through :meth:`handle_message`, with its source id."""

    @property
    def subscriptions(self) -> tuple[BusSubscription, ...]:
        return tuple(self._subscriptions)

    def subscribe(
        self,
        request: SubscriptionRequest,
        on_delta: DeltaCallback,
        on_error: ErrorCallback,
    ) -> BusSubscription:
        """Register interest in ``request.paths``."""
        if self._closed:
            raise CombinerStateError("Delta bus is closed")
        if not request.subscribe:
            raise CombinerSubscriptionError("Subscription request has no paths")
        subscription = BusSubscription(self, request, on_delta, on_error)
        self._subscriptions.append(subscription)
        self._logger.debug("Subscribed context=%s paths=%s", request.context, list(request.paths))
        return subscription

    def _remove(self, subscription: BusSubscription) -> None:
        self._subscriptions = [sub for sub in self._subscriptions if sub is not subscription]
        self._logger.debug("Unsubscribed paths=%s", sorted(subscription.paths))

    def publish(self, delta: dict[str, Any]) -> None:
        """Queue *delta* for delivery and drain the queue."""
        if self._closed:
            self._logger.debug("Dropping delta published on closed bus")
            return
        self._queue.append(delta)
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                self._dispatch(self._queue.popleft())
        finally:
            self._draining = False

    def handle_message(self, source_id: str, delta: dict[str, Any]) -> None:
        """Accept a delta published by a plugin and route it to subscribers."""
        self.messages.append((source_id, delta))
        self.publish(delta)

    def report_error(self, error: Exception) -> None:
        """Signal a source failure to every subscriber's error channel."""
        for subscription in list(self._subscriptions):
            self._notify_error(subscription, error)

    async def feed(self, deltas: AsyncIterable[dict[str, Any]]) -> int:
        """Publish deltas from an async source until it is exhausted.

        Yields to the event loop between deltas. Returns the number of
        deltas published.
        """
        count = 0
        async for delta in deltas:
            self.publish(delta)
            count += 1
            await asyncio.sleep(0)
        return count

    def close(self) -> None:
        """Release every subscription and refuse further ones."""
        self._closed = True
        self._queue.clear()
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    def _context_matches(self, requested: str, delivered: str | None) -> bool:
        if requested == _ANY:
            return True
        if requested in (_SELF, self._self_context):
            return delivered in (None, _SELF, self._self_context)
        return requested == delivered

    def _filter(self, subscription: BusSubscription, delta: Mapping[str, Any]) -> dict[str, Any] | None:
        updates = delta.get("updates")
        if not isinstance(updates, list | tuple):
            return None
        filtered_updates: list[dict[str, Any]] = []
        for update in updates:
            if not isinstance(update, Mapping):
                continue
            values = update.get("values")
            if not isinstance(values, list | tuple):
                continue
            matching = [v for v in values if isinstance(v, Mapping) and v.get("path") in subscription.paths]
            if matching:
                filtered_updates.append({**update, "values": matching})
        if not filtered_updates:
            return None
        filtered: dict[str, Any] = {"updates": filtered_updates}
        context = delta_context(delta)
        if context is not None:
            filtered["context"] = context
        return filtered

    def _dispatch(self, delta: dict[str, Any]) -> None:
        if not isinstance(delta, Mapping):
            self._logger.debug("Dropping non-object delta: %r", delta)
            return
        context = delta_context(delta)
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            if not self._context_matches(subscription.request.context, context):
                continue
            filtered = self._filter(subscription, delta)
            if filtered is None:
                continue
            try:
                subscription.on_delta(filtered)
            except Exception as exc:
                self._logger.debug("Subscriber failed handling delta", exc_info=True)
                self._notify_error(subscription, exc)

    def _notify_error(self, subscription: BusSubscription, error: Exception) -> None:
        try:
            subscription.on_error(error)
        except Exception:
            self._logger.warning("Subscription error handler failed", exc_info=True)
