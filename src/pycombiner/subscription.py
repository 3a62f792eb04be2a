"""Collaborator interfaces consumed by the combiner engine."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from pycombiner.models.delta import PathValue

DeltaCallback = Callable[[dict[str, Any]], Any]
ErrorCallback = Callable[[Exception], None]
StatusReporter = Callable[[str], None]


@dataclass(frozen=True)
class PathSubscription:
    """Interest in one path, delivered at most every ``period`` ms."""

    path: str
    period: int


@dataclass(frozen=True)
class SubscriptionRequest:
    """Set of paths one subscriber wants deltas for."""

    context: str
    subscribe: tuple[PathSubscription, ...]

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(item.path for item in self.subscribe)

    @classmethod
    def for_paths(cls, context: str, paths: Sequence[str], *, period: int) -> SubscriptionRequest:
        return cls(context=context, subscribe=tuple(PathSubscription(path=p, period=period) for p in paths))


class Subscription(Protocol):
    """Handle returned by a subscription source."""

    @property
    def active(self) -> bool: ...

    def unsubscribe(self) -> None:
        """Stop deliveries. Calling it again is a no-op."""
        ...


class SubscriptionSource(Protocol):
    """Supplies deltas for subscribed paths."""

    def subscribe(
        self,
        request: SubscriptionRequest,
        on_delta: DeltaCallback,
        on_error: ErrorCallback,
    ) -> Subscription: ...


class UpdateSink(Protocol):
    """Delivers a batch of derived values to the host bus."""

    def publish(self, values: Sequence[PathValue]) -> Any: ...
