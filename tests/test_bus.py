from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

import pytest

from pycombiner.bus import DeltaBus
from pycombiner.config import CombinerConfig
from pycombiner.emitter import DeltaEmitter
from pycombiner.engine import CombinerEngine
from pycombiner.exceptions import CombinerStateError
from pycombiner.subscription import SubscriptionRequest


def _request(*paths: str, context: str = "self") -> SubscriptionRequest:
    return SubscriptionRequest.for_paths(context, paths, period=500)


def _delta(*pairs: tuple[str, Any], context: str | None = None, label: str | None = None) -> dict[str, Any]:
    update: dict[str, Any] = {"values": [{"path": path, "value": value} for path, value in pairs]}
    if label is not None:
        update["source"] = {"label": label}
    delta: dict[str, Any] = {"updates": [update]}
    if context is not None:
        delta["context"] = context
    return delta


def test_only_subscribed_paths_are_delivered() -> None:
    bus = DeltaBus()
    received: list[dict[str, Any]] = []
    bus.subscribe(_request("a", "b"), received.append, lambda exc: None)

    bus.publish(_delta(("a", 1), ("z", 2)))
    bus.publish(_delta(("z", 3)))

    assert received == [{"updates": [{"values": [{"path": "a", "value": 1}]}]}]


def test_self_context_matches_vessel_self() -> None:
    bus = DeltaBus(self_context="vessels.urn:mrn:imo:mmsi:230099999")
    received: list[dict[str, Any]] = []
    bus.subscribe(_request("a"), received.append, lambda exc: None)

    bus.publish(_delta(("a", 1), context="vessels.urn:mrn:imo:mmsi:230099999"))
    bus.publish(_delta(("a", 2), context="vessels.urn:mrn:imo:mmsi:230011111"))

    assert [d["updates"][0]["values"][0]["value"] for d in received] == [1]


def test_unsubscribe_is_idempotent() -> None:
    bus = DeltaBus()
    received: list[dict[str, Any]] = []
    subscription = bus.subscribe(_request("a"), received.append, lambda exc: None)

    subscription.unsubscribe()
    subscription.unsubscribe()
    bus.publish(_delta(("a", 1)))

    assert not subscription.active
    assert received == []
    assert bus.subscriptions == ()


def test_subscriber_failure_goes_to_error_channel() -> None:
    bus = DeltaBus()
    errors: list[Exception] = []
    received: list[dict[str, Any]] = []

    def _explode(delta: dict[str, Any]) -> None:
        raise ValueError("bad delta")

    bus.subscribe(_request("a"), _explode, errors.append)
    bus.subscribe(_request("a"), received.append, errors.append)

    bus.publish(_delta(("a", 1)))

    assert [str(exc) for exc in errors] == ["bad delta"]
    assert len(received) == 1


def test_closed_bus_refuses_subscriptions() -> None:
    bus = DeltaBus()
    subscription = bus.subscribe(_request("a"), lambda delta: None, lambda exc: None)
    bus.close()

    assert not subscription.active
    with pytest.raises(CombinerStateError):
        bus.subscribe(_request("a"), lambda delta: None, lambda exc: None)


def test_nested_publish_is_delivered_after_current_delta() -> None:
    bus = DeltaBus()
    order: list[str] = []

    def _first(delta: dict[str, Any]) -> None:
        order.append("first-start")
        bus.publish(_delta(("b", 1)))
        order.append("first-end")

    bus.subscribe(_request("a"), _first, lambda exc: None)
    bus.subscribe(_request("b"), lambda delta: order.append("second"), lambda exc: None)

    bus.publish(_delta(("a", 1)))

    assert order == ["first-start", "first-end", "second"]


def _clock() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _wired_engine(bus: DeltaBus, plugin_id: str, settings: dict[str, Any]) -> CombinerEngine:
    config = CombinerConfig.from_settings(settings, plugin_id=plugin_id)
    emitter = DeltaEmitter(bus.handle_message, source_label=plugin_id, context=config.context, clock=_clock)
    return CombinerEngine(config, source=bus, sink=emitter)


def test_rule_output_feeds_another_rule_in_same_engine() -> None:
    bus = DeltaBus()
    engine = _wired_engine(
        bus,
        "combiner",
        {
            "paths": [{"input": ["a", "b"], "output": "x"}, {"input": ["x", "c"], "output": "y"}],
            "readiness": "strict",
        },
    )
    engine.start()

    bus.publish(_delta(("c", 4)))
    bus.publish(_delta(("a", 1), ("b", 2)))

    published = [(source, delta["updates"][0]["values"]) for source, delta in bus.messages]
    assert published == [
        ("combiner", [{"path": "x", "value": 3.0}]),
        ("combiner", [{"path": "x", "value": 3.0}, {"path": "y", "value": 7.0}]),
    ]
    assert engine.store.get("x") == 3.0
    assert engine.last_status == "No values to publish"


def test_engines_can_be_chained_on_one_bus() -> None:
    bus = DeltaBus()
    first = _wired_engine(bus, "sum", {"paths": [{"input": ["a", "b"], "output": "x"}]})
    second = _wired_engine(
        bus,
        "product",
        {"paths": [{"input": ["x", "c"], "output": "y", "operation": "multiplication"}], "readiness": "strict"},
    )
    first.start()
    second.start()

    bus.publish(_delta(("c", 4)))
    bus.publish(_delta(("a", 1), ("b", 2)))

    published = [(source, delta["updates"][0]["values"]) for source, delta in bus.messages]
    assert published == [
        ("sum", [{"path": "x", "value": 3.0}]),
        ("product", [{"path": "y", "value": 12.0}]),
    ]


@pytest.mark.asyncio
async def test_feed_publishes_async_source_in_order() -> None:
    bus = DeltaBus()
    engine = _wired_engine(bus, "combiner", {"paths": [{"input": ["a", "b"], "output": "x"}]})
    engine.start()

    async def _source() -> AsyncIterator[dict[str, Any]]:
        yield _delta(("a", 1))
        yield {"context": "vessels.self"}
        yield _delta(("b", 2), ("a", 5))

    count = await bus.feed(_source())

    assert count == 3
    values = [delta["updates"][0]["values"][0]["value"] for _, delta in bus.messages]
    assert values == [1.0, 7.0]
