from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from typing import Any

from pycombiner.emitter import DeltaEmitter
from pycombiner.models.delta import PathValue, format_timestamp


def _clock() -> datetime:
    return datetime(2026, 3, 14, 9, 26, 53, 589793, tzinfo=UTC)


def test_publish_wraps_values_with_label_and_timestamp() -> None:
    sent: list[tuple[str, dict[str, Any]]] = []
    emitter = DeltaEmitter(
        lambda source_id, delta: sent.append((source_id, delta)),
        source_label="value-combiner",
        context="vessels.self",
        clock=_clock,
    )

    emitter.publish([PathValue(path="x", value=5.0), PathValue(path="y", value=6.0)])

    assert sent == [
        (
            "value-combiner",
            {
                "context": "vessels.self",
                "updates": [
                    {
                        "source": {"label": "value-combiner"},
                        "timestamp": "2026-03-14T09:26:53.589Z",
                        "values": [{"path": "x", "value": 5.0}, {"path": "y", "value": 6.0}],
                    }
                ],
            },
        )
    ]


def test_context_is_omitted_when_unset() -> None:
    emitter = DeltaEmitter(lambda source_id, delta: None, source_label="value-combiner", clock=_clock)

    message = emitter.build([PathValue(path="x", value=1.0)]).to_message()

    assert "context" not in message


def test_timestamps_are_normalized_to_utc() -> None:
    local = datetime(2026, 1, 1, 2, 0, 0, tzinfo=timezone(timedelta(hours=2)))

    assert format_timestamp(local) == "2026-01-01T00:00:00.000Z"
    assert format_timestamp(datetime(2026, 1, 1)) == "2026-01-01T00:00:00.000Z"
