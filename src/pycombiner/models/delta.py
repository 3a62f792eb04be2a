"""Delta envelope models.

A delta is the unit the host telemetry bus exchanges::

    {
        "context": "vessels.self",
        "updates": [
            {
                "source": {"label": "value-combiner"},
                "timestamp": "2026-01-01T00:00:00.000Z",
                "values": [{"path": "a.b", "value": 1.5}],
            }
        ],
    }

Inbound deltas are parsed leniently by :mod:`pycombiner.ingestion.delta`;
these models describe the outbound shape and the normalized updates.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import Field, field_serializer

from pycombiner.models._base import CombinerBaseModel


class PathValue(CombinerBaseModel):
    """One observed (or derived) value for a path."""

    path: str
    value: Any = None


class DeltaSource(CombinerBaseModel):
    label: str


class DeltaUpdate(CombinerBaseModel):
    source: DeltaSource | None = None
    timestamp: datetime | None = None
    values: tuple[PathValue, ...] = ()

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        return format_timestamp(value)


class Delta(CombinerBaseModel):
    context: str | None = None
    updates: tuple[DeltaUpdate, ...] = Field(default=())

    def to_message(self) -> dict[str, Any]:
        """Plain JSON-compatible dict, as handed to the host bus."""
        return self.model_dump(mode="json", exclude_none=True)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def build_output_delta(
    values: list[PathValue] | tuple[PathValue, ...],
    *,
    source_label: str,
    context: str | None,
    timestamp: datetime,
) -> Delta:
    """Wrap derived values into a single-update delta."""
    return Delta(
        context=context,
        updates=(
            DeltaUpdate(
                source=DeltaSource(label=source_label),
                timestamp=timestamp,
                values=tuple(values),
            ),
        ),
    )
