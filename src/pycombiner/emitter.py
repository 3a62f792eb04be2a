"""Update emitter: wraps derived values into deltas for the host bus."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Any

from pycombiner.models.delta import Delta, PathValue, build_output_delta

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DeltaEmitter:
    """Publish derived values as one delta per batch.

    Every delta carries a single update labelled with ``source_label`` and
    stamped with the current UTC time, and is handed to ``handle_message``
    together with the source id.
    """

    def __init__(
        self,
        handle_message: Callable[[str, dict[str, Any]], None],
        *,
        source_label: str,
        context: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._handle_message = handle_message
        self._source_label = source_label
        self._context = context
        self._clock = clock

    @property
    def source_label(self) -> str:
        return self._source_label

    def build(self, values: Sequence[PathValue]) -> Delta:
        return build_output_delta(
            tuple(values),
            source_label=self._source_label,
            context=self._context,
            timestamp=self._clock(),
        )

    def publish(self, values: Sequence[PathValue]) -> Delta:
        """Wrap and deliver *values*; returns the delta that was sent."""
        delta = self.build(values)
        _logger.debug("Publishing %d values from %s", len(values), self._source_label)
        self._handle_message(self._source_label, delta.to_message())
        return delta
