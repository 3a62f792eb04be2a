"""Latest-value store for input paths.

This is the only component allowed to hold incoming telemetry values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from pycombiner.ingestion.normalize import safe_float

_logger = logging.getLogger(__name__)


class ValueStore:
    """In-memory map from path to the most recently observed value.

    There is at most one value per path and no history: every update
    overwrites in place.  A path that has never been updated (or was
    cleared) is *absent*, which is distinct from a stored ``0``.

    With ``numeric_only`` enabled, a non-numeric update (``None``, a
    string, a bool, NaN) makes its path absent instead of being stored.
    """

    def __init__(self, *, numeric_only: bool = True) -> None:
        self._numeric_only = numeric_only
        self._values: dict[str, Any] = {}

    @property
    def numeric_only(self) -> bool:
        return self._numeric_only

    def record_update(self, path: str, value: Any) -> bool:
        """Overwrite the stored value for *path*.

        Returns whether the stored state of *path* changed.
        """
        if self._numeric_only:
            number = safe_float(value)
            if number is None:
                if path not in self._values:
                    return False
                del self._values[path]
                _logger.debug("Non-numeric value for %s, path is now absent: %r", path, value)
                return True
            value = number
        changed = path not in self._values or self._values[path] != value
        self._values[path] = value
        return changed

    def get(self, path: str) -> Any | None:
        """Return the stored value, or ``None`` when *path* is absent."""
        return self._values.get(path)

    def clear(self) -> None:
        """Forget every stored value."""
        self._values.clear()

    def snapshot(self) -> dict[str, Any]:
        """Copy of the current path -> value mapping."""
        return dict(self._values)

    def paths(self) -> tuple[str, ...]:
        return tuple(self._values)

    def __contains__(self, path: object) -> bool:
        return path in self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)
